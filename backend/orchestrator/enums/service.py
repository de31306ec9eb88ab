"""
Service enumeration for generation-tagged external collaborators.

Rules:
- This enum identifies external collaborators only.
- It must NOT encode behavior or lifecycle rules.
- Reducer logic decides how services are started and canceled.
"""

from __future__ import annotations

from enum import Enum


class Service(str, Enum):
    """
    External collaborators driven by the coordinator.

    At most one of SYNTHESIS / RECOGNITION is active at any time.
    """

    SYNTHESIS = "SYNTHESIS"
    RECOGNITION = "RECOGNITION"
    MICROPHONE = "MICROPHONE"
