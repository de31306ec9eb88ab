"""
Voice-guide command parsing.

Keyword rules, checked in order; the first keyword found in the lowercased
transcript wins. The argument is whatever follows the keyword phrase.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Intent(str, Enum):
    NAVIGATE = "NAVIGATE"
    FIND = "FIND"
    DESCRIBE = "DESCRIBE"
    CURRENCY = "CURRENCY"
    LANGUAGE = "LANGUAGE"
    EMERGENCY = "EMERGENCY"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class VoiceCommand:
    intent: Intent
    argument: str = ""


# (keyword, intent, prefixes stripped to obtain the argument; longest first)
_RULES: tuple[tuple[str, Intent, tuple[str, ...]], ...] = (
    ("navigate", Intent.NAVIGATE, ("navigate to", "navigate")),
    ("find", Intent.FIND, ("find object", "find")),
    ("describe", Intent.DESCRIBE, ()),
    ("currency", Intent.CURRENCY, ()),
    ("language", Intent.LANGUAGE, ()),
    ("emergency", Intent.EMERGENCY, ()),
)


def parse_command(transcript: str) -> VoiceCommand:
    """
    Map a transcript to an intent.

        >>> parse_command("Navigate to the railway station")
        VoiceCommand(intent=<Intent.NAVIGATE: 'NAVIGATE'>, argument='the railway station')
    """
    text = transcript.lower().strip()

    for keyword, intent, prefixes in _RULES:
        if keyword not in text:
            continue
        argument = ""
        for prefix in prefixes:
            index = text.find(prefix)
            if index != -1:
                argument = text[index + len(prefix):]
                break
        return VoiceCommand(intent=intent, argument=argument.strip(" .?!"))

    return VoiceCommand(intent=Intent.UNKNOWN)
