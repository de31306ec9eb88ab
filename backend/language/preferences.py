"""
Language preference store.

One JSON object on disk, keyed by client id, each entry holding the
language key. A store is bound to one client: it reads that client's entry
when a session starts and writes it only on an explicit user selection.
Other clients' entries are carried through untouched.

    {"<client_id>": {"assistive_vision.language": "Marathi"}, ...}
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from language.catalog import Language, default_language, resolve_language
from observability.logger import log_event

from spec import LANGUAGE_PREFERENCE_KEY

_CLIENT_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def is_valid_client_id(client_id: str | None) -> bool:
    """Opaque browser-generated id: 1-64 URL-safe characters."""
    return client_id is not None and _CLIENT_ID_RE.match(client_id) is not None


class PreferenceStore:
    """File-backed get/set of one client's preferred language."""

    def __init__(self, path: str | os.PathLike[str], *, client_id: str) -> None:
        if not is_valid_client_id(client_id):
            raise ValueError(f"invalid client id: {client_id!r}")
        self.path = Path(path)
        self.client_id = client_id

    def load_language(self) -> Language:
        """
        Stored language, or the default when the file is missing, unreadable
        or names an unknown language.
        """
        entry = self._read().get(self.client_id)
        name = entry.get(LANGUAGE_PREFERENCE_KEY) if isinstance(entry, dict) else None
        if isinstance(name, str):
            language = resolve_language(name)
            if language is not None:
                return language
            log_event({
                "event_type": "PREFERENCE_UNKNOWN_LANGUAGE",
                "path": str(self.path),
                "client_id": self.client_id,
                "value": name,
            })
        return default_language()

    def save_language(self, language: Language) -> None:
        """Persist the choice atomically (write temp file, then rename)."""
        data = self._read()
        entry = data.get(self.client_id)
        if not isinstance(entry, dict):
            entry = {}
        entry[LANGUAGE_PREFERENCE_KEY] = language.name
        data[self.client_id] = entry

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".pref-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        log_event({
            "event_type": "PREFERENCE_SAVED",
            "path": str(self.path),
            "client_id": self.client_id,
            "language": language.name,
        })

    def _read(self) -> dict[str, Any]:
        try:
            with self.path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            log_event({
                "event_type": "PREFERENCE_READ_ERROR",
                "path": str(self.path),
                "error": str(exc),
            })
            return {}
        return data if isinstance(data, dict) else {}
