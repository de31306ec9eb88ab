"""
Spoken small-number parsing for voice menus.

Maps 0-5 spoken in English, Hindi, Marathi or Tamil to an int. Anything
unrecognized yields None, which callers treat as "ask again".
"""

from __future__ import annotations

import re
import string

_NUMBER_WORDS: dict[str, int] = {
    # English
    "zero": 0,
    "one": 1, "first": 1,
    "two": 2, "second": 2,
    "three": 3, "third": 3,
    "four": 4, "fourth": 4,
    "five": 5, "fifth": 5,
    # Hindi (Devanagari)
    "शून्य": 0,
    "एक": 1,
    "दो": 2,
    "तीन": 3,
    "चार": 4,
    "पांच": 5, "पाँच": 5,
    # Hindi (romanized)
    "shunya": 0, "ek": 1, "do": 2, "teen": 3, "char": 4, "chaar": 4,
    "paanch": 5, "panch": 5,
    # Marathi
    "दोन": 2, "पाच": 5,
    "don": 2, "paach": 5, "pach": 5,
    # Tamil
    "ஒன்று": 1, "இரண்டு": 2, "மூன்று": 3, "நான்கு": 4, "ஐந்து": 5,
    "poojyam": 0, "onru": 1, "ondru": 1, "irandu": 2, "rendu": 2,
    "moondru": 3, "munru": 3, "naangu": 4, "nangu": 4, "ainthu": 5, "aindhu": 5,
}

_STRIP = string.punctuation + "।॥“”‘’"

_DIGITS = re.compile(r"\d+")


def parse_spoken_number(text: str) -> int | None:
    """
    First recognizable number in `text`, or None.

    Words win over digits; digit runs in any script ("२") are accepted.
    """
    for raw in text.split():
        token = raw.strip(_STRIP).lower()
        if token in _NUMBER_WORDS:
            return _NUMBER_WORDS[token]

    match = _DIGITS.search(text)
    if match is None:
        return None
    return int(match.group())
