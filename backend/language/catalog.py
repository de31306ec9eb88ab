"""
Supported languages.

Order matters: the "Language" control cycles through this tuple and the
spoken selection menu pages through it.
"""

from __future__ import annotations

from dataclasses import dataclass

from spec import DEFAULT_LANGUAGE_NAME


@dataclass(frozen=True)
class Language:
    """A selectable language: display name, BCP-47 locale and spoken confirmation."""

    name: str
    code: str
    confirmation: str


LANGUAGES: tuple[Language, ...] = (
    Language("English", "en-IN", "Language set to English."),
    Language("Hindi", "hi-IN", "भाषा हिंदी में बदल दी गई है।"),
    Language("Marathi", "mr-IN", "भाषा मराठी निवडली आहे."),
    Language("Tamil", "ta-IN", "மொழி தமிழாக அமைக்கப்பட்டது."),
    Language("Telugu", "te-IN", "భాష తెలుగుకు మార్చబడింది."),
    Language("Bengali", "bn-IN", "ভাষা বাংলায় সেট করা হয়েছে।"),
    Language("Gujarati", "gu-IN", "ભાષા ગુજરાતી પર સેટ કરવામાં આવી છે."),
    Language("Kannada", "kn-IN", "ಭಾಷೆಯನ್ನು ಕನ್ನಡಕ್ಕೆ ಬದಲಾಯಿಸಲಾಗಿದೆ."),
    Language("Malayalam", "ml-IN", "ഭാഷ മലയാളത്തിലേക്ക് മാറ്റി."),
    Language("Punjabi", "pa-IN", "ਭਾਸ਼ਾ ਪੰਜਾਬੀ 'ਤੇ ਸੈੱਟ ਕੀਤੀ ਗਈ ਹੈ।"),
    Language("Urdu", "ur-IN", "زبان اردو پر سیٹ کر دی گئی ہے۔"),
)

_BY_NAME = {language.name.lower(): language for language in LANGUAGES}
_BY_CODE = {language.code.lower(): language for language in LANGUAGES}


def default_language() -> Language:
    return _BY_NAME[DEFAULT_LANGUAGE_NAME.lower()]


def resolve_language(name: str) -> Language | None:
    """Case-insensitive lookup by display name or locale code."""
    key = name.strip().lower()
    return _BY_NAME.get(key) or _BY_CODE.get(key)


def next_language(current: Language) -> Language:
    """The language after `current`, wrapping around."""
    index = LANGUAGES.index(current) if current in LANGUAGES else -1
    return LANGUAGES[(index + 1) % len(LANGUAGES)]


def menu_page(page: int, page_size: int) -> tuple[Language, ...]:
    """Languages offered on one page of the spoken menu (wraps to page 0)."""
    pages = max(1, -(-len(LANGUAGES) // page_size))
    start = (page % pages) * page_size
    return LANGUAGES[start:start + page_size]
