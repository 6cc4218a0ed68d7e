"""Short language tag -> speech recognition locale."""

from __future__ import annotations

_RECOGNITION_LOCALES: dict[str, str] = {
    "en": "en-US",
    "sv": "sv-SE",
    "de": "de-DE",
    "fr": "fr-FR",
    "es": "es-ES",
    "it": "it-IT",
    "pt": "pt-PT",
    "nl": "nl-NL",
    "da": "da-DK",
    "no": "nb-NO",
    "fi": "fi-FI",
    "pl": "pl-PL",
    "ru": "ru-RU",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "zh": "zh-CN",
}

DEFAULT_LOCALE = "en-US"


def recognition_locale(lang: str | None) -> str:
    """
    Map a language tag to the locale handed to the recogniser.

    "sv" -> "sv-SE"; tags that already carry a region pass through
    ("pt_BR" -> "pt-BR"); unknown tags fall back to "{lang}-{LANG}".
    """
    lang = (lang or "").strip()
    if not lang:
        return DEFAULT_LOCALE
    if "-" in lang or "_" in lang:
        return lang.replace("_", "-")
    return _RECOGNITION_LOCALES.get(lang.lower(), f"{lang.lower()}-{lang.upper()}")
