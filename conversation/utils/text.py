"""
Text normalization and free-text formatting for Spanish replies.

Comparison helpers (normalize_text, fold_text) feed every matcher in the flow.
Formatting helpers turn free-text onboarding answers (insurance, consult
reason) into the short canonical labels stored on the customer profile.
"""

import re
import unicodedata

NO_INSURANCE_LABEL = "Sin obra social"

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\s]")

_INSURANCE_NEGATIVE_PHRASES = (
    "no tengo",
    "sin obra",
    "sin prepaga",
    "no cuento",
    "particular",
    "no uso",
)
_INSURANCE_NEGATIVE_WORDS = frozenset({"no", "nop", "ninguna", "ninguno", "nada"})

_INSURANCE_FILLER = re.compile(
    r"\b(mi|la|el|es|tengo|tenemos|con|obra social|prepaga|prepago|se llama|llamada|"
    r"llamado|llama|es de|del|de|si|sí|aceptan|acepta|toma|toman|trabajan|trabaja|"
    r"atienden|atiende)\b",
    re.IGNORECASE,
)

_LEADING_ARTICLE = re.compile(r"^(el|la|los|las|un|una|unos|unas)\s+", re.IGNORECASE)
_TRAILING_PUNCTUATION = re.compile(r"[.,;:]+$")


def normalize_text(text: str | None) -> str:
    """Trim and lower-case incoming text."""
    if not text:
        return ""
    return text.strip().lower()


def strip_accents(text: str) -> str:
    """Remove diacritics ("menú" -> "menu", "opción" -> "opcion")."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def fold_text(text: str | None) -> str:
    """
    Comparison form of a message: lower-case, no diacritics, no punctuation,
    single spaces.

    Example:
        >>> fold_text("  ¡Opción B!  ")
        'opcion b'
    """
    folded = strip_accents(normalize_text(text))
    folded = _NON_WORD.sub(" ", folded)
    return _WHITESPACE.sub(" ", folded).strip()


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def sentence_case(value: str) -> str:
    """Lower-case everything and capitalize the first character."""
    if not value:
        return value
    lower = value.lower()
    return lower[0].upper() + lower[1:]


def _cleanup_tail(value: str | None) -> str:
    if not value:
        return ""
    return _TRAILING_PUNCTUATION.sub("", value).strip()


def normalize_insurance_answer(raw: str | None) -> str | None:
    """
    Turn a free-text insurance answer into the label stored on the profile.

    Args:
        raw: Customer answer (e.g., "mi obra social es OSDE", "no tengo")

    Returns:
        "Sin obra social" for negative answers, a sentence-cased provider name
        otherwise, or None for empty input.

    Examples:
        >>> normalize_insurance_answer("Tengo obra social: Swiss Medical")
        'Swiss medical'
        >>> normalize_insurance_answer("soy particular")
        'Sin obra social'
    """
    if not raw:
        return None
    trimmed = raw.strip()
    if not trimmed:
        return None

    lower = trimmed.lower()
    if fold_text(trimmed) in _INSURANCE_NEGATIVE_WORDS:
        return NO_INSURANCE_LABEL
    if any(phrase in lower for phrase in _INSURANCE_NEGATIVE_PHRASES):
        return NO_INSURANCE_LABEL

    cleaned = re.sub(r"[:.,]", " ", trimmed)
    cleaned = _INSURANCE_FILLER.sub(" ", cleaned)
    cleaned = collapse_whitespace(cleaned)

    if not cleaned:
        cleaned = trimmed

    # Two-letter leftovers are acronyms ("OS", "IO")
    if len(cleaned) <= 2:
        return cleaned.upper()

    return sentence_case(cleaned)


def _pain_phrase(raw_zone: str | None) -> str:
    zone = _LEADING_ARTICLE.sub("", _cleanup_tail(raw_zone)).strip()
    if not zone:
        return "Dolor"
    return f"Dolor de {zone}"


_CONSULT_REASON_PATTERNS = (
    (re.compile(r"^me\s+duele\s+(.+)$", re.IGNORECASE), lambda m: _pain_phrase(m.group(1))),
    (re.compile(r"^me\s+est[aá]\s+doliendo\s+(.+)$", re.IGNORECASE), lambda m: _pain_phrase(m.group(1))),
    (re.compile(r"^tengo\s+dolor(?:\s+en|\s+de)?\s+(.+)$", re.IGNORECASE), lambda m: _pain_phrase(m.group(1))),
    (re.compile(r"^dolor\s+(?:en|de)?\s*(.+)$", re.IGNORECASE), lambda m: _pain_phrase(m.group(1))),
    (re.compile(r"^me\s+siento\s+mal", re.IGNORECASE), lambda m: "Malestar general"),
    (re.compile(r"^control\s+(.+)$", re.IGNORECASE), lambda m: f"Control {_cleanup_tail(m.group(1))}"),
    (re.compile(r"^consulta\s+por\s+(.+)$", re.IGNORECASE), lambda m: f"Consulta por {_cleanup_tail(m.group(1))}"),
    (re.compile(r"^turno\s+para\s+(.+)$", re.IGNORECASE), lambda m: f"Turno para {_cleanup_tail(m.group(1))}"),
)


def format_consult_reason_answer(raw: str | None, max_length: int = 160) -> str | None:
    """
    Normalize a free-text consult reason.

    Recognizes common phrasings ("me duele la espalda" -> "Dolor de espalda",
    "control anual" -> "Control anual"); anything else is sentence-cased.

    Args:
        raw: Customer answer
        max_length: Maximum length of the stored reason

    Returns:
        Formatted reason capped to max_length, or None if nothing usable remains
    """
    if not raw:
        return None
    normalized = collapse_whitespace(raw)
    if not normalized:
        return None

    formatted = ""
    for pattern, build in _CONSULT_REASON_PATTERNS:
        match = pattern.match(normalized)
        if match:
            formatted = collapse_whitespace(build(match))
            if formatted:
                break

    if not formatted:
        formatted = _cleanup_tail(normalized)
    if not formatted:
        return None

    return sentence_case(formatted)[:max_length].rstrip()
