"""
Rule-based matching of customer replies.

Everything that decides "what did the customer mean" without an LLM lives here:
- match_option(): letter id / alias lookup against a generated option list
- classify_quick_intent(): menu/cancel/reschedule/book keywords, shared by every state
- Keyword predicates: back, menu, affirmative, negative, acknowledgement,
  menu-selection-looking replies, general questions for the AI agent

All predicates work on fold_text() output, so accents, case and punctuation
never change the outcome.
"""

import re
from collections.abc import Sequence
from typing import Protocol, TypeVar

from conversation.fsm.models import QuickIntent
from conversation.utils.text import fold_text, normalize_text


class MatchableOption(Protocol):
    id: str
    aliases: list[str]


OptionT = TypeVar("OptionT", bound=MatchableOption)

# "opción b", "letra c", "la 2", "nro 3" -> "b", "c", "2", "3"
_OPTION_PREFIX = re.compile(r"^(?:opcion|opc|letra|numero|nro|num|la|el)\s+")


def option_token(text: str | None) -> str:
    """Compact comparison token for option matching ("Opción B." -> "b")."""
    folded = _OPTION_PREFIX.sub("", fold_text(text))
    return folded.replace(" ", "")


def match_option(text: str | None, options: Sequence[OptionT]) -> OptionT | None:
    """
    Find the option a reply refers to, by id or alias.

    Args:
        text: Customer reply
        options: Generated options (days, slots or menu entries)

    Returns:
        The first option whose id or one of whose aliases equals the reply's
        token, or None.

    Example:
        >>> days = build_day_options(slots, "America/Argentina/Buenos_Aires")
        >>> match_option("b", days) is match_option("2", days)
        True
    """
    token = option_token(text)
    if not token:
        return None
    for option in options:
        if token == option.id.lower():
            return option
        if any(token == option_token(alias) for alias in option.aliases or []):
            return option
    return None


# ============================================================================
# Quick intents
# ============================================================================

# Evaluated in order: the first pattern that matches wins
QUICK_INTENT_PATTERNS: tuple[tuple[QuickIntent, re.Pattern[str]], ...] = (
    (QuickIntent.MENU, re.compile(r"\b(menu|opciones|principal)\b")),
    (QuickIntent.CANCEL, re.compile(r"\b(cancel|baja\b|anul)")),
    (QuickIntent.RESCHEDULE, re.compile(r"\b(reprogram|cambiar)")),
    (QuickIntent.BOOK, re.compile(r"\b(sacar|turno nuevo|nuevo turno|agendar)\b")),
)


def classify_quick_intent(text: str | None) -> QuickIntent | None:
    """
    Detect a mid-flow keyword intent.

    Examples:
        >>> classify_quick_intent("Quiero cancelar el turno")
        <QuickIntent.CANCEL: 'cancel'>
        >>> classify_quick_intent("B") is None
        True
    """
    folded = fold_text(text)
    if not folded:
        return None
    for intent, pattern in QUICK_INTENT_PATTERNS:
        if pattern.search(folded):
            return intent
    return None


# ============================================================================
# Keyword predicates
# ============================================================================

_MENU_KEYWORD = re.compile(r"\bmenu\b")
_BACK_KEYWORD = re.compile(r"\b(volver|atras|regresar|menu)\b")
_UPLOAD_KEYWORD = re.compile(r"\b(subir|documentos?|estudios?|recetas?|archivos?)\b")

_MENU_SELECTION_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"^[abcd]$",
        r"^opcion\s+[abcd1-4]$",
        r"^letra\s+[abcd]$",
        r"^sacar(\s+un)?\s+turno",
        r"^quiero(\s+un)?\s+turno",
        r"^agendar(\s+un)?\s+turno",
        r"^reprogram",
        r"^cambiar(\s+de)?\s+turno",
        r"^cancel",
        r"^baja\b",
        r"^subir\s+(documentos|estudios|recetas?)",
        r"^documentos?$",
        r"^estudios?$",
        r"^recetas?$",
    )
)

_AFFIRMATIVE = re.compile(
    r"\b(si|dale|ok|okay|confirmo|confirmar|confirmado|perfecto|claro|de acuerdo|afirmativo)\b"
)
_NEGATIVE = re.compile(r"^(no|nop|nah|mejor no|prefiero que no|cancelar|cancela)\b")

_ACKNOWLEDGEMENT_WORDS = frozenset(
    {
        "gracias",
        "muchas",
        "mil",
        "ok",
        "okay",
        "oka",
        "dale",
        "perfecto",
        "genial",
        "listo",
        "bien",
        "buenisimo",
        "joya",
        "barbaro",
    }
)
_ACKNOWLEDGEMENT_EMOJI = ("👍", "🙏", "👌", "🙌")


def is_menu_keyword(text: str | None) -> bool:
    """True if the reply asks for the main menu ("menu", "Menú", "ver menú")."""
    return bool(_MENU_KEYWORD.search(fold_text(text)))


def is_bare_menu_keyword(text: str | None) -> bool:
    """True if the whole reply is the menu keyword."""
    return fold_text(text) == "menu"


def is_back_command(text: str | None) -> bool:
    """True for "volver", "atrás", "regresar" (and the menu keyword)."""
    return bool(_BACK_KEYWORD.search(fold_text(text)))


def is_upload_request(text: str | None) -> bool:
    return bool(_UPLOAD_KEYWORD.search(fold_text(text)))


def is_explicit_menu_selection(text: str | None) -> bool:
    """
    True if the reply looks like a booking-menu choice rather than an answer
    to an onboarding question ("A", "opción B", "cancelar", "sacar turno").
    """
    folded = fold_text(text)
    if not folded:
        return False
    if folded.replace(" ", "") in {"a", "b", "c", "d"}:
        return True
    return any(pattern.search(folded) for pattern in _MENU_SELECTION_PATTERNS)


def is_negative(text: str | None) -> bool:
    return bool(_NEGATIVE.search(fold_text(text)))


def is_affirmative(text: str | None) -> bool:
    folded = fold_text(text)
    if _NEGATIVE.search(folded):
        return False
    return bool(_AFFIRMATIVE.search(folded))


def is_generic_acknowledgement(text: str | None) -> bool:
    """
    True if the whole message is a thank-you / okay ("gracias", "ok dale", "👍").

    Messages that carry anything else ("ok, quiero cambiar el turno") are not
    acknowledgements.
    """
    stripped = (text or "").strip()
    if not stripped:
        return False
    without_emoji = stripped
    for emoji in _ACKNOWLEDGEMENT_EMOJI:
        without_emoji = without_emoji.replace(emoji, " ")
    words = fold_text(without_emoji).split()
    if not words:
        return without_emoji != stripped
    return all(word in _ACKNOWLEDGEMENT_WORDS for word in words)


def build_acknowledgement_reply(text: str | None) -> str:
    """Canned reply for a generic acknowledgement."""
    if "gracias" in fold_text(text) or "🙏" in (text or ""):
        return "De nada 🙌. Si necesitás algo más, escribime por acá."
    return "Listo, quedo atento 👌."


# ============================================================================
# General questions (delegated to the AI agent)
# ============================================================================

GENERAL_QUESTION_KEYWORDS = (
    "precio",
    "valor",
    "cuanto",
    "cuesta",
    "arancel",
    "honorario",
    "costo",
    "tarifa",
    "horario",
    "atiende",
    "trabaja",
    "dias",
    "sabado",
    "domingo",
    "direccion",
    "donde",
    "ubicacion",
    "telefono",
    "pago",
    "pagar",
    "transferencia",
    "efectivo",
    "consultorio",
    "duracion",
    "obra social",
    "prepaga",
    "particular",
)

_INFO_REQUEST_OPENING = re.compile(
    r"^(quiero saber|me podes|me podrias|podes decirme|podrias decirme|informacion|info)\b"
)
_SINGLE_LETTER = re.compile(r"^[a-z]$")
_OPTION_REPLY = re.compile(r"^opcion\s+[a-z0-9]")


def is_general_question(text: str | None) -> bool:
    """
    Heuristic for open-ended questions: a question mark, a pricing/schedule/
    location/payment/coverage keyword, or an information-request opening.
    """
    if "?" in normalize_text(text):
        return True
    folded = fold_text(text)
    if any(keyword in folded for keyword in GENERAL_QUESTION_KEYWORDS):
        return True
    return bool(_INFO_REQUEST_OPENING.search(folded))


def should_defer_to_agent(text: str | None) -> bool:
    """
    True if the message should go to the AI agent instead of the flow.

    Menu keywords, one/two-character replies, single letters and "opción X"
    replies always stay in the flow.
    """
    normalized = normalize_text(text)
    if not normalized:
        return False
    folded = fold_text(text)
    if folded == "menu":
        return False
    if len(normalized) <= 2:
        return False
    if _SINGLE_LETTER.match(folded) or _OPTION_REPLY.match(folded):
        return False
    return is_general_question(text)
