"""
Unit tests for conversation/utils/matching.py - rule-based reply matching.

Tests coverage:
- match_option() by letter id, numeric alias and keyword alias
- classify_quick_intent() keyword intents and precedence
- Keyword predicates (menu, back, affirmative, negative, menu selection)
- Generic acknowledgements and canned replies
- General question heuristic for the AI agent
"""

import pytest

from conversation.fsm.menus import BOOKING_MENU_OPTIONS
from conversation.fsm.models import DayOption, QuickIntent
from conversation.utils.matching import (
    build_acknowledgement_reply,
    classify_quick_intent,
    is_affirmative,
    is_back_command,
    is_bare_menu_keyword,
    is_explicit_menu_selection,
    is_generic_acknowledgement,
    is_menu_keyword,
    is_negative,
    match_option,
    should_defer_to_agent,
)


@pytest.fixture
def day_options():
    return [
        DayOption(id="A", date_iso="2025-11-04", label="Martes 04/11 (2 turnos)", aliases=["1"]),
        DayOption(id="B", date_iso="2025-11-05", label="Miércoles 05/11 (1 turno)", aliases=["2"]),
    ]


class TestMatchOption:
    """Test match_option()."""

    @pytest.mark.parametrize("reply", ["B", "b", "2", "2.", "Opción B", "opcion 2", "letra b", "la 2"])
    def test_letter_and_alias_select_same_option(self, day_options, reply):
        assert match_option(reply, day_options) is day_options[1]

    def test_unknown_reply(self, day_options):
        assert match_option("Z", day_options) is None
        assert match_option("3", day_options) is None

    def test_empty_reply(self, day_options):
        assert match_option("", day_options) is None
        assert match_option(None, day_options) is None

    def test_keyword_alias(self):
        option = match_option("Sacar turno", BOOKING_MENU_OPTIONS)

        assert option.id == "A"

    def test_numeric_alias_on_booking_menu(self):
        assert match_option("4", BOOKING_MENU_OPTIONS).id == "D"


class TestQuickIntent:
    """Test classify_quick_intent()."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("menu", QuickIntent.MENU),
            ("Volver al menú principal", QuickIntent.MENU),
            ("Quiero cancelar el turno", QuickIntent.CANCEL),
            ("dar de baja", QuickIntent.CANCEL),
            ("quiero anular", QuickIntent.CANCEL),
            ("necesito reprogramar", QuickIntent.RESCHEDULE),
            ("quiero cambiar el horario", QuickIntent.RESCHEDULE),
            ("quiero sacar un turno", QuickIntent.BOOK),
            ("Nuevo turno", QuickIntent.BOOK),
        ],
    )
    def test_intents(self, text, expected):
        assert classify_quick_intent(text) is expected

    def test_cancel_wins_over_reschedule(self):
        assert classify_quick_intent("cancelar y cambiar el turno") is QuickIntent.CANCEL

    @pytest.mark.parametrize("text", ["B", "2", "hola", "", None])
    def test_no_intent(self, text):
        assert classify_quick_intent(text) is None


class TestKeywordPredicates:
    """Test menu/back/confirmation predicates."""

    def test_menu_keyword(self):
        assert is_menu_keyword("Menú")
        assert is_menu_keyword("ver el menu")
        assert not is_menu_keyword("menudo")

    def test_bare_menu_keyword(self):
        assert is_bare_menu_keyword(" MENU ")
        assert not is_bare_menu_keyword("ver el menu")

    @pytest.mark.parametrize("text", ["volver", "Atrás", "regresar", "menu"])
    def test_back_command(self, text):
        assert is_back_command(text)

    @pytest.mark.parametrize("text", ["Sí", "si, dale", "ok", "Confirmo", "de acuerdo", "sí, cancelalo"])
    def test_affirmative(self, text):
        assert is_affirmative(text)

    @pytest.mark.parametrize("text", ["no", "No, gracias", "nop", "mejor no", "cancelar", "Cancelá"])
    def test_negative(self, text):
        assert is_negative(text)
        assert not is_affirmative(text)

    def test_negative_only_at_start(self):
        assert not is_negative("creo que no")

    @pytest.mark.parametrize(
        "text", ["A", "opción b", "letra c", "cancelar", "sacar turno", "documentos", "reprogramar"]
    )
    def test_explicit_menu_selection(self, text):
        assert is_explicit_menu_selection(text)

    @pytest.mark.parametrize("text", ["Ana Pérez", "12345678", "Av. Siempre Viva 742", "control anual"])
    def test_answers_are_not_menu_selections(self, text):
        assert not is_explicit_menu_selection(text)


class TestAcknowledgement:
    """Test generic acknowledgement detection and replies."""

    @pytest.mark.parametrize("text", ["gracias", "Muchas gracias!", "ok dale", "👍", "🙏🙏", "Genial, gracias"])
    def test_acknowledgements(self, text):
        assert is_generic_acknowledgement(text)

    @pytest.mark.parametrize("text", ["ok, quiero cambiar el turno", "gracias, cuánto sale?", "", "A"])
    def test_not_acknowledgements(self, text):
        assert not is_generic_acknowledgement(text)

    def test_thanks_reply(self):
        assert build_acknowledgement_reply("gracias").startswith("De nada")

    def test_okay_reply(self):
        assert build_acknowledgement_reply("ok") == "Listo, quedo atento 👌."


class TestDeferToAgent:
    """Test should_defer_to_agent()."""

    @pytest.mark.parametrize(
        "text",
        [
            "¿Cuánto cuesta la consulta?",
            "quiero saber si atienden los sábados",
            "cual es la direccion del consultorio",
            "aceptan transferencia",
            "info",
        ],
    )
    def test_general_questions(self, text):
        assert should_defer_to_agent(text)

    @pytest.mark.parametrize("text", ["menu", "Menú", "A", "ok", "opción b", "quiero un turno", ""])
    def test_flow_replies_stay_in_flow(self, text):
        assert not should_defer_to_agent(text)
