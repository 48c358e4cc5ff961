"""
Menu templates for the scheduling flow.

Menus are presentation-only: the engine returns a MenuTemplate and the caller
renders it for its channel (see conversation.rendering).
"""

from collections.abc import Sequence

from conversation.fsm.models import DayOption, MenuOption, MenuTemplate, SlotOption

BOOKING_OPTION_BOOK = "A"
BOOKING_OPTION_RESCHEDULE = "B"
BOOKING_OPTION_CANCEL = "C"
BOOKING_OPTION_UPLOAD = "D"

BOOKING_MENU_OPTIONS: tuple[MenuOption, ...] = (
    MenuOption(
        id=BOOKING_OPTION_BOOK,
        label="📅 Sacar nuevo turno",
        aliases=["1", "sacar turno", "turno nuevo", "nuevo turno", "sacar"],
    ),
    MenuOption(
        id=BOOKING_OPTION_RESCHEDULE,
        label="♻️ Reprogramar turno",
        aliases=["2", "reprogramar", "cambiar turno"],
    ),
    MenuOption(
        id=BOOKING_OPTION_CANCEL,
        label="❌ Cancelar turno",
        aliases=["3", "cancelar", "cancelar turno"],
    ),
    MenuOption(
        id=BOOKING_OPTION_UPLOAD,
        label="🗂 Subir estudios / documentos / recetas",
        aliases=["4", "subir documentos", "documentos", "estudios", "recetas"],
    ),
)


def build_booking_menu() -> MenuTemplate:
    """Main menu: book, reschedule, cancel, upload."""
    return MenuTemplate(
        title="¿Qué necesitás?",
        prompt="Elegí una opción para seguir:",
        options=[option.model_copy(deep=True) for option in BOOKING_MENU_OPTIONS],
        hint="Respondé con A, B, C o D.",
    )


def _menu_options(options: Sequence[DayOption | SlotOption]) -> list[MenuOption]:
    return [
        MenuOption(id=option.id, label=option.label, aliases=list(option.aliases))
        for option in options
    ]


def build_day_menu(options: Sequence[DayOption]) -> MenuTemplate:
    return MenuTemplate(
        title="Elegí un día",
        prompt="Respondé con la letra del día que prefieras:",
        options=_menu_options(options),
        hint='Podés escribir "volver" para regresar al menú.',
    )


def build_slot_menu(options: Sequence[SlotOption]) -> MenuTemplate:
    return MenuTemplate(
        title="Horarios disponibles",
        prompt="Respondé con la letra del horario que prefieras:",
        options=_menu_options(options),
        hint='Si querés volver atrás, escribí "volver".',
    )
