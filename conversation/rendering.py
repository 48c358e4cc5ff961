"""
Plain-text rendering of flow results for messaging channels.

Channels without interactive lists get the menu as lettered lines below the
reply, plus a reminder of the "menu" keyword.
"""

from conversation.fsm.models import BusinessType, MenuTemplate
from shared.config import get_settings


def format_menu_message(reply: str, menu: MenuTemplate | None = None) -> str:
    """
    Render a reply and its menu as a single message.

    Blocks (reply, title + prompt, options, hint) are separated by a blank line.

    Example:
        >>> print(format_menu_message("Elegí el día que te resulte cómodo:", day_menu))
        Elegí el día que te resulte cómodo:

        Elegí un día
        Respondé con la letra del día que prefieras:

        A. Martes 04/11 (2 turnos)
        B. Miércoles 05/11 (1 turno)

        Podés escribir "volver" para regresar al menú.
    """
    parts: list[str] = []
    if reply and reply.strip():
        parts.append(reply.strip())

    if menu is not None and menu.options:
        header = "\n".join(line.strip() for line in (menu.title, menu.prompt) if line.strip())
        options = "\n".join(
            f"{option.id}. {option.label}"
            + (f" · {option.description}" if option.description else "")
            for option in menu.options
        )
        parts.extend(part for part in (header, options) if part)
        if menu.hint:
            parts.append(menu.hint)

    return "\n\n".join(parts).strip()


def append_menu_hint(message: str, business_type: str | None = None) -> str:
    """
    Append the "escribí menu" reminder to an outgoing message.

    Retail businesses never get the hint, and messages that already mention
    the menu are left alone.
    """
    if (business_type or "").upper() == BusinessType.RETAIL.value:
        return message

    hint = get_settings().MENU_HINT
    if not message or not message.strip():
        return hint
    lowered = message.lower()
    if "menu" in lowered or "menú" in lowered:
        return message
    return f"{message.strip()}\n\n{hint}"
