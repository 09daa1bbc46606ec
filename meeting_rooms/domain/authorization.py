"""Role Authorization Gate"""
from meeting_rooms.domain.enums import Action, Role
from meeting_rooms.domain.exceptions import Forbidden

RECEPTION_ACTIONS = frozenset({
    Action.CHECK_IN,
    Action.MARK_NO_SHOW,
    Action.CONFIRM_COMPLETION,
})

OWNER_ACTIONS = frozenset({Action.VIEW, Action.UPDATE, Action.CANCEL})

ADMINISTRATOR_ACTIONS = frozenset({Action.MANAGE_ROOMS, Action.VIEW_AUDIT})


def authorize(role: Role, action: Action, is_owner: bool) -> bool:
    """Decide whether ``role`` may perform ``action``.

    Administrators may do anything. Approvers may do everything except the
    reception desk actions and the administrator-only ones (rooms, audit).
    Organizers may create, and may view, update or cancel only what they
    own. Reception only checks meetings in and out.
    """
    if role is Role.ADMINISTRATOR:
        return True
    if role is Role.APPROVER:
        return action not in RECEPTION_ACTIONS and action not in ADMINISTRATOR_ACTIONS
    if role is Role.ORGANIZER:
        if action is Action.CREATE:
            return True
        return action in OWNER_ACTIONS and is_owner
    if role is Role.RECEPTION:
        return action in RECEPTION_ACTIONS or action is Action.VIEW
    return False


def require(role: Role, action: Action, is_owner: bool = False) -> None:
    if not authorize(role, action, is_owner):
        raise Forbidden(f"Role {role.value} may not {action.value.replace('_', ' ')} this reservation")
