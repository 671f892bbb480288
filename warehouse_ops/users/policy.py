"""
Authorization policy for warehouse resources.

``is_allowed`` answers whether a user's effective role may perform an
action on a resource. Views consult it through ``HasResourcePermission``;
services and tests can call it directly.
"""

from core.exceptions import ForbiddenException

from .models import UserRole

PICKING_ROLES = {UserRole.PICKER, UserRole.ADMIN}
PACKING_ROLES = {UserRole.PACKER, UserRole.SUPERVISOR, UserRole.ADMIN}
STOCK_ROLES = {UserRole.STOCK_CONTROLLER, UserRole.SUPERVISOR, UserRole.ADMIN}
ALL_ROLES = set(UserRole.values)

POLICY = {
    "orders": {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "progress": ALL_ROLES,
        "create": {UserRole.SUPERVISOR, UserRole.ADMIN},
        "cancel": {UserRole.PICKER, UserRole.SUPERVISOR, UserRole.ADMIN},
        "my_orders": PICKING_ROLES | PACKING_ROLES,
        "claim": PICKING_ROLES,
        "continue_order": PICKING_ROLES,
        "next_task": PICKING_ROLES,
        "pick": PICKING_ROLES,
        "undo_pick": PICKING_ROLES,
        "skip_task": PICKING_ROLES,
        "unclaim": PICKING_ROLES,
        "complete": PICKING_ROLES,
        "packing_queue": PACKING_ROLES,
        "claim_for_packing": PACKING_ROLES,
        "verify_packing": PACKING_ROLES,
        "skip_packing_item": PACKING_ROLES,
        "undo_packing_verification": PACKING_ROLES,
        "complete_packing": PACKING_ROLES,
        "unclaim_packing": PACKING_ROLES,
        "ship": PACKING_ROLES,
    },
    "stock_control": {
        "read": STOCK_ROLES,
        "write": STOCK_ROLES,
        "reconcile": {UserRole.SUPERVISOR, UserRole.ADMIN},
    },
    "variance_severity": {
        "list": STOCK_ROLES,
        "classify": STOCK_ROLES,
        "create": {UserRole.SUPERVISOR, UserRole.ADMIN},
        "partial_update": {UserRole.SUPERVISOR, UserRole.ADMIN},
        "destroy": {UserRole.SUPERVISOR, UserRole.ADMIN},
        "reset": {UserRole.SUPERVISOR, UserRole.ADMIN},
    },
    "quality_control": {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "results": ALL_ROLES,
        "summary": ALL_ROLES,
        "create": STOCK_ROLES | PACKING_ROLES,
        "start": STOCK_ROLES | PACKING_ROLES,
        "record_result": STOCK_ROLES | PACKING_ROLES,
        "complete": {UserRole.SUPERVISOR, UserRole.ADMIN},
    },
    "order_exceptions": {
        "list": ALL_ROLES,
        "retrieve": ALL_ROLES,
        "open": ALL_ROLES,
        "summary": ALL_ROLES,
        "create": ALL_ROLES,
        "resolve": {UserRole.SUPERVISOR, UserRole.ADMIN},
    },
    "zone_assignments": {
        "list": ALL_ROLES,
        "summary": ALL_ROLES,
        "create": {UserRole.SUPERVISOR, UserRole.ADMIN},
        "release": {UserRole.SUPERVISOR, UserRole.ADMIN},
    },
    "notifications": {
        "list": ALL_ROLES,
        "read": ALL_ROLES,
    },
    "role_assignments": {
        "list": {UserRole.ADMIN},
        "retrieve": {UserRole.ADMIN},
        "create": {UserRole.ADMIN},
        "destroy": {UserRole.ADMIN},
    },
}


def is_allowed(user, resource: str, action: str) -> bool:
    """Return True if ``user`` may perform ``action`` on ``resource``."""
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    if getattr(user, "is_superuser", False):
        return True
    allowed = POLICY.get(resource, {}).get(action)
    if allowed is None:
        return False
    return user.effective_role in allowed


def authorize(user, resource: str, action: str) -> None:
    """Raise ForbiddenException unless the policy allows the action."""
    if not is_allowed(user, resource, action):
        raise ForbiddenException(f"Role may not perform {action} on {resource}")
