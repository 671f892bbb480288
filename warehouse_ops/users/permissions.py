from rest_framework import permissions

from .policy import is_allowed


class HasResourcePermission(permissions.BasePermission):
    """
    Delegates to the authorization policy.

    The view declares ``policy_resource`` and optionally ``policy_actions``
    mapping a DRF action name to a policy action; unmapped actions use the
    DRF action name itself.
    """

    message = "You do not have permission to perform this action."

    def has_permission(self, request, view):
        resource = getattr(view, "policy_resource", None)
        if resource is None:
            return bool(request.user and request.user.is_authenticated)
        action = getattr(view, "action", None) or request.method.lower()
        action = getattr(view, "policy_actions", {}).get(action, action)
        return is_allowed(request.user, resource, action)
