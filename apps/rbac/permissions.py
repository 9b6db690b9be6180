# apps/rbac/permissions.py
from typing import Iterable, Set

from django.db import DatabaseError
from rest_framework.permissions import BasePermission

# Who may read schedules vs. who may change them.
SCHEDULE_READERS = ("clinician", "staff", "admin")
SCHEDULE_WRITERS = ("staff", "admin")


def _norm(s: str) -> str:
    """Normalize role names for reliable comparisons."""
    return (s or "").strip().lower()


def user_roles(user) -> Set[str]:
    """Return the normalized role names bound to the user (empty when anonymous)."""
    if not getattr(user, "is_authenticated", False):
        return set()
    try:
        qs = user.role_bindings.select_related("role").values_list("role__name", flat=True)
        return {_norm(r) for r in qs}
    except DatabaseError:
        # Fail closed when the binding table can't be read.
        return set()


class HasRole(BasePermission):
    """
    Gate an endpoint by role names. The roles_required() factory below sets
    `required_roles`.

    - Superusers always pass (configurable via allow_superuser).
    - The 'admin' role passes everything.
    - Role matching is case-insensitive.
    """

    message = "You do not have permission to perform this action."
    required_roles: Set[str] = set()
    admin_role: str = "admin"
    allow_superuser: bool = True

    def has_permission(self, request, view) -> bool:
        # No roles configured → allow (useful for composing with other perms).
        if not self.required_roles:
            return True

        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        if self.allow_superuser and getattr(user, "is_superuser", False):
            return True

        roles = user_roles(user)
        if self.admin_role in roles:
            return True

        return bool(roles & self.required_roles)

    def has_object_permission(self, request, view, obj) -> bool:
        return self.has_permission(request, view)


def roles_required(*roles: Iterable[str]):
    """
    Return a concrete DRF permission class that requires ANY of the given roles.

    Usage:
        permission_classes = [IsAuthenticated, roles_required(*SCHEDULE_WRITERS)]
    """
    required = {_norm(r) for r in roles if isinstance(r, str) and r.strip()}

    class RolesRequired(HasRole):
        required_roles = required

    return RolesRequired
