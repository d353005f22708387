from rest_framework import permissions


class IsStoreAdmin(permissions.BasePermission):
    """Store admins by role, plus Django staff."""

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return bool(user.is_staff or getattr(user, "is_store_admin", False))
