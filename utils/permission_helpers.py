from rest_framework import permissions


class RoleBasedPermissions:
    """
    Reusable permission classes to eliminate code duplication.
    """

    @staticmethod
    def has_role(request, allowed_roles):
        """
        Generic role-based permission check.

        Args:
            request: HTTP request object
            allowed_roles (list): List of allowed role names

        Returns:
            bool: True if user has one of the allowed roles
        """
        if not request.user or not request.user.is_authenticated:
            return False

        return getattr(request.user, "role", None) in allowed_roles


class IsAdminUser(permissions.BasePermission):
    """
    Custom permission class to restrict access to admin users only.

    Used for moderation endpoints (vendors, services, delete requests),
    refunds, withdrawal status changes and the reconciliation sweep.
    """

    def has_permission(self, request, view):
        return RoleBasedPermissions.has_role(request, ["admin"])


class IsVendor(permissions.BasePermission):
    """
    Custom permission class to restrict access to vendor accounts.

    Vendors manage their own services, delete requests and withdrawals.
    """

    def has_permission(self, request, view):
        return RoleBasedPermissions.has_role(request, ["vendor"])


class IsTourist(permissions.BasePermission):
    """
    Custom permission class to restrict access to tourist accounts.
    """

    def has_permission(self, request, view):
        return RoleBasedPermissions.has_role(request, ["tourist"])


class IsVendorOrAdmin(permissions.BasePermission):
    """
    Custom permission class to restrict access to vendor or admin users.
    """

    def has_permission(self, request, view):
        return RoleBasedPermissions.has_role(request, ["vendor", "admin"])


class ActionPermissionMixin:
    """
    Mixin to provide permission classes per viewset action.

    Subclasses declare action_permission_classes, a dict of action name to
    permission classes. Actions not listed fall back to permission_classes.
    """

    action_permission_classes = {}

    def get_permissions(self):
        """
        Returns permission instances for the current action.

        Returns:
            list: Permission instances for self.action
        """
        classes = self.action_permission_classes.get(
            getattr(self, "action", None), self.permission_classes
        )
        return [permission() for permission in classes]
