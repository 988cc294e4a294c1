# apps/api/permissions.py
"""
Tenant-aware and role-based permissions for the REST API.

Roles are Django groups created by users/migrations/0002_create_rbac_groups:
Admin, Purchasing, Receiving, Costing.
"""
from rest_framework import permissions


class IsTenantUser(permissions.BasePermission):
    """
    The user must belong to the tenant resolved by TenantMiddleware.

    Superusers can access any tenant.
    """
    message = "You do not have permission to access this tenant's data."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if getattr(request, 'tenant', None) is None:
            return False
        if request.user.is_superuser:
            return True
        user_tenant_id = getattr(request.user, 'tenant_id', None)
        return user_tenant_id is None or user_tenant_id == request.tenant.pk

    def has_object_permission(self, request, view, obj):
        if hasattr(obj, 'tenant_id'):
            return obj.tenant_id == request.tenant.pk
        return True


class IsInGroup(permissions.BasePermission):
    """Base class for group-based permissions. Read access is open to tenant users."""
    group_name = None

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS or request.user.is_superuser:
            return True
        return request.user.groups.filter(name__in=[self.group_name, 'Admin']).exists()


class IsPurchasingTeam(IsInGroup):
    group_name = 'Purchasing'


class IsReceivingTeam(IsInGroup):
    """Posting and reversing receipts."""
    group_name = 'Receiving'


class IsCostingTeam(IsInGroup):
    """Landed cost allocation, rollup rebuilds and posting retries."""
    group_name = 'Costing'
