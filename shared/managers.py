# shared/managers.py
"""
Thread-local tenant and the manager that scopes every query to it.

TenantMiddleware sets the tenant per request; services that run after commit,
management commands and tests set it with TenantContext.
"""
import threading

from django.db import models

_state = threading.local()


def set_current_tenant(tenant):
    _state.tenant = tenant


def get_current_tenant():
    return getattr(_state, 'tenant', None)


class TenantManager(models.Manager):
    """
    `Model.objects` for tenant-scoped models.

    Without a current tenant the queryset is empty rather than unfiltered.
    """

    def get_queryset(self):
        tenant = get_current_tenant()
        qs = super().get_queryset()
        return qs.filter(tenant=tenant) if tenant else qs.none()

    def all_tenants(self):
        """Unscoped queryset, for the admin only."""
        return super().get_queryset()
