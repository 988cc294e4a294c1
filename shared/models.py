# shared/models.py
"""
Abstract base models and the TenantContext helper.
"""
from django.db import models
from .managers import TenantManager, get_current_tenant, set_current_tenant


class TenantContext:
    """
    Run a block as `tenant`, restoring whatever tenant was current before.

        with TenantContext(receipt.tenant):
            orchestrator.process_receipt(receipt)
    """

    def __init__(self, tenant):
        self.tenant = tenant
        self._outer = None

    def __enter__(self):
        self._outer = get_current_tenant()
        set_current_tenant(self.tenant)
        return self.tenant

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_current_tenant(self._outer)
        return False


class TenantMixin(models.Model):
    """Owning tenant; `objects` only sees rows of the current tenant."""
    tenant = models.ForeignKey(
        'tenants.Tenant',
        on_delete=models.CASCADE,
        related_name='%(class)s_set'
    )

    objects = TenantManager()

    class Meta:
        abstract = True


class TimestampMixin(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
