from django.db import models
from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType


class AuditLog(models.Model):
    """Business events on receipts, ledger variants, landed costs and postings (generic FK target)."""

    class Action(models.TextChoices):
        CREATE = 'CREATE', 'Created'
        POST = 'POST', 'Posted'
        REVERSE = 'REVERSE', 'Reversed'
        DELETE = 'DELETE', 'Deleted'
        ALLOCATE = 'ALLOCATE', 'Allocated'
        NEGATIVE_STOCK = 'NEGATIVE_STOCK', 'Negative stock recorded'
        SYNC_FAILED = 'SYNC_FAILED', 'External sync failed'
        ROLLUP_MISMATCH = 'ROLLUP_MISMATCH', 'Rollup disagrees with ledger'

    tenant = models.ForeignKey(
        'tenants.Tenant', on_delete=models.CASCADE, null=True, blank=True, related_name='audit_logs'
    )
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)
    action = models.CharField(max_length=20, choices=Action.choices)

    content_type = models.ForeignKey(ContentType, on_delete=models.CASCADE)
    object_id = models.PositiveIntegerField()
    content_object = GenericForeignKey('content_type', 'object_id')

    details = models.JSONField(blank=True, null=True, help_text="Event details (amounts, references, messages).")

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['content_type', 'object_id'], name='audit_object_idx'),
            models.Index(fields=['tenant', 'action'], name='audit_tenant_action_idx'),
        ]

    def __str__(self):
        return f"{self.action} by {self.user} on {self.content_object}"

    @classmethod
    def record(cls, obj, action, user=None, **details):
        """Write one entry for `obj`; the tenant is taken from the object when it has one."""
        return cls.objects.create(
            tenant_id=getattr(obj, 'tenant_id', None),
            user=user if getattr(user, 'is_authenticated', False) else None,
            action=action,
            content_type=ContentType.objects.get_for_model(obj),
            object_id=obj.pk,
            details=details or None,
        )
