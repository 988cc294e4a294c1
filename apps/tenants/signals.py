# apps/tenants/signals.py
"""
A new Tenant gets its TenantSettings row and the PO/GR/LC numbering sequences.
"""
from django.db.models.signals import post_save
from django.dispatch import receiver
from .models import Tenant, TenantSettings, TenantSequence, DEFAULT_SEQUENCES


@receiver(post_save, sender=Tenant)
def provision_tenant(sender, instance, created, **kwargs):
    if not created:
        return
    TenantSettings.objects.create(tenant=instance, company_name=instance.name)
    TenantSequence.objects.bulk_create([
        TenantSequence(tenant=instance, sequence_type=seq_type, prefix=prefix, next_value=1, padding=padding)
        for seq_type, prefix, padding in DEFAULT_SEQUENCES
    ])
