# apps/tenants/tests/test_models.py
"""
Tests for Tenant, TenantSettings, TenantSequence and tenant scoping.
"""
from django.test import TestCase
from django.db import IntegrityError

from apps.tenants.models import (
    Tenant, TenantSettings, TenantSequence,
    get_next_sequence_number, get_tenant_settings,
)
from apps.suppliers.models import Supplier
from shared.managers import set_current_tenant
from shared.models import TenantContext


class TenantModelTestCase(TestCase):

    def tearDown(self):
        set_current_tenant(None)

    def test_create_tenant(self):
        tenant = Tenant.objects.create(name='Acme Industries', subdomain='acme-industries')
        self.assertTrue(tenant.is_active)
        self.assertEqual(str(tenant), 'Acme Industries')

    def test_duplicate_subdomain(self):
        Tenant.objects.create(name='First', subdomain='unique-sub')
        with self.assertRaises(IntegrityError):
            Tenant.objects.create(name='Second', subdomain='unique-sub')

    def test_settings_auto_created_with_costing_defaults(self):
        tenant = Tenant.objects.create(name='Settings Co', subdomain='test-settings')
        settings = TenantSettings.objects.get(tenant=tenant)
        self.assertEqual(settings.currency, 'USD')
        self.assertFalse(settings.allow_negative_stock)
        self.assertEqual(settings.company_name, 'Settings Co')

    def test_get_tenant_settings_recreates_missing_row(self):
        tenant = Tenant.objects.create(name='No Settings', subdomain='no-settings')
        TenantSettings.objects.filter(tenant=tenant).delete()
        settings = get_tenant_settings(tenant)
        self.assertEqual(settings.tenant, tenant)

    def test_sequences_auto_created(self):
        tenant = Tenant.objects.create(name='Seq Co', subdomain='test-seq')
        types = set(tenant.sequences.values_list('sequence_type', flat=True))
        self.assertEqual(types, {'PO', 'GR', 'LC'})

    def test_next_sequence_number_increments(self):
        tenant = Tenant.objects.create(name='Num Co', subdomain='test-num')
        self.assertEqual(get_next_sequence_number(tenant, 'GR'), 'GR-000001')
        self.assertEqual(get_next_sequence_number(tenant, 'GR'), 'GR-000002')
        self.assertEqual(get_next_sequence_number(tenant, 'LC'), 'LC-000001')

    def test_next_sequence_number_creates_missing_sequence(self):
        tenant = Tenant.objects.create(name='Lazy Co', subdomain='test-lazy')
        TenantSequence.objects.filter(tenant=tenant, sequence_type='PO').delete()
        self.assertEqual(get_next_sequence_number(tenant, 'PO'), 'PO-000001')

    def test_tenant_isolation(self):
        tenant_a = Tenant.objects.create(name='Tenant A', subdomain='test-iso-a')
        tenant_b = Tenant.objects.create(name='Tenant B', subdomain='test-iso-b')

        with TenantContext(tenant_a):
            Supplier.objects.create(tenant=tenant_a, code='ISO-SUP', name='Isolated Supplier')

        with TenantContext(tenant_b):
            self.assertFalse(Supplier.objects.filter(code='ISO-SUP').exists())

        with TenantContext(tenant_a):
            self.assertTrue(Supplier.objects.filter(code='ISO-SUP').exists())

    def test_no_tenant_returns_nothing(self):
        tenant = Tenant.objects.create(name='Hidden', subdomain='test-hidden')
        Supplier.objects.create(tenant=tenant, code='H1', name='Hidden Supplier')
        set_current_tenant(None)
        self.assertEqual(Supplier.objects.count(), 0)
        self.assertEqual(Supplier.objects.all_tenants().filter(code='H1').count(), 1)
