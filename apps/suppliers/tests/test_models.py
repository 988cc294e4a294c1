# apps/suppliers/tests/test_models.py
"""
Tests for Supplier.
"""
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase

from apps.suppliers.models import Supplier
from apps.tenants.models import Tenant
from shared.managers import set_current_tenant


class SupplierModelTest(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.tenant = Tenant.objects.create(name='Supply Co', subdomain='test-suppliers')
        cls.other_tenant = Tenant.objects.create(name='Other Co', subdomain='test-suppliers-other')

    def setUp(self):
        set_current_tenant(self.tenant)

    def tearDown(self):
        set_current_tenant(None)

    def test_str(self):
        supplier = Supplier.objects.create(tenant=self.tenant, code='ACME', name='Acme Parts')
        self.assertEqual(str(supplier), 'ACME - Acme Parts')
        self.assertTrue(supplier.is_active)

    def test_code_unique_per_tenant(self):
        Supplier.objects.create(tenant=self.tenant, code='DUP', name='First')
        with self.assertRaises(IntegrityError):
            Supplier.objects.create(tenant=self.tenant, code='DUP', name='Second')

    def test_same_code_in_other_tenant(self):
        Supplier.objects.create(tenant=self.tenant, code='SHARED', name='Ours')
        Supplier.objects.create(tenant=self.other_tenant, code='SHARED', name='Theirs')
        self.assertEqual(Supplier.objects.filter(code='SHARED').count(), 1)

    def test_code_validator(self):
        supplier = Supplier(tenant=self.tenant, code='bad code!', name='Bad')
        with self.assertRaises(ValidationError) as ctx:
            supplier.full_clean()
        self.assertIn('code', ctx.exception.message_dict)
