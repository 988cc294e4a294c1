# apps/purchasing/tests/test_services.py
"""
Tests for PurchaseOrderService: creation, line editing, cancel/close and the
received-quantity rollup that drives the derived status.
"""
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from apps.purchasing.models import PurchaseOrder
from apps.purchasing.services import PurchaseOrderLineInput, PurchaseOrderService
from apps.suppliers.models import Supplier
from apps.tenants.models import Tenant
from shared.managers import set_current_tenant
from users.models import User


class PurchasingBaseTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.tenant = Tenant.objects.create(name='Buy Co', subdomain='test-purchasing')
        cls.user = User.objects.create_user(username='buyer', password='pass')
        cls.supplier = Supplier.objects.create(tenant=cls.tenant, code='SUP1', name='Supplier One')

    def setUp(self):
        set_current_tenant(self.tenant)
        self.svc = PurchaseOrderService(self.tenant, self.user)

    def tearDown(self):
        set_current_tenant(None)

    def _make_po(self):
        return self.svc.create_purchase_order(
            supplier=self.supplier,
            saleor_warehouse_id='WH-1',
            lines=[
                PurchaseOrderLineInput('VAR-A', 10, Decimal('2.00')),
                PurchaseOrderLineInput('VAR-B', 5, Decimal('5.00'), variant_sku='B-SKU'),
            ],
        )


class CreatePurchaseOrderTest(PurchasingBaseTestCase):

    def test_create_numbers_po_and_lines(self):
        po = self._make_po()
        self.assertEqual(po.po_number, 'PO-000001')
        self.assertEqual(po.status, PurchaseOrder.Status.OPEN)
        self.assertEqual(list(po.lines.values_list('line_number', flat=True)), [10, 20])
        self.assertEqual(po.lines.first().currency, 'USD')
        self.assertEqual(po.total_expected_cost, Decimal('45.00'))
        self.assertEqual(po.created_by, self.user)

    def test_inactive_supplier_rejected(self):
        inactive = Supplier.objects.create(tenant=self.tenant, code='OLD', name='Old', is_active=False)
        with self.assertRaises(ValidationError):
            self.svc.create_purchase_order(supplier=inactive, saleor_warehouse_id='WH-1')

    def test_warehouse_required(self):
        with self.assertRaises(ValidationError):
            self.svc.create_purchase_order(supplier=self.supplier, saleor_warehouse_id='')

    def test_line_validation(self):
        po = self._make_po()
        with self.assertRaises(ValidationError):
            self.svc.add_line(po, PurchaseOrderLineInput('VAR-C', 0, Decimal('1.00')))
        with self.assertRaises(ValidationError):
            self.svc.add_line(po, PurchaseOrderLineInput('VAR-C', 1, Decimal('-1.00')))
        with self.assertRaises(ValidationError):
            self.svc.add_line(po, PurchaseOrderLineInput('', 1, Decimal('1.00')))


class LineEditingTest(PurchasingBaseTestCase):

    def test_update_line(self):
        po = self._make_po()
        line = po.lines.get(line_number=10)
        self.svc.update_line(line, quantity_ordered=12)
        line.refresh_from_db()
        self.assertEqual(line.quantity_ordered, 12)

    def test_update_unknown_field_rejected(self):
        line = self._make_po().lines.first()
        with self.assertRaises(ValidationError):
            self.svc.update_line(line, quantity_received=3)

    def test_received_line_is_frozen(self):
        po = self._make_po()
        line = po.lines.get(line_number=10)
        self.svc.apply_received_quantities(po, {line.pk: 2})
        line.refresh_from_db()
        with self.assertRaises(ValidationError):
            self.svc.update_line(line, quantity_ordered=20)
        with self.assertRaises(ValidationError):
            self.svc.remove_line(line)

    def test_remove_line(self):
        po = self._make_po()
        self.svc.remove_line(po.lines.get(line_number=20))
        self.assertEqual(po.lines.count(), 1)


class StatusTest(PurchasingBaseTestCase):

    def test_partial_then_full_receipt(self):
        po = self._make_po()
        line_a = po.lines.get(line_number=10)
        line_b = po.lines.get(line_number=20)

        po = self.svc.apply_received_quantities(po, {line_a.pk: 4})
        self.assertEqual(po.status, PurchaseOrder.Status.PARTIALLY_RECEIVED)

        po = self.svc.apply_received_quantities(po, {line_a.pk: 6, line_b.pk: 5})
        self.assertEqual(po.status, PurchaseOrder.Status.CLOSED)

    def test_reversal_reopens(self):
        po = self._make_po()
        line_a = po.lines.get(line_number=10)
        po = self.svc.apply_received_quantities(po, {line_a.pk: 4})
        po = self.svc.apply_received_quantities(po, {line_a.pk: -4})
        self.assertEqual(po.status, PurchaseOrder.Status.OPEN)

    def test_foreign_line_rejected(self):
        po = self._make_po()
        other = self._make_po()
        with self.assertRaises(ValidationError):
            self.svc.apply_received_quantities(po, {other.lines.first().pk: 1})

    def test_cancel(self):
        po = self.svc.cancel(self._make_po())
        self.assertEqual(po.status, PurchaseOrder.Status.CANCELLED)
        with self.assertRaises(ValidationError):
            self.svc.add_line(po, PurchaseOrderLineInput('VAR-C', 1, Decimal('1.00')))
        with self.assertRaises(ValidationError):
            self.svc.cancel(po)

    def test_cancel_after_receipt_rejected(self):
        po = self._make_po()
        self.svc.apply_received_quantities(po, {po.lines.first().pk: 1})
        with self.assertRaises(ValidationError):
            self.svc.cancel(po)

    def test_manual_close_sticks_with_nothing_received(self):
        po = self.svc.close(self._make_po())
        self.assertEqual(po.status, PurchaseOrder.Status.CLOSED)
        self.assertEqual(PurchaseOrderService.derive_status(po), PurchaseOrder.Status.CLOSED)
        self.assertFalse(po.is_receivable)
        self.assertTrue(po.closed_manually)

    def test_manual_close_sticks_after_partial_receipt_and_reversal(self):
        po = self._make_po()
        line_a = po.lines.get(line_number=10)
        self.svc.apply_received_quantities(po, {line_a.pk: 4})
        po = self.svc.close(po)

        po = self.svc.apply_received_quantities(po, {line_a.pk: -4})
        self.assertEqual(po.status, PurchaseOrder.Status.CLOSED)
        line_a.refresh_from_db()
        self.assertEqual(line_a.quantity_received, 0)

    def test_manually_closed_po_rejects_receipts(self):
        po = self.svc.close(self._make_po())
        with self.assertRaises(ValidationError):
            self.svc.apply_received_quantities(po, {po.lines.first().pk: 1})
        self.assertEqual(po.lines.first().quantity_received, 0)

    def test_cancelled_po_rejects_receipts(self):
        po = self._make_po()
        stale = PurchaseOrder.objects.get(pk=po.pk)
        self.svc.cancel(po)
        with self.assertRaises(ValidationError):
            self.svc.apply_received_quantities(stale, {po.lines.first().pk: 1})

    def test_fully_received_po_accepts_over_receipt(self):
        po = self._make_po()
        line_a = po.lines.get(line_number=10)
        line_b = po.lines.get(line_number=20)
        po = self.svc.apply_received_quantities(po, {line_a.pk: 10, line_b.pk: 5})
        self.assertEqual(po.status, PurchaseOrder.Status.CLOSED)
        self.assertFalse(po.closed_manually)

        po = self.svc.apply_received_quantities(po, {line_a.pk: 1})
        self.assertEqual(po.status, PurchaseOrder.Status.CLOSED)
        po = self.svc.apply_received_quantities(po, {line_a.pk: -5})
        self.assertEqual(po.status, PurchaseOrder.Status.PARTIALLY_RECEIVED)
