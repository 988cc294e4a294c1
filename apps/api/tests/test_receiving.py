# apps/api/tests/test_receiving.py
"""
API tests for suppliers, purchase orders, goods receipts and landed costs.

Requests run through TenantMiddleware, which resolves the default tenant and
clears the thread-local tenant when the response is returned.
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from apps.purchasing.services import PurchaseOrderLineInput, PurchaseOrderService
from apps.receiving.models import GoodsReceipt
from apps.suppliers.models import Supplier
from apps.tenants.models import Tenant
from shared.managers import set_current_tenant

User = get_user_model()


class ReceivingAPITestCase(TestCase):
    """Default tenant, a superuser client and an open purchase order."""

    @classmethod
    def setUpTestData(cls):
        cls.tenant = Tenant.objects.create(name='API Co', subdomain='test-api', is_default=True)
        cls.user = User.objects.create_superuser(username='apiadmin', email='admin@test.com', password='pass')
        cls.supplier = Supplier.objects.create(tenant=cls.tenant, code='SUP1', name='Supplier One')

    def setUp(self):
        set_current_tenant(self.tenant)
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)
        self.po = PurchaseOrderService(self.tenant).create_purchase_order(
            supplier=self.supplier,
            saleor_warehouse_id='WH-1',
            lines=[
                PurchaseOrderLineInput('VAR-A', 10, Decimal('10.00'), variant_sku='A-SKU'),
                PurchaseOrderLineInput('VAR-B', 5, Decimal('10.00'), variant_sku='B-SKU'),
            ],
        )

    def tearDown(self):
        set_current_tenant(None)

    def _post(self, url, data=None):
        response = self.client.post(url, data or {}, format='json')
        set_current_tenant(self.tenant)
        return response

    def _get(self, url, params=None):
        response = self.client.get(url, params or {})
        set_current_tenant(self.tenant)
        return response

    def _posted_receipt(self):
        response = self._post('/api/v1/receipts/from-purchase-order/', {'purchase_order': self.po.pk})
        receipt_id = response.data['id']
        self._post(f'/api/v1/receipts/{receipt_id}/post/')
        return receipt_id


class SupplierAPITest(ReceivingAPITestCase):

    def test_list_suppliers(self):
        response = self._get('/api/v1/suppliers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['code'] for s in response.data['results']], ['SUP1'])

    def test_create_supplier_assigns_tenant(self):
        response = self._post('/api/v1/suppliers/', {'code': 'SUP2', 'name': 'Supplier Two'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Supplier.objects.get(code='SUP2').tenant, self.tenant)


class PurchaseOrderAPITest(ReceivingAPITestCase):

    def test_create_purchase_order(self):
        response = self._post('/api/v1/purchase-orders/', {
            'supplier': self.supplier.pk,
            'saleor_warehouse_id': 'WH-2',
            'lines': [{'saleor_variant_id': 'VAR-C', 'quantity_ordered': 3, 'expected_unit_cost': '4.50'}],
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'OPEN')
        self.assertTrue(response.data['po_number'].startswith('PO-'))

    def test_add_and_list_lines(self):
        response = self._post(f'/api/v1/purchase-orders/{self.po.pk}/lines/', {
            'saleor_variant_id': 'VAR-C', 'quantity_ordered': 2, 'expected_unit_cost': '1.00',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['line_number'], 30)

        response = self._get(f'/api/v1/purchase-orders/{self.po.pk}/lines/')
        self.assertEqual(len(response.data), 3)

    def test_cancel(self):
        response = self._post(f'/api/v1/purchase-orders/{self.po.pk}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'CANCELLED')

        response = self._post(f'/api/v1/purchase-orders/{self.po.pk}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)


class GoodsReceiptAPITest(ReceivingAPITestCase):

    def test_create_draft_with_lines(self):
        line = self.po.lines.get(saleor_variant_id='VAR-A')
        response = self._post('/api/v1/receipts/', {
            'purchase_order': self.po.pk,
            'lines': [{
                'saleor_variant_id': 'VAR-A', 'quantity_received': 4,
                'unit_cost': '10.00', 'purchase_order_line': line.pk,
            }],
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'DRAFT')
        self.assertEqual(response.data['sync_status'], 'NOT_REQUIRED')
        self.assertEqual(len(response.data['lines']), 1)

    def test_post_receipt(self):
        response = self._post('/api/v1/receipts/from-purchase-order/', {'purchase_order': self.po.pk})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        receipt_id = response.data['id']

        response = self._post(f'/api/v1/receipts/{receipt_id}/post/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'POSTED')
        self.assertEqual(response.data['sync_status'], 'PENDING')
        self.assertTrue(response.data['can_reverse'])

        response = self._post(f'/api/v1/receipts/{receipt_id}/post/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_post_invalid_receipt_is_bad_request(self):
        response = self._post('/api/v1/receipts/', {'purchase_order': self.po.pk})
        response = self._post(f"/api/v1/receipts/{response.data['id']}/post/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('no lines', response.data['error'])

    def test_edit_draft_line(self):
        response = self._post('/api/v1/receipts/from-purchase-order/', {'purchase_order': self.po.pk})
        receipt_id = response.data['id']
        line_id = response.data['lines'][0]['id']

        response = self.client.patch(
            f'/api/v1/receipts/{receipt_id}/lines/{line_id}/', {'quantity_received': 7}, format='json'
        )
        set_current_tenant(self.tenant)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['quantity_received'], 7)

    def test_reverse_receipt(self):
        receipt_id = self._posted_receipt()

        response = self._post(f'/api/v1/receipts/{receipt_id}/reverse/', {'notes': 'Wrong shipment'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['reversal_of'], receipt_id)
        self.assertEqual(response.data['notes'], 'Wrong shipment')
        self.assertEqual(GoodsReceipt.objects.get(pk=receipt_id).status, GoodsReceipt.Status.REVERSED)

        response = self._post(f'/api/v1/receipts/{receipt_id}/reverse/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_postings_for_receipt(self):
        receipt_id = self._posted_receipt()
        response = self._get(f'/api/v1/receipts/{receipt_id}/postings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual({r['target'] for r in response.data}, {'VAR-A@WH-1', 'VAR-B@WH-1'})

    def test_delete_draft(self):
        response = self._post('/api/v1/receipts/from-purchase-order/', {'purchase_order': self.po.pk})
        receipt_id = response.data['id']

        response = self.client.delete(f'/api/v1/receipts/{receipt_id}/')
        set_current_tenant(self.tenant)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(GoodsReceipt.objects.filter(pk=receipt_id).exists())

    def test_delete_posted_receipt_conflicts(self):
        receipt_id = self._posted_receipt()
        response = self.client.delete(f'/api/v1/receipts/{receipt_id}/')
        set_current_tenant(self.tenant)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('only DRAFT', response.data['error'])
        self.assertTrue(GoodsReceipt.objects.filter(pk=receipt_id).exists())

    def test_filter_by_status(self):
        self._posted_receipt()
        self._post('/api/v1/receipts/', {'purchase_order': self.po.pk})
        response = self._get('/api/v1/receipts/', {'status': 'POSTED'})
        self.assertEqual(response.data['count'], 1)


class LandedCostAPITest(ReceivingAPITestCase):

    def test_preview(self):
        receipt_id = self._posted_receipt()
        response = self._post('/api/v1/landed-costs/preview/', {
            'receipts': [receipt_id], 'total_amount': '30.00', 'allocation_method': 'BY_VALUE',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['amount'] for row in response.data], ['20.00', '10.00'])

    def test_allocate(self):
        receipt_id = self._posted_receipt()
        response = self._post('/api/v1/landed-costs/allocate/', {
            'receipts': [receipt_id], 'total_amount': '30.00',
            'allocation_method': 'BY_VALUE', 'cost_type': 'FREIGHT',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['reference'], 'LC-000001')
        self.assertEqual(response.data['currency'], 'USD')
        self.assertEqual(len(response.data['allocations']), 2)

    def test_receipt_shows_landed_cost(self):
        receipt_id = self._posted_receipt()
        response = self._post('/api/v1/landed-costs/allocate/', {
            'receipts': [receipt_id], 'total_amount': '30.00',
            'allocation_method': 'BY_VALUE', 'cost_type': 'HANDLING',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['cost_type'], 'HANDLING')

        response = self._get(f'/api/v1/receipts/{receipt_id}/')
        self.assertEqual(response.data['landed_cost_total'], '30.00')
        line = response.data['lines'][0]
        self.assertEqual(line['landed_cost_total'], '20.00')
        self.assertEqual(line['landed_cost_per_unit'], '2.0000')
        self.assertEqual(line['landed_unit_cost'], '12.0000')

        response = self._get(f'/api/v1/receipts/{receipt_id}/landed-costs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['landed_cost_by_type'], {'HANDLING': Decimal('30.00')})
        self.assertEqual(response.data['landed_total_cost'], Decimal('180'))
        self.assertEqual(response.data['lines'][1]['landed_cost_per_unit'], Decimal('2.0000'))

    def test_allocate_to_draft_rejected(self):
        response = self._post('/api/v1/receipts/', {'purchase_order': self.po.pk})
        response = self._post('/api/v1/landed-costs/allocate/', {
            'receipts': [response.data['id']], 'total_amount': '30.00', 'allocation_method': 'BY_VALUE',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class GroupPermissionTest(ReceivingAPITestCase):

    def setUp(self):
        super().setUp()
        self.clerk = User.objects.create_user(username='clerk', password='pass', tenant=self.tenant)
        self.client.force_authenticate(user=self.clerk)

    def test_read_open_to_tenant_users(self):
        self.assertEqual(self._get('/api/v1/receipts/').status_code, status.HTTP_200_OK)

    def test_posting_requires_receiving_group(self):
        response = self._post('/api/v1/receipts/from-purchase-order/', {'purchase_order': self.po.pk})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.clerk.groups.add(Group.objects.get_or_create(name='Receiving')[0])
        response = self._post('/api/v1/receipts/from-purchase-order/', {'purchase_order': self.po.pk})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_unauthenticated(self):
        self.client.force_authenticate(user=None)
        self.assertEqual(self._get('/api/v1/receipts/').status_code, status.HTTP_401_UNAUTHORIZED)
