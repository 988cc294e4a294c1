# apps/api/tests/test_costing.py
"""
API tests for cost state, rollup verification, reports, posting records and health.
"""
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from apps.costing.models import VariantCostRollup
from apps.posting.models import SaleorPostingRecord
from apps.posting.saleor import SaleorAPIError
from apps.posting.tests.fakes import FakeGateway
from apps.posting.services import PostingOrchestrator
from apps.purchasing.services import PurchaseOrderLineInput, PurchaseOrderService
from apps.receiving.services import GoodsReceiptService
from apps.suppliers.models import Supplier
from apps.tenants.models import Tenant
from shared.managers import set_current_tenant

User = get_user_model()


# =============================================================================
# BASE TEST CLASS
# =============================================================================

class CostingAPITestCase(TestCase):
    """A posted receipt of 10 x VAR-A at 10.00 on WH-1."""

    @classmethod
    def setUpTestData(cls):
        cls.tenant = Tenant.objects.create(name='Cost API Co', subdomain='test-cost-api', is_default=True)
        cls.user = User.objects.create_superuser(username='costadmin', email='cost@test.com', password='pass')
        cls.supplier = Supplier.objects.create(tenant=cls.tenant, code='SUP1', name='Supplier One')

    def setUp(self):
        set_current_tenant(self.tenant)
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

        po = PurchaseOrderService(self.tenant).create_purchase_order(
            supplier=self.supplier,
            saleor_warehouse_id='WH-1',
            lines=[PurchaseOrderLineInput('VAR-A', 10, Decimal('10.00'), variant_sku='A-SKU', variant_name='Shirt')],
        )
        service = GoodsReceiptService(
            self.tenant, self.user, orchestrator=PostingOrchestrator(self.tenant, gateway=FakeGateway())
        )
        self.receipt = service.post_receipt(service.create_from_purchase_order(po))

    def tearDown(self):
        set_current_tenant(None)

    def _get(self, url, params=None):
        response = self.client.get(url, params or {})
        set_current_tenant(self.tenant)
        return response

    def _post(self, url, data=None):
        response = self.client.post(url, data or {}, format='json')
        set_current_tenant(self.tenant)
        return response


# =============================================================================
# COST STATE
# =============================================================================

class CostStateAPITest(CostingAPITestCase):

    def test_state(self):
        response = self._get('/api/v1/cost-events/state/', {'variant': 'VAR-A', 'warehouse': 'WH-1'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['target'], 'VAR-A@WH-1')
        self.assertEqual(response.data['qty_on_hand'], 10)
        self.assertEqual(response.data['total_cost'], '100.0000')
        self.assertEqual(response.data['wac'], '10.0000')

    def test_state_requires_target(self):
        response = self._get('/api/v1/cost-events/state/', {'variant': 'VAR-A'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_verify_consistent(self):
        response = self._get('/api/v1/cost-events/verify/', {'variant': 'VAR-A', 'warehouse': 'WH-1'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['consistent'])

    def test_verify_and_rebuild_mismatch(self):
        VariantCostRollup.objects.filter(saleor_variant_id='VAR-A').update(qty_on_hand=99)

        response = self._get('/api/v1/cost-events/verify/', {'variant': 'VAR-A', 'warehouse': 'WH-1'})
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['consistent'])

        response = self._post('/api/v1/cost-events/rebuild/?variant=VAR-A&warehouse=WH-1')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['qty_on_hand'], 10)
        self.assertEqual(VariantCostRollup.objects.get(saleor_variant_id='VAR-A').qty_on_hand, 10)

    def test_list_events(self):
        response = self._get('/api/v1/cost-events/', {'saleor_variant_id': 'VAR-A'})
        self.assertEqual(response.data['count'], 1)
        event = response.data['results'][0]
        self.assertEqual(event['event_type'], 'RECEIPT')
        self.assertEqual(event['receipt_number'], self.receipt.receipt_number)

    def test_list_rollups(self):
        response = self._get('/api/v1/cost-rollups/')
        self.assertEqual([r['saleor_variant_id'] for r in response.data['results']], ['VAR-A'])


# =============================================================================
# REPORTS
# =============================================================================

class ReportsAPITest(CostingAPITestCase):

    def test_valuation(self):
        response = self._get('/api/v1/reports/valuation/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['item_count'], 1)
        self.assertEqual(response.data['total_quantity'], 10)
        self.assertEqual(response.data['total_value'], Decimal('100'))
        self.assertEqual(response.data['items'][0]['variant_sku'], 'A-SKU')

    def test_valuation_warehouse_filter(self):
        response = self._get('/api/v1/reports/valuation/', {'warehouse': 'WH-2'})
        self.assertEqual(response.data['item_count'], 0)

    def test_cost_history_bad_limit(self):
        response = self._get('/api/v1/reports/cost-history/', {'limit': 'many'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stock_movement(self):
        response = self._get('/api/v1/reports/stock-movement/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


# =============================================================================
# POSTING RECORDS
# =============================================================================

class PostingRecordAPITest(CostingAPITestCase):

    def _record(self):
        return SaleorPostingRecord.objects.get(goods_receipt=self.receipt)

    def test_list_pending(self):
        response = self._get('/api/v1/posting-records/', {'status': 'PENDING'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['receipt_number'], self.receipt.receipt_number)

    def test_retry_applies(self):
        record = self._record()
        with patch('apps.posting.services.get_gateway', return_value=FakeGateway()):
            response = self._post(f'/api/v1/posting-records/{record.pk}/retry/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['ok'])
        self.assertEqual(self._record().status, SaleorPostingRecord.Status.APPLIED)

    def test_retry_failure_is_bad_gateway(self):
        record = self._record()
        gateway = FakeGateway(error=SaleorAPIError('variant missing'))
        with patch('apps.posting.services.get_gateway', return_value=gateway):
            response = self._post(f'/api/v1/posting-records/{record.pk}/retry/')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['status'], 'FAILED')

    @override_settings(SALEOR_API_URL='', SALEOR_AUTH_TOKEN='')
    def test_variant_lookup_not_configured(self):
        response = self._get('/api/v1/saleor/variants/VAR-A/')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)


# =============================================================================
# HEALTH
# =============================================================================

class HealthAPITest(TestCase):

    def test_health_without_auth(self):
        response = APIClient().get('/api/v1/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['database'], 'connected')
