# apps/costing/tests/test_concurrency.py
"""
Two receipts for one variant posted from separate threads.

PostgreSQL serializes them on the rollup row lock; SQLite on the database
write lock taken by BEGIN IMMEDIATE.
"""
import threading
from decimal import Decimal

from django.db import connection
from django.test import TransactionTestCase

from apps.costing.models import CostLayerEvent, VariantCostRollup
from apps.costing.services import round_cost
from apps.posting.services import PostingOrchestrator
from apps.posting.tests.fakes import FakeGateway
from apps.purchasing.services import PurchaseOrderLineInput, PurchaseOrderService
from apps.receiving.models import GoodsReceipt
from apps.receiving.services import GoodsReceiptService, ReceiptLineInput
from apps.suppliers.models import Supplier
from apps.tenants.models import Tenant
from shared.managers import set_current_tenant
from shared.models import TenantContext
from users.models import User


class ConcurrentPostTest(TransactionTestCase):

    def setUp(self):
        self.tenant = Tenant.objects.create(name='Race Co', subdomain='test-race')
        self.user = User.objects.create_user(username='racer', password='pass')
        set_current_tenant(self.tenant)
        supplier = Supplier.objects.create(tenant=self.tenant, code='SUP1', name='Supplier One')
        po = PurchaseOrderService(self.tenant).create_purchase_order(
            supplier=supplier,
            saleor_warehouse_id='WH-1',
            lines=[PurchaseOrderLineInput('VAR-A', 100, Decimal('2.00'))],
        )
        service = self._service()
        po_line = po.lines.first()
        self.receipt_ids = [
            service.create_receipt(po, [ReceiptLineInput('VAR-A', qty, Decimal(cost), purchase_order_line=po_line)]).pk
            for qty, cost in ((10, '2.00'), (5, '5.00'))
        ]

    def tearDown(self):
        set_current_tenant(None)

    def _service(self):
        return GoodsReceiptService(
            self.tenant, self.user, orchestrator=PostingOrchestrator(self.tenant, gateway=FakeGateway())
        )

    def test_both_posts_succeed_with_serial_result(self):
        barrier = threading.Barrier(len(self.receipt_ids))
        errors = []

        def post(receipt_id):
            try:
                with TenantContext(self.tenant):
                    barrier.wait()
                    self._service().post_receipt(GoodsReceipt.objects.get(pk=receipt_id))
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=post, args=(pk,)) for pk in self.receipt_ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        rollup = VariantCostRollup.objects.get(saleor_variant_id='VAR-A', saleor_warehouse_id='WH-1')
        self.assertEqual(rollup.qty_on_hand, 15)
        self.assertEqual(rollup.total_cost, Decimal('45'))
        self.assertEqual(round_cost(rollup.wac), Decimal('3.0000'))
        self.assertEqual(
            sorted(CostLayerEvent.objects.filter(saleor_variant_id='VAR-A').values_list('sequence', flat=True)),
            [1, 2],
        )
