# apps/posting/tests/test_services.py
"""
Tests for PostingOrchestrator: at-most-once application, failure and
timeout handling, supersession of stale absolute values, the in-flight
lease and the retry_postings command.
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from apps.posting.models import SaleorPostingRecord
from apps.posting.saleor import SaleorAPIError, SaleorTimeoutError
from apps.posting.services import PostingError, PostingOrchestrator
from apps.posting.tests.fakes import FakeGateway
from apps.purchasing.services import PurchaseOrderLineInput, PurchaseOrderService
from apps.receiving.models import GoodsReceipt
from apps.receiving.services import GoodsReceiptService, ReceiptLineInput
from apps.suppliers.models import Supplier
from apps.tenants.models import Tenant
from core.models import AuditLog
from shared.managers import set_current_tenant
from users.models import User

Status = SaleorPostingRecord.Status


class PostingBaseTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.tenant = Tenant.objects.create(name='Sync Co', subdomain='test-posting')
        cls.user = User.objects.create_user(username='syncer', password='pass')
        cls.supplier = Supplier.objects.create(tenant=cls.tenant, code='SUP1', name='Supplier One')

    def setUp(self):
        set_current_tenant(self.tenant)
        self.gateway = FakeGateway()
        self.orchestrator = PostingOrchestrator(self.tenant, gateway=self.gateway)
        self.receiving = GoodsReceiptService(self.tenant, self.user, orchestrator=self.orchestrator)
        self.po = PurchaseOrderService(self.tenant).create_purchase_order(
            supplier=self.supplier,
            saleor_warehouse_id='WH-1',
            lines=[PurchaseOrderLineInput('VAR-A', 100, Decimal('2.00'))],
        )

    def tearDown(self):
        set_current_tenant(None)

    def _post(self, qty=10, cost='2.00'):
        receipt = self.receiving.create_receipt(self.po, [
            ReceiptLineInput('VAR-A', qty, Decimal(cost), purchase_order_line=self.po.lines.first()),
        ])
        return self.receiving.post_receipt(receipt)

    def _record(self, receipt):
        return SaleorPostingRecord.objects.get(goods_receipt=receipt)


class EnqueueTest(PostingBaseTestCase):

    def test_enqueue_is_insert_if_absent(self):
        receipt = self._post()
        again = self.orchestrator.enqueue_receipt(receipt)
        self.assertEqual(len(again), 1)
        self.assertEqual(SaleorPostingRecord.objects.filter(goods_receipt=receipt).count(), 1)

    def test_record_captures_ledger_state(self):
        record = self._record(self._post())
        self.assertEqual(record.target, 'VAR-A@WH-1')
        self.assertEqual(record.quantity_delta, 10)
        self.assertEqual(record.cost_delta, Decimal('20'))
        self.assertEqual(record.ledger_sequence, 1)
        self.assertEqual(record.request_payload['new_unit_cost'], '2.0000')
        self.assertEqual(record.source_label, record.goods_receipt.receipt_number)


class ProcessTest(PostingBaseTestCase):

    def test_applies_once(self):
        receipt = self._post()
        results = self.orchestrator.process_receipt(receipt)
        self.assertTrue(results[0].ok)
        self.assertTrue(results[0].called_gateway)

        record = self._record(receipt)
        self.assertEqual(record.status, Status.APPLIED)
        self.assertEqual(record.attempts, 1)
        self.assertEqual(record.external_reference, f'fake:{record.idempotency_key}')
        self.assertIsNotNone(record.applied_at)

        results = self.orchestrator.process_receipt(receipt)
        self.assertTrue(results[0].ok)
        self.assertFalse(results[0].called_gateway)
        self.assertEqual(len(self.gateway.calls), 1)

    def test_gateway_receives_absolute_quantity(self):
        self._post(qty=10)
        second = self._post(qty=5, cost='5.00')
        self.orchestrator.process_receipt(second)
        call = self.gateway.calls[0]
        self.assertEqual(call['quantity_delta'], 5)
        self.assertEqual(call['quantity_after'], 15)
        self.assertEqual(call['new_unit_cost'], Decimal('3.0000'))
        self.assertEqual(call['currency'], 'USD')

    def test_failure_marks_failed(self):
        receipt = self._post()
        self.gateway.error = SaleorAPIError('variant does not exist')
        with self.assertRaises(PostingError):
            self.orchestrator.process_record(self._record(receipt))

        record = self._record(receipt)
        self.assertEqual(record.status, Status.FAILED)
        self.assertEqual(record.error_message, 'variant does not exist')
        self.assertIsNone(record.lease_expires_at)
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.Action.SYNC_FAILED, object_id=record.pk).exists())
        self.assertEqual(GoodsReceipt.objects.get(pk=receipt.pk).status, GoodsReceipt.Status.POSTED)

    def test_rejection_marks_failed(self):
        receipt = self._post()
        self.gateway.reject = 'stock locked'
        results = self.orchestrator.process_receipt(receipt)
        self.assertFalse(results[0].ok)
        self.assertEqual(self._record(receipt).status, Status.FAILED)

    def test_failed_record_retried_on_same_key(self):
        receipt = self._post()
        self.gateway.error = SaleorAPIError('boom')
        self.orchestrator.process_receipt(receipt)

        self.gateway.error = None
        results = self.orchestrator.process_receipt(receipt)
        self.assertTrue(results[0].ok)
        record = self._record(receipt)
        self.assertEqual(record.attempts, 2)
        self.assertEqual(record.error_message, '')
        self.assertEqual(self.gateway.keys, [record.idempotency_key, record.idempotency_key])

    def test_timeout_leaves_pending(self):
        receipt = self._post()
        self.gateway.error = SaleorTimeoutError('timed out')
        results = self.orchestrator.process_receipt(receipt)
        self.assertFalse(results[0].ok)

        record = self._record(receipt)
        self.assertEqual(record.status, Status.PENDING)
        self.assertIsNone(record.lease_expires_at)
        self.assertEqual(record.attempts, 1)

    def test_timeout_on_failed_record_returns_to_pending(self):
        receipt = self._post()
        self.gateway.error = SaleorAPIError('boom')
        self.orchestrator.process_receipt(receipt)
        self.assertEqual(self._record(receipt).status, Status.FAILED)

        self.gateway.error = SaleorTimeoutError('timed out')
        results = self.orchestrator.process_receipt(receipt)
        self.assertFalse(results[0].ok)

        record = self._record(receipt)
        self.assertEqual(record.status, Status.PENDING)
        self.assertIsNone(record.lease_expires_at)
        self.assertEqual(record.error_message, 'timed out')
        self.assertEqual(record.attempts, 2)

    def test_in_flight_record_skipped(self):
        receipt = self._post()
        SaleorPostingRecord.objects.filter(goods_receipt=receipt).update(
            lease_expires_at=timezone.now() + timedelta(minutes=5)
        )
        results = self.orchestrator.process_receipt(receipt)
        self.assertEqual(results[0].error, 'attempt already in flight')
        self.assertEqual(self.gateway.calls, [])

    def test_expired_lease_reclaimed(self):
        receipt = self._post()
        SaleorPostingRecord.objects.filter(goods_receipt=receipt).update(
            lease_expires_at=timezone.now() - timedelta(seconds=1)
        )
        self.assertTrue(self.orchestrator.process_receipt(receipt)[0].ok)

    def test_stale_record_superseded(self):
        first = self._post(qty=10)
        second = self._post(qty=5)
        self.orchestrator.process_receipt(second)
        results = self.orchestrator.process_receipt(first)

        self.assertTrue(results[0].ok)
        record = self._record(first)
        self.assertEqual(record.status, Status.APPLIED)
        self.assertTrue(record.external_reference.startswith('superseded:'))
        self.assertEqual(self.gateway.keys, [self._record(second).idempotency_key])

    def test_process_pending_orders_by_ledger_sequence(self):
        first = self._post(qty=10)
        second = self._post(qty=5)
        results = self.orchestrator.process_pending()
        self.assertEqual(
            [r.idempotency_key for r in results],
            [self._record(first).idempotency_key, self._record(second).idempotency_key],
        )
        self.assertEqual([call['quantity_after'] for call in self.gateway.calls], [10, 15])

    def test_process_pending_status_filter_and_limit(self):
        self._post()
        self._post()
        results = self.orchestrator.process_pending(statuses=[Status.FAILED])
        self.assertEqual(results, [])
        results = self.orchestrator.process_pending(limit=1)
        self.assertEqual(len(results), 1)


class RetryCommandTest(PostingBaseTestCase):

    def test_retry_applies_failed_records(self):
        receipt = self._post()
        self.gateway.error = SaleorAPIError('down')
        self.orchestrator.process_receipt(receipt)

        out = StringIO()
        with patch('apps.posting.services.get_gateway', return_value=FakeGateway()):
            call_command('retry_postings', '--tenant', 'test-posting', stdout=out)

        self.assertIn('1 applied, 0 not applied', out.getvalue())
        set_current_tenant(self.tenant)
        self.assertEqual(self._record(receipt).status, Status.APPLIED)

    def test_retry_reports_failures(self):
        self._post()
        out = StringIO()
        with patch('apps.posting.services.get_gateway', return_value=FakeGateway(error=SaleorAPIError('still down'))):
            call_command('retry_postings', '--tenant', 'test-posting', stdout=out)
        self.assertIn('0 applied, 1 not applied', out.getvalue())
        self.assertIn('still down', out.getvalue())

    def test_unconfigured_gateway_fails_records(self):
        receipt = self._post()
        out = StringIO()
        with self.settings(SALEOR_API_URL='', SALEOR_AUTH_TOKEN=''):
            call_command('retry_postings', '--tenant', 'test-posting', stdout=out)
        set_current_tenant(self.tenant)
        self.assertEqual(self._record(receipt).status, Status.FAILED)

    def test_unknown_tenant(self):
        from django.core.management.base import CommandError
        with self.assertRaises(CommandError):
            call_command('retry_postings', '--tenant', 'nope', stdout=StringIO())
