# apps/posting/tests/test_saleor.py
"""
Tests for the Saleor GraphQL gateway with the HTTP session mocked out.
"""
from decimal import Decimal
from unittest.mock import MagicMock

import requests
from django.test import TestCase, override_settings

from apps.posting.saleor import (
    IDEMPOTENCY_METADATA_KEY, WAC_METADATA_KEY,
    SaleorAPIError, SaleorConnectionError, SaleorGraphQLGateway,
    SaleorNotConfiguredError, SaleorTimeoutError, get_gateway, split_target,
)
from apps.tenants.models import Tenant, TenantSettings


def _response(payload, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    resp.text = str(payload)
    return resp


STOCK_OK = {'data': {'productVariantStocksUpdate': {'productVariant': {'id': 'VAR-A'}, 'errors': []}}}
METADATA_OK = {'data': {'updatePrivateMetadata': {'item': {'privateMetadata': []}, 'errors': []}}}


class SaleorGatewayTest(TestCase):

    def setUp(self):
        self.session = MagicMock()
        self.session.headers = {}
        self.gateway = SaleorGraphQLGateway(
            'https://shop.example.com/graphql/', 'secret-token', session=self.session, timeout=5,
        )

    def _variables(self, call_index):
        return self.session.post.call_args_list[call_index].kwargs['json']['variables']

    def test_auth_header(self):
        self.assertEqual(self.session.headers['Authorization'], 'Bearer secret-token')

    def test_apply_delta_sets_stock_and_cost(self):
        self.session.post.side_effect = [_response(STOCK_OK), _response(METADATA_OK)]
        result = self.gateway.apply_delta(
            'VAR-A@WH-1', 5, Decimal('3.0000'), 'USD', 'GR-1:VAR-A@WH-1', quantity_after=15,
        )

        self.assertTrue(result.accepted)
        self.assertEqual(result.external_reference, 'VAR-A:WH-1:15')
        self.assertEqual(self._variables(0), {
            'variantId': 'VAR-A',
            'stocks': [{'warehouse': 'WH-1', 'quantity': 15}],
        })
        metadata = {item['key']: item['value'] for item in self._variables(1)['input']}
        self.assertEqual(metadata[WAC_METADATA_KEY], '3.0000')
        self.assertEqual(metadata[IDEMPOTENCY_METADATA_KEY], 'GR-1:VAR-A@WH-1')
        self.assertEqual(self.session.post.call_args_list[0].kwargs['timeout'], 5)

    def test_negative_on_hand_clamped_for_saleor(self):
        self.session.post.side_effect = [_response(STOCK_OK)]
        self.gateway.apply_delta('VAR-A@WH-1', -12, None, 'USD', 'GR-2:VAR-A@WH-1', quantity_after=-2)
        self.assertEqual(self._variables(0)['stocks'][0]['quantity'], 0)
        self.assertEqual(self.session.post.call_count, 1)

    def test_mutation_errors_raise(self):
        self.session.post.return_value = _response({'data': {'productVariantStocksUpdate': {
            'errors': [{'field': 'warehouse', 'message': 'Not found', 'code': 'NOT_FOUND'}],
        }}})
        with self.assertRaisesMessage(SaleorAPIError, 'warehouse: Not found'):
            self.gateway.apply_delta('VAR-A@WH-1', 1, None, 'USD', 'k', quantity_after=1)

    def test_graphql_errors_raise(self):
        self.session.post.return_value = _response({'errors': [{'message': 'Invalid token'}]})
        with self.assertRaisesMessage(SaleorAPIError, 'Invalid token'):
            self.gateway.execute('query { shop { name } }', {})

    def test_http_error_raises(self):
        self.session.post.return_value = _response({}, status_code=502)
        with self.assertRaises(SaleorAPIError):
            self.gateway.execute('query { shop { name } }', {})

    def test_timeout_raises_timeout_error(self):
        self.session.post.side_effect = requests.Timeout()
        with self.assertRaises(SaleorTimeoutError):
            self.gateway.execute('query { shop { name } }', {})

    def test_connection_error(self):
        self.session.post.side_effect = requests.ConnectionError('refused')
        with self.assertRaises(SaleorConnectionError):
            self.gateway.execute('query { shop { name } }', {})

    def test_get_variant(self):
        self.session.post.return_value = _response({'data': {'productVariant': {
            'id': 'VAR-A',
            'sku': 'A-SKU',
            'name': 'Blue / L',
            'product': {'id': 'PROD-1', 'name': 'Shirt', 'thumbnail': {'url': 'https://cdn/x.png'}},
            'pricing': {'price': {'gross': {'amount': 19.99, 'currency': 'USD'}}},
        }}})
        info = self.gateway.get_variant('VAR-A')
        self.assertEqual(info.sku, 'A-SKU')
        self.assertEqual(info.product_name, 'Shirt')
        self.assertEqual(info.price, Decimal('19.99'))
        self.assertEqual(self._variables(0)['channel'], 'webstore')

    def test_get_variant_not_found(self):
        self.session.post.return_value = _response({'data': {'productVariant': None}})
        self.assertIsNone(self.gateway.get_variant('NOPE'))

    def test_split_target(self):
        self.assertEqual(split_target('VAR@A@WH-1'), ('VAR@A', 'WH-1'))
        with self.assertRaises(ValueError):
            split_target('no-warehouse')


class GetGatewayTest(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.tenant = Tenant.objects.create(name='Gateway Co', subdomain='test-gateway')

    @override_settings(SALEOR_API_URL='', SALEOR_AUTH_TOKEN='')
    def test_not_configured(self):
        with self.assertRaises(SaleorNotConfiguredError):
            get_gateway(self.tenant)

    @override_settings(SALEOR_API_URL='https://default.example.com/graphql/', SALEOR_AUTH_TOKEN='t')
    def test_tenant_settings_override_defaults(self):
        TenantSettings.objects.filter(tenant=self.tenant).update(
            saleor_api_url='https://tenant.example.com/graphql/', saleor_channel='eu',
        )
        gateway = get_gateway(self.tenant)
        self.assertEqual(gateway.api_url, 'https://tenant.example.com/graphql/')
        self.assertEqual(gateway.channel, 'eu')
