"""
Saleor GraphQL gateway.

The posting orchestrator talks to Saleor only through `SaleorGateway`:

    apply_delta(target, quantity_delta, new_unit_cost, currency,
                idempotency_key, quantity_after) -> GatewayResult

SaleorGraphQLGateway implements it over HTTP with `requests`:
- stock: productVariantStocksUpdate with the ledger-derived absolute
  on-hand (`quantity_after`); Saleor's stock is write-only from here, it is
  never read to compute a delta
- cost: the WAC and the idempotency key are written to the variant's
  private metadata

It also provides the variant catalog lookup used for display.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

WAC_METADATA_KEY = 'inventory_ops.wac'
WAC_CURRENCY_METADATA_KEY = 'inventory_ops.wac_currency'
IDEMPOTENCY_METADATA_KEY = 'inventory_ops.last_idempotency_key'


# ─── GraphQL Documents ──────────────────────────────────────────────────────────

STOCKS_UPDATE_MUTATION = """
mutation UpdateVariantStock($variantId: ID!, $stocks: [StockInput!]!) {
  productVariantStocksUpdate(variantId: $variantId, stocks: $stocks) {
    productVariant {
      id
      stocks { warehouse { id } quantity }
    }
    errors { field message code }
  }
}
"""

PRIVATE_METADATA_MUTATION = """
mutation UpdateVariantCost($id: ID!, $input: [MetadataInput!]!) {
  updatePrivateMetadata(id: $id, input: $input) {
    item { privateMetadata { key value } }
    errors { field message code }
  }
}
"""

GET_VARIANT_QUERY = """
query GetVariantById($id: ID!, $channel: String!) {
  productVariant(id: $id, channel: $channel) {
    id
    sku
    name
    product { id name thumbnail { url } }
    pricing { price { gross { amount currency } } }
  }
}
"""


# ─── Data Classes ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GatewayResult:
    accepted: bool
    external_reference: str = ''
    message: str = ''


@dataclass(frozen=True)
class VariantInfo:
    """Display-only identity and pricing for a Saleor variant."""
    id: str
    sku: str
    name: str
    product_id: str
    product_name: str
    thumbnail_url: Optional[str]
    price: Optional[Decimal]
    currency: Optional[str]


# ─── Exceptions ─────────────────────────────────────────────────────────────────

class SaleorError(Exception):
    """Base exception for Saleor communication failures."""
    pass


class SaleorAPIError(SaleorError):
    """Saleor answered but rejected the request (GraphQL or mutation errors)."""
    pass


class SaleorConnectionError(SaleorError):
    pass


class SaleorTimeoutError(SaleorError):
    """The request timed out; its outcome is unknown."""
    pass


class SaleorNotConfiguredError(SaleorError):
    pass


# ─── Gateway ────────────────────────────────────────────────────────────────────

def split_target(target: str):
    """'{variant_id}@{warehouse_id}' -> (variant_id, warehouse_id)."""
    variant_id, sep, warehouse_id = target.rpartition('@')
    if not sep or not variant_id or not warehouse_id:
        raise ValueError(f"Invalid posting target {target!r}")
    return variant_id, warehouse_id


class SaleorGateway(Protocol):
    def apply_delta(
        self,
        target: str,
        quantity_delta: int,
        new_unit_cost: Optional[Decimal],
        currency: str,
        idempotency_key: str,
        quantity_after: int,
    ) -> GatewayResult:
        ...


class SaleorGraphQLGateway:
    """
    Saleor client over `requests`.

    Usage:
        gateway = SaleorGraphQLGateway('https://shop.example.com/graphql/', token)
        gateway.apply_delta('UHJvZHVjdFZhcmlhbnQ6MQ==@V2FyZWhvdXNlOjE=', 5,
                            Decimal('3.0000'), 'USD', 'GR-12:...', quantity_after=15)
    """

    def __init__(self, api_url: str, auth_token: str, channel: str = 'webstore',
                 timeout: float = 15, session: Optional[requests.Session] = None):
        if not api_url or not auth_token:
            raise SaleorNotConfiguredError("Saleor API URL and auth token are required.")
        self.api_url = api_url
        self.channel = channel
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {auth_token}',
            'Content-Type': 'application/json',
        })

    def execute(self, query: str, variables: dict) -> dict:
        """POST one GraphQL document and return its `data`."""
        try:
            resp = self.session.post(
                self.api_url,
                json={'query': query, 'variables': variables},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise SaleorTimeoutError(f"Saleor request timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise SaleorConnectionError(f"Saleor request failed: {e}") from e

        if resp.status_code >= 400:
            raise SaleorAPIError(f"Saleor returned HTTP {resp.status_code}: {resp.text[:500]}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise SaleorAPIError("Saleor returned a non-JSON response") from e

        if payload.get('errors'):
            messages = '; '.join(err.get('message', str(err)) for err in payload['errors'])
            raise SaleorAPIError(messages)
        return payload.get('data') or {}

    def apply_delta(self, target, quantity_delta, new_unit_cost, currency, idempotency_key, quantity_after):
        variant_id, warehouse_id = split_target(target)

        data = self.execute(STOCKS_UPDATE_MUTATION, {
            'variantId': variant_id,
            'stocks': [{'warehouse': warehouse_id, 'quantity': max(int(quantity_after), 0)}],
        })
        result = data.get('productVariantStocksUpdate') or {}
        self._raise_mutation_errors('productVariantStocksUpdate', result)

        if new_unit_cost is not None:
            data = self.execute(PRIVATE_METADATA_MUTATION, {
                'id': variant_id,
                'input': [
                    {'key': WAC_METADATA_KEY, 'value': str(new_unit_cost)},
                    {'key': WAC_CURRENCY_METADATA_KEY, 'value': currency},
                    {'key': IDEMPOTENCY_METADATA_KEY, 'value': idempotency_key},
                ],
            })
            self._raise_mutation_errors('updatePrivateMetadata', data.get('updatePrivateMetadata') or {})

        logger.info(
            f"Saleor stock for {target} set to {quantity_after} (delta {quantity_delta:+d}), "
            f"cost {new_unit_cost} {currency} [{idempotency_key}]"
        )
        return GatewayResult(accepted=True, external_reference=f"{variant_id}:{warehouse_id}:{quantity_after}")

    def get_variant(self, variant_id: str, channel: Optional[str] = None) -> Optional[VariantInfo]:
        data = self.execute(GET_VARIANT_QUERY, {'id': variant_id, 'channel': channel or self.channel})
        node = data.get('productVariant')
        if not node:
            return None
        product = node.get('product') or {}
        gross = (((node.get('pricing') or {}).get('price') or {}).get('gross')) or {}
        return VariantInfo(
            id=node['id'],
            sku=node.get('sku') or '',
            name=node.get('name') or '',
            product_id=product.get('id', ''),
            product_name=product.get('name', ''),
            thumbnail_url=(product.get('thumbnail') or {}).get('url'),
            price=Decimal(str(gross['amount'])) if gross.get('amount') is not None else None,
            currency=gross.get('currency'),
        )

    @staticmethod
    def _raise_mutation_errors(name: str, result: dict) -> None:
        errors = result.get('errors') or []
        if errors:
            detail = '; '.join(f"{e.get('field') or name}: {e.get('message')}" for e in errors)
            raise SaleorAPIError(f"{name} rejected: {detail}")


def get_gateway(tenant) -> SaleorGraphQLGateway:
    """
    Build the gateway for a tenant from TenantSettings, falling back to the
    SALEOR_* Django settings.

    Raises:
        SaleorNotConfiguredError: neither source has a URL and token
    """
    from apps.tenants.models import get_tenant_settings

    tenant_settings = get_tenant_settings(tenant)
    return SaleorGraphQLGateway(
        api_url=tenant_settings.saleor_api_url or settings.SALEOR_API_URL,
        auth_token=tenant_settings.saleor_auth_token or settings.SALEOR_AUTH_TOKEN,
        channel=tenant_settings.saleor_channel or settings.SALEOR_CHANNEL,
        timeout=settings.SALEOR_TIMEOUT_SECONDS,
    )
