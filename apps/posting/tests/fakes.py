# apps/posting/tests/fakes.py
"""In-memory Saleor gateway for posting tests."""
from apps.posting.saleor import GatewayResult


class FakeGateway:
    """Records apply_delta calls; `error` is raised, `reject` returns a refusal."""

    def __init__(self, error=None, reject=None):
        self.calls = []
        self.error = error
        self.reject = reject

    def apply_delta(self, target, quantity_delta, new_unit_cost, currency, idempotency_key, quantity_after):
        self.calls.append({
            'target': target,
            'quantity_delta': quantity_delta,
            'new_unit_cost': new_unit_cost,
            'currency': currency,
            'idempotency_key': idempotency_key,
            'quantity_after': quantity_after,
        })
        if self.error is not None:
            raise self.error
        if self.reject:
            return GatewayResult(accepted=False, message=self.reject)
        return GatewayResult(accepted=True, external_reference=f'fake:{idempotency_key}')

    @property
    def keys(self):
        return [call['idempotency_key'] for call in self.calls]
