# apps/api/v1/serializers/posting.py
from rest_framework import serializers
from apps.posting.models import SaleorPostingRecord


class SaleorPostingRecordSerializer(serializers.ModelSerializer):
    receipt_number = serializers.CharField(source='goods_receipt.receipt_number', read_only=True, default=None)
    landed_cost_reference = serializers.CharField(source='landed_cost.reference', read_only=True, default=None)

    class Meta:
        model = SaleorPostingRecord
        fields = [
            'id', 'idempotency_key', 'goods_receipt', 'receipt_number', 'landed_cost', 'landed_cost_reference',
            'target', 'saleor_variant_id', 'saleor_warehouse_id',
            'quantity_delta', 'cost_delta', 'quantity_after', 'unit_cost', 'currency', 'ledger_sequence',
            'status', 'attempts', 'last_attempt_at', 'applied_at', 'external_reference', 'error_message',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class PostingResultSerializer(serializers.Serializer):
    """Serializes a PostingResult dataclass."""
    idempotency_key = serializers.CharField()
    status = serializers.CharField()
    called_gateway = serializers.BooleanField()
    error = serializers.CharField(allow_blank=True)
    ok = serializers.BooleanField()


class VariantInfoSerializer(serializers.Serializer):
    """Serializes a Saleor VariantInfo dataclass."""
    id = serializers.CharField()
    sku = serializers.CharField(allow_blank=True)
    name = serializers.CharField(allow_blank=True)
    product_id = serializers.CharField(allow_blank=True)
    product_name = serializers.CharField(allow_blank=True)
    thumbnail_url = serializers.CharField(allow_null=True)
    price = serializers.DecimalField(max_digits=14, decimal_places=2, allow_null=True)
    currency = serializers.CharField(allow_null=True)
