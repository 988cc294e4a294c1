# apps/api/v1/serializers/costing.py
"""
Serializers for the cost layer ledger and WAC state.
"""
from rest_framework import serializers
from apps.costing.models import CostLayerEvent, VariantCostRollup


class CostLayerEventSerializer(serializers.ModelSerializer):
    receipt_number = serializers.CharField(
        source='source_receipt_line.receipt.receipt_number', read_only=True, default=None
    )
    landed_cost_reference = serializers.CharField(
        source='source_landed_cost.reference', read_only=True, default=None
    )

    class Meta:
        model = CostLayerEvent
        fields = [
            'id', 'saleor_variant_id', 'saleor_warehouse_id', 'event_type', 'sequence',
            'quantity_delta', 'cost_delta', 'unit_cost', 'currency',
            'qty_on_hand_after', 'total_cost_after', 'wac_after', 'flagged_negative',
            'source_receipt_line', 'receipt_number', 'source_landed_cost', 'landed_cost_reference',
            'reversal_of_event', 'event_timestamp',
        ]
        read_only_fields = fields


class VariantCostRollupSerializer(serializers.ModelSerializer):
    wac = serializers.DecimalField(max_digits=20, decimal_places=8, read_only=True, allow_null=True)

    class Meta:
        model = VariantCostRollup
        fields = [
            'saleor_variant_id', 'saleor_warehouse_id', 'qty_on_hand', 'total_cost',
            'wac', 'last_sequence', 'currency', 'updated_at',
        ]
        read_only_fields = fields


class VariantCostStateSerializer(serializers.Serializer):
    """Serializes a VariantCostState dataclass."""
    saleor_variant_id = serializers.CharField()
    saleor_warehouse_id = serializers.CharField()
    target = serializers.CharField()
    qty_on_hand = serializers.IntegerField()
    total_cost = serializers.DecimalField(max_digits=20, decimal_places=4)
    wac = serializers.DecimalField(source='wac_display', max_digits=20, decimal_places=4, allow_null=True)
    last_sequence = serializers.IntegerField()
