# apps/api/v1/serializers/landed_costs.py
from rest_framework import serializers
from apps.landed_costs.models import LandedCost, LandedCostAllocation
from .base import TenantModelSerializer


class LandedCostAllocationSerializer(TenantModelSerializer):
    receipt_number = serializers.CharField(source='receipt_line.receipt.receipt_number', read_only=True)
    line_number = serializers.IntegerField(source='receipt_line.line_number', read_only=True)
    saleor_variant_id = serializers.CharField(source='receipt_line.saleor_variant_id', read_only=True)

    class Meta:
        model = LandedCostAllocation
        fields = ['id', 'receipt_line', 'receipt_number', 'line_number', 'saleor_variant_id', 'weight', 'amount']
        read_only_fields = fields


class LandedCostSerializer(TenantModelSerializer):
    allocations = LandedCostAllocationSerializer(many=True, read_only=True)
    allocated_by_username = serializers.CharField(source='allocated_by.username', read_only=True, default=None)

    class Meta:
        model = LandedCost
        fields = [
            'id', 'reference', 'cost_type', 'description', 'total_amount', 'currency',
            'allocation_method', 'status', 'receipts', 'allocations',
            'allocated_at', 'allocated_by_username', 'created_at',
        ]
        read_only_fields = fields


class AllocateLandedCostSerializer(serializers.Serializer):
    receipts = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    currency = serializers.CharField(max_length=3, required=False)
    allocation_method = serializers.ChoiceField(choices=LandedCost.Method.choices)
    cost_type = serializers.ChoiceField(choices=LandedCost.CostType.choices, default=LandedCost.CostType.OTHER)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class AllocationShareSerializer(serializers.Serializer):
    """Serializes an AllocationShare dataclass."""
    receipt_line = serializers.IntegerField(source='receipt_line.pk')
    receipt_number = serializers.CharField()
    line_number = serializers.IntegerField(source='receipt_line.line_number')
    saleor_variant_id = serializers.CharField(source='receipt_line.saleor_variant_id')
    weight = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
