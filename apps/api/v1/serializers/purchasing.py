# apps/api/v1/serializers/purchasing.py
"""
Serializers for PurchaseOrder and PurchaseOrderLine.

Writes go through PurchaseOrderService; these serializers validate input and
render output.
"""
from rest_framework import serializers
from apps.purchasing.models import PurchaseOrder, PurchaseOrderLine
from .base import TenantModelSerializer


class PurchaseOrderLineSerializer(TenantModelSerializer):
    line_total = serializers.DecimalField(max_digits=20, decimal_places=4, read_only=True)
    quantity_remaining = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseOrderLine
        fields = [
            'id', 'purchase_order', 'line_number',
            'saleor_variant_id', 'variant_sku', 'variant_name',
            'quantity_ordered', 'expected_unit_cost', 'currency',
            'quantity_received', 'quantity_remaining', 'line_total',
            'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'purchase_order', 'line_number', 'quantity_received', 'created_at', 'updated_at',
        ]
        extra_kwargs = {'currency': {'required': False}}


class PurchaseOrderListSerializer(TenantModelSerializer):
    """Lightweight serializer for list views."""
    supplier_code = serializers.CharField(source='supplier.code', read_only=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_number', 'status', 'supplier', 'supplier_code', 'supplier_name',
            'saleor_warehouse_id', 'expected_delivery_date', 'created_at',
        ]


class PurchaseOrderSerializer(TenantModelSerializer):
    """Detail serializer with nested lines."""
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    lines = PurchaseOrderLineSerializer(many=True, read_only=True)
    total_expected_cost = serializers.DecimalField(max_digits=20, decimal_places=4, read_only=True)
    is_receivable = serializers.BooleanField(read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_number', 'status', 'closed_manually', 'supplier', 'supplier_name',
            'saleor_warehouse_id', 'expected_delivery_date', 'notes',
            'lines', 'total_expected_cost', 'is_receivable',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['po_number', 'status', 'closed_manually', 'created_at', 'updated_at']


class PurchaseOrderLineInputSerializer(serializers.Serializer):
    saleor_variant_id = serializers.CharField(max_length=255)
    variant_sku = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    variant_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    quantity_ordered = serializers.IntegerField(min_value=1)
    expected_unit_cost = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=0)
    currency = serializers.CharField(max_length=3, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PurchaseOrderCreateSerializer(TenantModelSerializer):
    """Input for creating a purchase order with its lines."""
    lines = PurchaseOrderLineInputSerializer(many=True, required=False)

    class Meta:
        model = PurchaseOrder
        fields = ['supplier', 'saleor_warehouse_id', 'expected_delivery_date', 'notes', 'lines']
