# apps/api/v1/serializers/receiving.py
"""
Serializers for GoodsReceipt and GoodsReceiptLine.

`status` is the lifecycle state (DRAFT/POSTED/REVERSED); `sync_status` is the
separate Saleor posting state (pending sync, failed, synced).
"""
from decimal import ROUND_HALF_UP

from rest_framework import serializers
from apps.receiving.models import GoodsReceipt, GoodsReceiptLine
from .base import TenantModelSerializer


class GoodsReceiptLineSerializer(TenantModelSerializer):
    line_total = serializers.DecimalField(max_digits=20, decimal_places=4, read_only=True)
    landed_cost_total = serializers.DecimalField(max_digits=20, decimal_places=2, read_only=True)
    landed_cost_per_unit = serializers.DecimalField(
        max_digits=20, decimal_places=4, rounding=ROUND_HALF_UP, read_only=True, allow_null=True,
    )
    landed_unit_cost = serializers.DecimalField(
        max_digits=20, decimal_places=4, rounding=ROUND_HALF_UP, read_only=True, allow_null=True,
    )

    class Meta:
        model = GoodsReceiptLine
        fields = [
            'id', 'receipt', 'line_number', 'purchase_order_line',
            'saleor_variant_id', 'variant_sku', 'variant_name',
            'quantity_received', 'unit_cost', 'currency', 'line_total',
            'landed_cost_total', 'landed_cost_per_unit', 'landed_unit_cost', 'notes',
        ]
        read_only_fields = ['receipt', 'line_number']
        extra_kwargs = {'currency': {'required': False}}


class GoodsReceiptListSerializer(TenantModelSerializer):
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)
    sync_status = serializers.CharField(read_only=True)

    class Meta:
        model = GoodsReceipt
        fields = [
            'id', 'receipt_number', 'purchase_order', 'po_number', 'status', 'sync_status',
            'reversal_of', 'reversed_by', 'posted_at', 'created_at',
        ]


class GoodsReceiptSerializer(TenantModelSerializer):
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)
    lines = GoodsReceiptLineSerializer(many=True, read_only=True)
    sync_status = serializers.CharField(read_only=True)
    total_quantity = serializers.IntegerField(read_only=True)
    total_cost = serializers.DecimalField(max_digits=20, decimal_places=4, read_only=True)
    landed_cost_total = serializers.DecimalField(max_digits=20, decimal_places=2, read_only=True)
    landed_total_cost = serializers.DecimalField(max_digits=20, decimal_places=4, read_only=True)
    can_reverse = serializers.BooleanField(read_only=True)
    posted_by_username = serializers.CharField(source='posted_by.username', read_only=True, default=None)

    class Meta:
        model = GoodsReceipt
        fields = [
            'id', 'receipt_number', 'purchase_order', 'po_number', 'status', 'sync_status',
            'reversal_of', 'reversed_by', 'can_reverse', 'notes',
            'posted_at', 'posted_by_username', 'lines', 'total_quantity', 'total_cost',
            'landed_cost_total', 'landed_total_cost', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'receipt_number', 'status', 'reversal_of', 'reversed_by', 'posted_at',
            'created_at', 'updated_at',
        ]


class GoodsReceiptCreateSerializer(TenantModelSerializer):
    lines = GoodsReceiptLineSerializer(many=True, required=False)

    class Meta:
        model = GoodsReceipt
        fields = ['purchase_order', 'notes', 'lines']


class ReceiveFromPurchaseOrderSerializer(serializers.Serializer):
    purchase_order = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReverseReceiptSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')
