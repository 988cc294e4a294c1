# apps/receiving/admin.py
"""
Django admin for goods receipts.

State changes go through GoodsReceiptService (API actions); the admin only
views receipts.
"""
from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin
from .models import GoodsReceipt, GoodsReceiptLine


class GoodsReceiptLineInline(admin.TabularInline):
    model = GoodsReceiptLine
    extra = 0
    can_delete = False
    fields = ['line_number', 'saleor_variant_id', 'variant_sku', 'quantity_received', 'unit_cost', 'currency']
    readonly_fields = fields


@admin.register(GoodsReceipt)
class GoodsReceiptAdmin(SimpleHistoryAdmin):
    list_display = ['receipt_number', 'purchase_order', 'status', 'reversal_of', 'posted_at', 'sync_status']
    list_filter = ['status']
    search_fields = ['receipt_number', 'purchase_order__po_number']
    readonly_fields = [
        'receipt_number', 'purchase_order', 'status', 'reversal_of', 'reversed_by',
        'posted_at', 'posted_by', 'created_by', 'created_at', 'updated_at',
    ]
    inlines = [GoodsReceiptLineInline]

    def has_add_permission(self, request):
        return False
