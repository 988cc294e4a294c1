# apps/purchasing/admin.py
from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin
from .models import PurchaseOrder, PurchaseOrderLine


class PurchaseOrderLineInline(admin.TabularInline):
    model = PurchaseOrderLine
    extra = 0
    fields = [
        'line_number', 'saleor_variant_id', 'variant_sku', 'quantity_ordered',
        'expected_unit_cost', 'currency', 'quantity_received',
    ]
    readonly_fields = ['quantity_received']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(SimpleHistoryAdmin):
    list_display = ['po_number', 'supplier', 'saleor_warehouse_id', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['po_number', 'supplier__name', 'supplier__code']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [PurchaseOrderLineInline]
