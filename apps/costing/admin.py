# apps/costing/admin.py
"""
Django admin configuration for the cost ledger.

Events are append-only, so the admin is read-only for them.
"""
from django.contrib import admin
from .models import CostLayerEvent, VariantCostRollup


@admin.register(CostLayerEvent)
class CostLayerEventAdmin(admin.ModelAdmin):
    list_display = [
        'saleor_variant_id', 'saleor_warehouse_id', 'sequence', 'event_type',
        'quantity_delta', 'cost_delta', 'qty_on_hand_after', 'wac_after',
        'flagged_negative', 'event_timestamp',
    ]
    list_filter = ['event_type', 'flagged_negative']
    search_fields = ['saleor_variant_id', 'saleor_warehouse_id']
    date_hierarchy = 'event_timestamp'

    def get_queryset(self, request):
        return CostLayerEvent.objects.all_tenants()

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(VariantCostRollup)
class VariantCostRollupAdmin(admin.ModelAdmin):
    list_display = [
        'saleor_variant_id', 'saleor_warehouse_id', 'qty_on_hand', 'total_cost',
        'wac_display', 'last_sequence', 'currency',
    ]
    search_fields = ['saleor_variant_id', 'saleor_warehouse_id']
    readonly_fields = [
        'saleor_variant_id', 'saleor_warehouse_id', 'qty_on_hand', 'total_cost',
        'last_wac', 'last_sequence', 'currency', 'created_at', 'updated_at',
    ]

    def get_queryset(self, request):
        return VariantCostRollup.objects.all_tenants()

    def wac_display(self, obj):
        return obj.wac
    wac_display.short_description = 'WAC'

    def has_add_permission(self, request):
        return False
