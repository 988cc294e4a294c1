# apps/landed_costs/admin.py
from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin
from .models import LandedCost, LandedCostAllocation


class LandedCostAllocationInline(admin.TabularInline):
    model = LandedCostAllocation
    extra = 0
    can_delete = False
    fields = ['receipt_line', 'weight', 'amount']
    readonly_fields = fields


@admin.register(LandedCost)
class LandedCostAdmin(SimpleHistoryAdmin):
    list_display = ['reference', 'cost_type', 'total_amount', 'currency', 'allocation_method', 'allocated_at']
    list_filter = ['cost_type', 'allocation_method']
    search_fields = ['reference', 'description']
    readonly_fields = [
        'reference', 'cost_type', 'total_amount', 'currency', 'allocation_method',
        'status', 'allocated_at', 'allocated_by',
    ]
    inlines = [LandedCostAllocationInline]

    def has_add_permission(self, request):
        return False
