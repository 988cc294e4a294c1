# apps/posting/admin.py
from django.contrib import admin
from .models import SaleorPostingRecord


@admin.register(SaleorPostingRecord)
class SaleorPostingRecordAdmin(admin.ModelAdmin):
    list_display = [
        'idempotency_key', 'status', 'quantity_delta', 'quantity_after', 'unit_cost',
        'currency', 'attempts', 'last_attempt_at', 'applied_at',
    ]
    list_filter = ['status']
    search_fields = ['idempotency_key', 'target', 'external_reference']
    readonly_fields = [f.name for f in SaleorPostingRecord._meta.fields]

    def get_queryset(self, request):
        return SaleorPostingRecord.objects.all_tenants()

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
