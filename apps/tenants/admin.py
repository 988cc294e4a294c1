"""
Admin for tenants, their costing/Saleor settings and numbering sequences.
"""
from django.contrib import admin
from .models import Tenant, TenantSettings, TenantSequence


class TenantSettingsInline(admin.StackedInline):
    model = TenantSettings
    can_delete = False
    fieldsets = [
        (None, {'fields': ['company_name', 'timezone']}),
        ('Costing', {'fields': ['currency', 'allow_negative_stock']}),
        ('Saleor', {'fields': ['saleor_api_url', 'saleor_channel', 'saleor_auth_token']}),
    ]


class TenantSequenceInline(admin.TabularInline):
    model = TenantSequence
    extra = 0
    can_delete = False
    fields = ['sequence_type', 'prefix', 'next_value', 'padding']
    readonly_fields = ['sequence_type', 'next_value']


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ['name', 'subdomain', 'is_active', 'is_default', 'currency', 'negative_stock']
    list_filter = ['is_active', 'is_default', 'settings__allow_negative_stock']
    search_fields = ['name', 'subdomain']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [TenantSettingsInline, TenantSequenceInline]

    @admin.display(description='Currency')
    def currency(self, obj):
        return getattr(getattr(obj, 'settings', None), 'currency', '')

    @admin.display(description='Negative stock', boolean=True)
    def negative_stock(self, obj):
        return getattr(getattr(obj, 'settings', None), 'allow_negative_stock', False)

    def save_model(self, request, obj, form, change):
        # At most one default tenant
        if obj.is_default:
            Tenant.objects.filter(is_default=True).exclude(pk=obj.pk).update(is_default=False)
        super().save_model(request, obj, form, change)
