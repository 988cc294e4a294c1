# apps/api/v1/serializers/suppliers.py
from rest_framework import serializers
from apps.suppliers.models import Supplier
from .base import TenantModelSerializer


class SupplierSerializer(TenantModelSerializer):
    open_purchase_orders = serializers.SerializerMethodField()

    class Meta:
        model = Supplier
        fields = [
            'id', 'code', 'name', 'contact_name', 'contact_email', 'contact_phone',
            'address', 'notes', 'is_active', 'open_purchase_orders',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_open_purchase_orders(self, obj):
        return obj.purchase_orders.filter(status__in=['OPEN', 'PARTIALLY_RECEIVED']).count()
