"""
Base serializer for tenant-scoped models.

Create assigns the request tenant; validation rejects references to rows of
another tenant (a PO line id from a different organization, for example).
"""
from rest_framework import serializers


class TenantModelSerializer(serializers.ModelSerializer):

    def get_fields(self):
        fields = super().get_fields()
        if 'tenant' in fields:
            fields['tenant'].read_only = True
        return fields

    def _request_tenant(self):
        request = self.context.get('request')
        return getattr(request, 'tenant', None)

    def validate(self, attrs):
        tenant = self._request_tenant()
        if tenant is not None:
            foreign = [
                name for name, value in attrs.items()
                if getattr(value, 'tenant_id', tenant.pk) != tenant.pk
            ]
            if foreign:
                raise serializers.ValidationError(
                    {name: 'Does not belong to your organization.' for name in foreign}
                )
        return super().validate(attrs)

    def create(self, validated_data):
        tenant = self._request_tenant()
        if tenant is not None:
            validated_data['tenant'] = tenant
        return super().create(validated_data)
