# apps/api/v1/views/suppliers.py
from rest_framework import filters
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view

from apps.api.permissions import IsPurchasingTeam, IsTenantUser
from apps.api.v1.serializers.suppliers import SupplierSerializer
from apps.suppliers.models import Supplier
from .base import TenantModelViewSet


@extend_schema_view(
    list=extend_schema(tags=['suppliers'], summary='List suppliers'),
    retrieve=extend_schema(tags=['suppliers'], summary='Get supplier details'),
    create=extend_schema(tags=['suppliers'], summary='Create a supplier'),
    update=extend_schema(tags=['suppliers'], summary='Update a supplier'),
    partial_update=extend_schema(tags=['suppliers'], summary='Partially update a supplier'),
    destroy=extend_schema(tags=['suppliers'], summary='Delete a supplier'),
)
class SupplierViewSet(TenantModelViewSet):
    model = Supplier
    serializer_class = SupplierSerializer
    permission_classes = [IsTenantUser, IsPurchasingTeam]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['is_active']
    search_fields = ['code', 'name', 'contact_name']
    ordering_fields = ['code', 'name', 'created_at']
    ordering = ['name']
