# apps/api/v1/views/landed_costs.py
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view

from apps.api.permissions import IsCostingTeam, IsTenantUser
from apps.api.v1.serializers.landed_costs import (
    AllocateLandedCostSerializer, AllocationShareSerializer, LandedCostSerializer,
)
from apps.costing.services import ConcurrencyConflictError
from apps.landed_costs.models import LandedCost
from apps.landed_costs.services import LandedCostAllocator
from apps.tenants.models import get_tenant_settings
from .base import error_response


@extend_schema_view(
    list=extend_schema(tags=['landed-costs'], summary='List landed costs'),
    retrieve=extend_schema(tags=['landed-costs'], summary='Get landed cost with its allocations'),
)
class LandedCostViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Landed costs are created only by allocating them (POST /landed-costs/allocate/).
    """
    serializer_class = LandedCostSerializer
    permission_classes = [IsTenantUser, IsCostingTeam]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['cost_type', 'allocation_method', 'receipts']
    search_fields = ['reference', 'description']
    ordering = ['-created_at']

    def get_queryset(self):
        return LandedCost.objects.prefetch_related('allocations__receipt_line__receipt', 'receipts').all()

    @extend_schema(tags=['landed-costs'], summary='Preview an allocation without saving it',
                   request=AllocateLandedCostSerializer, responses={200: AllocationShareSerializer(many=True)})
    @action(detail=False, methods=['post'])
    def preview(self, request):
        serializer = AllocateLandedCostSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            shares = LandedCostAllocator(request.tenant, request.user).preview(
                data['receipts'], data['total_amount'], data['allocation_method'],
            )
        except DjangoValidationError as e:
            return error_response(e)
        return Response(AllocationShareSerializer(shares, many=True).data)

    @extend_schema(tags=['landed-costs'], summary='Allocate a landed cost across posted receipts',
                   request=AllocateLandedCostSerializer, responses={201: LandedCostSerializer})
    @action(detail=False, methods=['post'])
    def allocate(self, request):
        serializer = AllocateLandedCostSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        currency = data.get('currency') or get_tenant_settings(request.tenant).currency
        try:
            events = LandedCostAllocator(request.tenant, request.user).allocate(
                data['receipts'], data['total_amount'], currency, data['allocation_method'],
                cost_type=data['cost_type'], description=data['description'],
            )
        except ConcurrencyConflictError as e:
            return error_response(e, status.HTTP_409_CONFLICT)
        except DjangoValidationError as e:
            return error_response(e)

        # A positive total always yields at least one nonzero share
        landed_cost = self.get_queryset().get(pk=events[0].source_landed_cost_id)
        return Response(LandedCostSerializer(landed_cost, context={'request': request}).data,
                        status=status.HTTP_201_CREATED)
