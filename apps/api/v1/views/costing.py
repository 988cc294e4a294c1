# apps/api/v1/views/costing.py
"""
Cost ledger and costing report endpoints.

The ledger is read-only over the API; events are only appended by posting
receipts, reversing them and allocating landed costs.
"""
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view

from apps.api.permissions import IsCostingTeam, IsTenantUser
from apps.api.v1.serializers.costing import (
    CostLayerEventSerializer, VariantCostRollupSerializer, VariantCostStateSerializer,
)
from apps.costing import reports
from apps.costing.models import CostLayerEvent, VariantCostRollup
from apps.costing.services import CostRollupMismatchError, WACAggregator

TARGET_PARAMS = [
    OpenApiParameter('variant', OpenApiTypes.STR, required=True, description='Saleor variant id'),
    OpenApiParameter('warehouse', OpenApiTypes.STR, required=True, description='Saleor warehouse id'),
]


def _target_params(request):
    variant_id = request.query_params.get('variant')
    warehouse_id = request.query_params.get('warehouse')
    if not variant_id or not warehouse_id:
        return None, None, Response(
            {'error': 'variant and warehouse query parameters are required'},
            status=status.HTTP_400_BAD_REQUEST,
        )
    return variant_id, warehouse_id, None


def _parse_moment(value):
    if not value:
        return None
    return parse_datetime(value) or parse_date(value)


@extend_schema_view(
    list=extend_schema(tags=['costing'], summary='List cost layer events'),
    retrieve=extend_schema(tags=['costing'], summary='Get one cost layer event'),
)
class CostLayerEventViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = CostLayerEventSerializer
    permission_classes = [IsTenantUser]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['saleor_variant_id', 'saleor_warehouse_id', 'event_type', 'flagged_negative']
    ordering_fields = ['sequence', 'event_timestamp']
    ordering = ['saleor_variant_id', 'saleor_warehouse_id', 'sequence']

    def get_queryset(self):
        return CostLayerEvent.objects.select_related(
            'source_receipt_line__receipt', 'source_landed_cost'
        ).all()

    @extend_schema(tags=['costing'], summary='Current cost state of a variant',
                   parameters=TARGET_PARAMS, responses={200: VariantCostStateSerializer})
    @action(detail=False, methods=['get'])
    def state(self, request):
        variant_id, warehouse_id, error = _target_params(request)
        if error:
            return error
        state = WACAggregator(request.tenant).current_state(variant_id, warehouse_id)
        return Response(VariantCostStateSerializer(state).data)

    @extend_schema(tags=['costing'], summary='Verify the rollup against the ledger',
                   parameters=TARGET_PARAMS, responses={200: VariantCostStateSerializer})
    @action(detail=False, methods=['get'])
    def verify(self, request):
        variant_id, warehouse_id, error = _target_params(request)
        if error:
            return error
        try:
            state = WACAggregator(request.tenant).state_or_fold(variant_id, warehouse_id, strict=True)
        except CostRollupMismatchError as e:
            return Response({'error': str(e), 'consistent': False}, status=status.HTTP_409_CONFLICT)
        return Response({**VariantCostStateSerializer(state).data, 'consistent': True})

    @extend_schema(tags=['costing'], summary='Rebuild the rollup of a variant from the ledger',
                   parameters=TARGET_PARAMS, request=None, responses={200: VariantCostStateSerializer})
    @action(detail=False, methods=['post'], permission_classes=[IsTenantUser, IsCostingTeam])
    def rebuild(self, request):
        variant_id, warehouse_id, error = _target_params(request)
        if error:
            return error
        state = WACAggregator(request.tenant).rebuild(variant_id, warehouse_id)
        return Response(VariantCostStateSerializer(state).data)


@extend_schema_view(
    list=extend_schema(tags=['costing'], summary='List cost rollups (on-hand and WAC per variant)'),
)
class VariantCostRollupViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = VariantCostRollupSerializer
    permission_classes = [IsTenantUser]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['saleor_variant_id', 'saleor_warehouse_id']
    ordering = ['saleor_variant_id', 'saleor_warehouse_id']

    def get_queryset(self):
        return VariantCostRollup.objects.all()


# ─── Reports ────────────────────────────────────────────────────────────────────

@extend_schema(
    tags=['reports'],
    summary='Inventory valuation at WAC',
    parameters=[
        OpenApiParameter('warehouse', OpenApiTypes.STR),
        OpenApiParameter('include_zero', OpenApiTypes.BOOL),
    ],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_valuation(request):
    """GET /api/v1/reports/valuation/"""
    include_zero = request.query_params.get('include_zero', '').lower() in ('1', 'true', 'yes')
    return Response(reports.inventory_valuation(
        request.tenant,
        warehouse_id=request.query_params.get('warehouse'),
        include_zero=include_zero,
    ))


@extend_schema(
    tags=['reports'],
    summary='Cost layer history',
    parameters=[
        OpenApiParameter('start', OpenApiTypes.DATETIME),
        OpenApiParameter('end', OpenApiTypes.DATETIME),
        OpenApiParameter('variant', OpenApiTypes.STR),
        OpenApiParameter('warehouse', OpenApiTypes.STR),
        OpenApiParameter('event_type', OpenApiTypes.STR, enum=CostLayerEvent.EventType.values),
        OpenApiParameter('limit', OpenApiTypes.INT),
        OpenApiParameter('offset', OpenApiTypes.INT),
    ],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def cost_history(request):
    """GET /api/v1/reports/cost-history/"""
    params = request.query_params
    try:
        limit = min(int(params.get('limit', 100)), 500)
        offset = max(int(params.get('offset', 0)), 0)
    except ValueError:
        return Response({'error': 'limit and offset must be integers'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(reports.cost_history(
        request.tenant,
        start=_parse_moment(params.get('start')),
        end=_parse_moment(params.get('end')),
        variant_id=params.get('variant'),
        warehouse_id=params.get('warehouse'),
        event_type=params.get('event_type'),
        limit=limit,
        offset=offset,
    ))


@extend_schema(
    tags=['reports'],
    summary='Received, reversed and net movement per variant',
    parameters=[
        OpenApiParameter('start', OpenApiTypes.DATETIME),
        OpenApiParameter('end', OpenApiTypes.DATETIME),
        OpenApiParameter('warehouse', OpenApiTypes.STR),
        OpenApiParameter('limit', OpenApiTypes.INT),
    ],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_movement(request):
    """GET /api/v1/reports/stock-movement/"""
    params = request.query_params
    try:
        limit = min(int(params.get('limit', 50)), 500)
    except ValueError:
        return Response({'error': 'limit must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(reports.stock_movement_summary(
        request.tenant,
        start=_parse_moment(params.get('start')),
        end=_parse_moment(params.get('end')),
        warehouse_id=params.get('warehouse'),
        limit=limit,
    ))
