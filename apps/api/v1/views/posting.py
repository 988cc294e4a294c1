# apps/api/v1/views/posting.py
"""
Saleor posting records and the Saleor variant lookup.
"""
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view

from apps.api.permissions import IsCostingTeam, IsTenantUser
from apps.api.v1.serializers.posting import (
    PostingResultSerializer, SaleorPostingRecordSerializer, VariantInfoSerializer,
)
from apps.posting.models import SaleorPostingRecord
from apps.posting.saleor import SaleorError, SaleorNotConfiguredError, get_gateway
from apps.posting.services import PostingError, PostingOrchestrator
from .base import error_response


@extend_schema_view(
    list=extend_schema(tags=['posting'], summary='List Saleor posting records'),
    retrieve=extend_schema(tags=['posting'], summary='Get a Saleor posting record'),
)
class SaleorPostingRecordViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = SaleorPostingRecordSerializer
    permission_classes = [IsTenantUser, IsCostingTeam]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'goods_receipt', 'landed_cost', 'saleor_variant_id', 'saleor_warehouse_id']
    search_fields = ['idempotency_key', 'target']
    ordering_fields = ['created_at', 'last_attempt_at', 'attempts']
    ordering = ['-created_at']

    def get_queryset(self):
        return SaleorPostingRecord.objects.select_related('goods_receipt', 'landed_cost').all()

    @extend_schema(tags=['posting'], summary='Retry a pending or failed posting',
                   request=None, responses={200: PostingResultSerializer})
    @action(detail=True, methods=['post'])
    def retry(self, request, pk=None):
        record = self.get_object()
        try:
            result = PostingOrchestrator(request.tenant).process_record(record)
        except PostingError as e:
            return Response({'error': str(e), 'status': e.record.status}, status=status.HTTP_502_BAD_GATEWAY)
        return Response(PostingResultSerializer(result).data)


@extend_schema(tags=['posting'], summary='Look up a Saleor variant', responses={200: VariantInfoSerializer})
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def variant_lookup(request, variant_id):
    """GET /api/v1/saleor/variants/<variant_id>/ (display only, never used for costing)"""
    try:
        info = get_gateway(request.tenant).get_variant(variant_id, request.query_params.get('channel'))
    except SaleorNotConfiguredError as e:
        return error_response(e, status.HTTP_503_SERVICE_UNAVAILABLE)
    except SaleorError as e:
        return error_response(e, status.HTTP_502_BAD_GATEWAY)
    if info is None:
        return Response({'error': 'Variant not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(VariantInfoSerializer(info).data)
