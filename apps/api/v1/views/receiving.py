# apps/api/v1/views/receiving.py
"""
Goods receipt endpoints.

State transitions are actions (post, reverse); lifecycle conflicts return
409, validation failures 400. Saleor sync happens after commit and never
fails the request; its outcome shows in `sync_status`.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, extend_schema_view

from apps.api.permissions import IsReceivingTeam, IsTenantUser
from apps.api.v1.serializers.posting import PostingResultSerializer, SaleorPostingRecordSerializer
from apps.api.v1.serializers.receiving import (
    GoodsReceiptCreateSerializer, GoodsReceiptLineSerializer, GoodsReceiptListSerializer,
    GoodsReceiptSerializer, ReceiveFromPurchaseOrderSerializer, ReverseReceiptSerializer,
)
from apps.costing.services import ConcurrencyConflictError
from apps.landed_costs import reports as landed_cost_reports
from apps.posting.services import PostingOrchestrator
from apps.purchasing.models import PurchaseOrder
from apps.receiving.models import GoodsReceipt, GoodsReceiptLine
from apps.receiving.services import GoodsReceiptService, ReceiptConflictError, ReceiptLineInput, ReceiptStateError
from .base import error_response


@extend_schema_view(
    list=extend_schema(tags=['receiving'], summary='List goods receipts'),
    retrieve=extend_schema(tags=['receiving'], summary='Get goods receipt details'),
    create=extend_schema(tags=['receiving'], summary='Create a draft goods receipt',
                         request=GoodsReceiptCreateSerializer, responses={201: GoodsReceiptSerializer}),
    destroy=extend_schema(tags=['receiving'], summary='Delete a draft goods receipt'),
)
class GoodsReceiptViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, mixins.CreateModelMixin,
                          mixins.DestroyModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsTenantUser, IsReceivingTeam]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'purchase_order']
    search_fields = ['receipt_number', 'purchase_order__po_number', 'notes']
    ordering_fields = ['receipt_number', 'posted_at', 'created_at']
    ordering = ['-created_at']

    def get_queryset(self):
        return GoodsReceipt.objects.select_related(
            'purchase_order', 'posted_by'
        ).prefetch_related('lines__landed_cost_allocations', 'posting_records').all()

    def get_serializer_class(self):
        if self.action == 'list':
            return GoodsReceiptListSerializer
        if self.action == 'create':
            return GoodsReceiptCreateSerializer
        return GoodsReceiptSerializer

    def _service(self, request):
        return GoodsReceiptService(request.tenant, request.user)

    def _render(self, request, receipt, status_code=status.HTTP_200_OK):
        receipt = self.get_queryset().get(pk=receipt.pk)
        return Response(GoodsReceiptSerializer(receipt, context={'request': request}).data, status=status_code)

    def create(self, request, *args, **kwargs):
        serializer = GoodsReceiptCreateSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        lines = [
            ReceiptLineInput(
                saleor_variant_id=line['saleor_variant_id'],
                quantity_received=line['quantity_received'],
                unit_cost=line['unit_cost'],
                currency=line.get('currency'),
                purchase_order_line=line.get('purchase_order_line'),
                variant_sku=line.get('variant_sku', ''),
                variant_name=line.get('variant_name', ''),
                notes=line.get('notes', ''),
            )
            for line in data.get('lines', [])
        ]
        try:
            receipt = self._service(request).create_receipt(data['purchase_order'], lines, notes=data.get('notes', ''))
        except DjangoValidationError as e:
            return error_response(e)
        return self._render(request, receipt, status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        receipt = self.get_object()
        try:
            self._service(request).delete_draft(receipt)
        except ReceiptStateError as e:
            return error_response(e, status.HTTP_409_CONFLICT)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=['receiving'], summary='Create a draft receipt for the remaining PO quantities',
                   request=ReceiveFromPurchaseOrderSerializer, responses={201: GoodsReceiptSerializer})
    @action(detail=False, methods=['post'], url_path='from-purchase-order')
    def from_purchase_order(self, request):
        serializer = ReceiveFromPurchaseOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            po = PurchaseOrder.objects.get(pk=serializer.validated_data['purchase_order'])
        except PurchaseOrder.DoesNotExist:
            return Response({'error': 'Purchase order not found'}, status=status.HTTP_404_NOT_FOUND)
        try:
            receipt = self._service(request).create_from_purchase_order(po, notes=serializer.validated_data['notes'])
        except DjangoValidationError as e:
            return error_response(e)
        return self._render(request, receipt, status.HTTP_201_CREATED)

    @extend_schema(tags=['receiving'], summary='Add a line to a draft receipt',
                   request=GoodsReceiptLineSerializer, responses={201: GoodsReceiptLineSerializer})
    @action(detail=True, methods=['post'])
    def lines(self, request, pk=None):
        receipt = self.get_object()
        serializer = GoodsReceiptLineSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            line = self._service(request).add_line(receipt, ReceiptLineInput(
                saleor_variant_id=data['saleor_variant_id'],
                quantity_received=data['quantity_received'],
                unit_cost=data['unit_cost'],
                currency=data.get('currency'),
                purchase_order_line=data.get('purchase_order_line'),
                variant_sku=data.get('variant_sku', ''),
                variant_name=data.get('variant_name', ''),
                notes=data.get('notes', ''),
            ))
        except DjangoValidationError as e:
            return error_response(e)
        return Response(GoodsReceiptLineSerializer(line, context={'request': request}).data,
                        status=status.HTTP_201_CREATED)

    @extend_schema(tags=['receiving'], summary='Update or remove a draft receipt line',
                   request=GoodsReceiptLineSerializer, responses={200: GoodsReceiptLineSerializer})
    @action(detail=True, methods=['patch', 'delete'], url_path=r'lines/(?P<line_id>\d+)')
    def line_detail(self, request, pk=None, line_id=None):
        receipt = self.get_object()
        try:
            line = receipt.lines.get(pk=line_id)
        except GoodsReceiptLine.DoesNotExist:
            return Response({'error': 'Line not found'}, status=status.HTTP_404_NOT_FOUND)

        service = self._service(request)
        try:
            if request.method == 'DELETE':
                service.remove_line(line)
                return Response(status=status.HTTP_204_NO_CONTENT)
            serializer = GoodsReceiptLineSerializer(line, data=request.data, partial=True,
                                                    context={'request': request})
            serializer.is_valid(raise_exception=True)
            changes = {k: v for k, v in serializer.validated_data.items()
                       if k not in ('saleor_variant_id', 'purchase_order_line')}
            line = service.update_line(line, **changes)
        except DjangoValidationError as e:
            return error_response(e)
        return Response(GoodsReceiptLineSerializer(line, context={'request': request}).data)

    @extend_schema(tags=['receiving'], summary='Post a draft receipt', request=None,
                   responses={200: GoodsReceiptSerializer})
    @action(detail=True, methods=['post'], url_path='post')
    def post_receipt(self, request, pk=None):
        receipt = self.get_object()
        try:
            receipt = self._service(request).post_receipt(receipt)
        except (ReceiptStateError, ConcurrencyConflictError) as e:
            return error_response(e, status.HTTP_409_CONFLICT)
        except DjangoValidationError as e:
            return error_response(e)
        return self._render(request, receipt)

    @extend_schema(tags=['receiving'], summary='Reverse a posted receipt',
                   request=ReverseReceiptSerializer, responses={201: GoodsReceiptSerializer})
    @action(detail=True, methods=['post'])
    def reverse(self, request, pk=None):
        receipt = self.get_object()
        serializer = ReverseReceiptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            reversal = self._service(request).reverse_receipt(receipt, notes=serializer.validated_data['notes'])
        except (ReceiptConflictError, ConcurrencyConflictError) as e:
            return error_response(e, status.HTTP_409_CONFLICT)
        except DjangoValidationError as e:
            return error_response(e)
        return self._render(request, reversal, status.HTTP_201_CREATED)

    @extend_schema(tags=['receiving'], summary='Landed cost allocated to the receipt, per line and per cost type',
                   responses={200: OpenApiTypes.OBJECT})
    @action(detail=True, methods=['get'], url_path='landed-costs')
    def landed_costs(self, request, pk=None):
        receipt = self.get_object()
        return Response(landed_cost_reports.receipt_landed_costs(request.tenant, receipt))

    @extend_schema(tags=['receiving'], summary='Saleor posting records for a receipt',
                   responses={200: SaleorPostingRecordSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def postings(self, request, pk=None):
        receipt = self.get_object()
        return Response(SaleorPostingRecordSerializer(receipt.posting_records.all(), many=True).data)

    @extend_schema(tags=['receiving'], summary="Retry the receipt's pending or failed Saleor postings",
                   request=None, responses={200: PostingResultSerializer(many=True)})
    @action(detail=True, methods=['post'])
    def sync(self, request, pk=None):
        receipt = self.get_object()
        results = PostingOrchestrator(request.tenant).process_receipt(receipt)
        return Response(PostingResultSerializer(results, many=True).data)
