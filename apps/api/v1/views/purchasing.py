# apps/api/v1/views/purchasing.py
"""
Purchase order endpoints.

Lines are edited through nested actions so PurchaseOrderService can enforce
that received lines stay unchanged.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view

from apps.api.permissions import IsPurchasingTeam, IsTenantUser
from apps.api.v1.serializers.purchasing import (
    PurchaseOrderCreateSerializer, PurchaseOrderLineInputSerializer,
    PurchaseOrderLineSerializer, PurchaseOrderListSerializer, PurchaseOrderSerializer,
)
from apps.purchasing.models import PurchaseOrder, PurchaseOrderLine
from apps.purchasing.services import PurchaseOrderLineInput, PurchaseOrderService
from .base import error_response


@extend_schema_view(
    list=extend_schema(tags=['purchasing'], summary='List purchase orders'),
    retrieve=extend_schema(tags=['purchasing'], summary='Get purchase order details'),
    create=extend_schema(tags=['purchasing'], summary='Create a purchase order',
                         request=PurchaseOrderCreateSerializer, responses={201: PurchaseOrderSerializer}),
)
class PurchaseOrderViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin,
                           mixins.CreateModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsTenantUser, IsPurchasingTeam]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'supplier', 'saleor_warehouse_id']
    search_fields = ['po_number', 'supplier__name', 'supplier__code', 'notes']
    ordering_fields = ['po_number', 'expected_delivery_date', 'created_at']
    ordering = ['-created_at']

    def get_queryset(self):
        return PurchaseOrder.objects.select_related('supplier').prefetch_related('lines').all()

    def get_serializer_class(self):
        if self.action == 'list':
            return PurchaseOrderListSerializer
        if self.action == 'create':
            return PurchaseOrderCreateSerializer
        return PurchaseOrderSerializer

    def create(self, request, *args, **kwargs):
        serializer = PurchaseOrderCreateSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        service = PurchaseOrderService(request.tenant, request.user)
        try:
            po = service.create_purchase_order(
                supplier=data['supplier'],
                saleor_warehouse_id=data['saleor_warehouse_id'],
                lines=[PurchaseOrderLineInput(**line) for line in data.get('lines', [])],
                expected_delivery_date=data.get('expected_delivery_date'),
                notes=data.get('notes', ''),
            )
        except DjangoValidationError as e:
            return error_response(e)
        return Response(PurchaseOrderSerializer(po, context={'request': request}).data,
                        status=status.HTTP_201_CREATED)

    @extend_schema(tags=['purchasing'], summary='List lines for a purchase order',
                   responses={200: PurchaseOrderLineSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def lines(self, request, pk=None):
        po = self.get_object()
        return Response(PurchaseOrderLineSerializer(po.lines.all(), many=True, context={'request': request}).data)

    @extend_schema(tags=['purchasing'], summary='Add line to purchase order',
                   request=PurchaseOrderLineInputSerializer, responses={201: PurchaseOrderLineSerializer})
    @lines.mapping.post
    def add_line(self, request, pk=None):
        po = self.get_object()
        serializer = PurchaseOrderLineInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            line = PurchaseOrderService(request.tenant, request.user).add_line(
                po, PurchaseOrderLineInput(**serializer.validated_data)
            )
        except DjangoValidationError as e:
            return error_response(e)
        return Response(PurchaseOrderLineSerializer(line, context={'request': request}).data,
                        status=status.HTTP_201_CREATED)

    @extend_schema(tags=['purchasing'], summary='Update or remove a purchase order line',
                   request=PurchaseOrderLineSerializer, responses={200: PurchaseOrderLineSerializer})
    @action(detail=True, methods=['patch', 'delete'], url_path=r'lines/(?P<line_id>\d+)')
    def line_detail(self, request, pk=None, line_id=None):
        po = self.get_object()
        try:
            line = po.lines.get(pk=line_id)
        except PurchaseOrderLine.DoesNotExist:
            return Response({'error': 'Line not found'}, status=status.HTTP_404_NOT_FOUND)

        service = PurchaseOrderService(request.tenant, request.user)
        try:
            if request.method == 'DELETE':
                service.remove_line(line)
                return Response(status=status.HTTP_204_NO_CONTENT)
            serializer = PurchaseOrderLineSerializer(line, data=request.data, partial=True,
                                                     context={'request': request})
            serializer.is_valid(raise_exception=True)
            with transaction.atomic():
                line = service.update_line(line, **serializer.validated_data)
        except DjangoValidationError as e:
            return error_response(e)
        return Response(PurchaseOrderLineSerializer(line, context={'request': request}).data)

    @extend_schema(tags=['purchasing'], summary='Cancel a purchase order')
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        try:
            po = PurchaseOrderService(request.tenant, request.user).cancel(self.get_object())
        except DjangoValidationError as e:
            return error_response(e)
        return Response(PurchaseOrderSerializer(po, context={'request': request}).data)

    @extend_schema(tags=['purchasing'], summary='Close a purchase order')
    @action(detail=True, methods=['post'])
    def close(self, request, pk=None):
        try:
            po = PurchaseOrderService(request.tenant, request.user).close(self.get_object())
        except DjangoValidationError as e:
            return error_response(e)
        return Response(PurchaseOrderSerializer(po, context={'request': request}).data)
