# apps/api/v1/urls.py
"""
URL routing for API v1.

All API endpoints are mounted under /api/v1/
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

from .views.suppliers import SupplierViewSet
from .views.purchasing import PurchaseOrderViewSet
from .views.receiving import GoodsReceiptViewSet
from .views.landed_costs import LandedCostViewSet
from .views.costing import (
    CostLayerEventViewSet, VariantCostRollupViewSet,
    inventory_valuation, cost_history, stock_movement,
)
from .views.posting import SaleorPostingRecordViewSet, variant_lookup
from .views.health import health_check
from .views.users import CurrentUserView

router = DefaultRouter()

router.register(r'suppliers', SupplierViewSet, basename='supplier')
router.register(r'purchase-orders', PurchaseOrderViewSet, basename='purchase-order')
router.register(r'receipts', GoodsReceiptViewSet, basename='receipt')
router.register(r'landed-costs', LandedCostViewSet, basename='landed-cost')
router.register(r'cost-events', CostLayerEventViewSet, basename='cost-event')
router.register(r'cost-rollups', VariantCostRollupViewSet, basename='cost-rollup')
router.register(r'posting-records', SaleorPostingRecordViewSet, basename='posting-record')

urlpatterns = [
    # Authentication
    path('auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/token/verify/', TokenVerifyView.as_view(), name='token_verify'),
    path('users/me/', CurrentUserView.as_view(), name='current-user'),

    # Reports
    path('reports/valuation/', inventory_valuation, name='report-valuation'),
    path('reports/cost-history/', cost_history, name='report-cost-history'),
    path('reports/stock-movement/', stock_movement, name='report-stock-movement'),

    # Saleor catalog (display only)
    path('saleor/variants/<str:variant_id>/', variant_lookup, name='saleor-variant'),

    path('health/', health_check, name='health'),

    path('', include(router.urls)),
]
