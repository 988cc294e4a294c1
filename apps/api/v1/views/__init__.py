# API Views
from .suppliers import SupplierViewSet
from .purchasing import PurchaseOrderViewSet
from .receiving import GoodsReceiptViewSet
from .landed_costs import LandedCostViewSet
from .costing import CostLayerEventViewSet, VariantCostRollupViewSet
from .posting import SaleorPostingRecordViewSet
