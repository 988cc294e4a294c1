# API Serializers
from .base import TenantModelSerializer
from .suppliers import SupplierSerializer
from .purchasing import PurchaseOrderSerializer, PurchaseOrderLineSerializer
from .receiving import GoodsReceiptSerializer, GoodsReceiptLineSerializer
from .landed_costs import LandedCostSerializer
from .costing import CostLayerEventSerializer, VariantCostRollupSerializer
from .posting import SaleorPostingRecordSerializer
