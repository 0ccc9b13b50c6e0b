from app.services.purchase_service import PurchaseResult, process_purchase
from app.services.variant_aggregator import refresh_product_rollup

__all__ = [
    "PurchaseResult",
    "process_purchase",
    "refresh_product_rollup",
]
