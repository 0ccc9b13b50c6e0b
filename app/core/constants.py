from pathlib import Path


APP_DIR = Path(__file__).resolve().parents[1]
PROJECT_ROOT = APP_DIR.parent

STATIC_DIR = APP_DIR / "static"
PRODUCT_IMAGE_DIR = STATIC_DIR / "images" / "products"
PRODUCT_IMAGE_URL_PREFIX = "/static/images/products"

STOCK_SEVERITIES = ("out_of_stock", "critical", "low")

NOTIFICATION_CUSTOMER_PURCHASE = "customer_purchase"
NOTIFICATION_CUSTOMER_ADDED = "customer_added"
NOTIFICATION_DAMAGE_REPORTED = "damaged_product_reported"
NOTIFICATION_PRODUCT_REFUNDED = "product_refunded"
NOTIFICATION_INVENTORY_DEDUCTED = "inventory_deducted"
