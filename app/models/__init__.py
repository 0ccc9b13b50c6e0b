import importlib

from app.models.customer import Customer, CustomerProduct
from app.models.damaged_product import DamagedProduct
from app.models.notification import Notification
from app.models.product import Product, ProductVariant


def import_all_models() -> None:
    for module_name in (
        "app.models.customer",
        "app.models.damaged_product",
        "app.models.notification",
        "app.models.product",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Customer",
    "CustomerProduct",
    "DamagedProduct",
    "Notification",
    "Product",
    "ProductVariant",
    "import_all_models",
]
