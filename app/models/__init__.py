import importlib

from app.models.activity import Activity
from app.models.monthly_stat import MonthlyServiceStat
from app.models.product import Product, ProductLot
from app.models.service_type import ServiceType, ServiceTypeProduct
from app.models.stores import Store, User
from app.models.usage import RelatedProductUsage, Usage


def import_all_models() -> None:
    for module_name in (
        "app.models.activity",
        "app.models.monthly_stat",
        "app.models.product",
        "app.models.service_type",
        "app.models.stores",
        "app.models.usage",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Activity",
    "MonthlyServiceStat",
    "Product",
    "ProductLot",
    "RelatedProductUsage",
    "ServiceType",
    "ServiceTypeProduct",
    "Store",
    "Usage",
    "User",
    "import_all_models",
]
