from app.services.dashboard_service import (
    get_dashboard_summary,
    get_future_predictions,
    get_inventory_summary,
    get_usage_statistics,
)
from app.services.product_service import (
    add_stock,
    create_product,
    get_stock_status,
    start_using_lot,
)
from app.services.service_type_service import (
    copy_service_type,
    create_service_type,
    resolve_adjusted_amount,
)
from app.services.stats_service import record_monthly_usage
from app.services.store_service import register_store
from app.services.usage_service import RelatedUsageEntry, record_usage

__all__ = [
    "RelatedUsageEntry",
    "add_stock",
    "copy_service_type",
    "create_product",
    "create_service_type",
    "get_dashboard_summary",
    "get_future_predictions",
    "get_inventory_summary",
    "get_stock_status",
    "get_usage_statistics",
    "record_monthly_usage",
    "record_usage",
    "register_store",
    "resolve_adjusted_amount",
    "start_using_lot",
]
