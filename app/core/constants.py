from pathlib import Path


APP_DIR = Path(__file__).resolve().parents[1]
PROJECT_ROOT = APP_DIR.parent

PRODUCT_CATEGORIES = (
    "POLISH_COLOR",
    "POLISH_BASE",
    "POLISH_TOP",
    "GEL_COLOR",
    "GEL_BASE",
    "GEL_TOP",
    "GEL_REMOVER",
    "NAIL_CARE",
    "TOOL",
    "CONSUMABLE",
    "SANITIZATION",
    "STORE_SUPPLY",
)

NAIL_LENGTHS = ("SHORT", "MEDIUM", "LONG")

USER_ROLES = ("OWNER", "MANAGER", "NAIL_TECHNICIAN", "STAFF")
MANAGEMENT_ROLES = ("OWNER", "MANAGER")

PRODUCT_ROLES = ("BASE", "COLOR", "TOP", "CARE", "OTHER")

# Length adjustment percentages applied to nominal service usage.
DEFAULT_SHORT_LENGTH_RATE = 80
DEFAULT_MEDIUM_LENGTH_RATE = 100
DEFAULT_LONG_LENGTH_RATE = 130
DEFAULT_USAGE_AMOUNT = 0.5

ACTIVITY_PRODUCT = "PRODUCT"
ACTIVITY_STOCK = "STOCK"
ACTIVITY_USAGE = "USAGE"
ACTIVITY_SERVICE_TYPE = "SERVICE_TYPE"
ACTIVITY_STORE = "STORE"

USAGE_PERIODS = {"week": 7, "month": 30, "year": 365}
