# --- Configuration Constants ---

# Endpoints
MANAGEMENT_ENDPOINT = "https://management.azure.com"
MANAGEMENT_TOKEN_SCOPE = "https://management.azure.com/.default"
COST_MANAGEMENT_API_VERSION = "2021-10-01"
COST_QUERY_TOP = 5000 # Max rows per cost/forecast query
RETAIL_PRICES_API_ENDPOINT = "https://prices.azure.com/api/retail/prices"
RETAIL_PRICES_API_VERSION = "2023-01-01-preview"

# Dimension names recognized by the Cost Management API. Filter names outside
# this set are sent as tag filters.
DIMENSION_NAMES = frozenset([
    "PublisherType",
    "ResourceGroupName",
    "ResourceLocation",
    "ResourceId",
    "ServiceName",
    "ServiceTier",
    "ServiceFamily",
    "InvoiceId",
    "CustomerName",
    "PartnerName",
    "ResourceType",
    "ChargeType",
    "BillingPeriod",
    "MeterCategory",
    "MeterSubCategory",
])

# Grouping for cost queries. Order matters: the response columns follow it.
RESOURCE_GROUPING_DIMENSIONS = [
    "ResourceId",
    "ResourceType",
    "ResourceLocation",
    "ChargeType",
    "ResourceGroupName",
    "PublisherType",
]
METER_GROUPING_DIMENSIONS = ["MeterCategory", "MeterSubcategory", "Meter"]

# Location value the cost API reports when a meter is not region bound
UNKNOWN_LOCATION = "Unknown"

# HTTP settings
HTTP_TIMEOUT_SECONDS = 60
HTTP_RETRY_TOTAL = 5
HTTP_RETRY_BACKOFF_FACTOR = 1.0
HTTP_RETRY_STATUS_CODES = (429, 503) # Throttled / unavailable, both send Retry-After

# Settings
LOG_FILENAME = "resource_cost_log.txt"
