"""Constants for the remote tabular source client."""

# Airtable REST API
AIRTABLE_API_BASE_URL = "https://api.airtable.com/v0"
AIRTABLE_MAX_PAGE_SIZE = 100  # Hard limit enforced by the API
AIRTABLE_DEFAULT_MAX_QPS = 5.0  # Documented per-base request limit

# HTTP status code ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_FORBIDDEN = 403
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Airtable asks clients to back off 30 seconds after a 429
DEFAULT_RATE_LIMIT_BACKOFF_SECONDS = 30

# Maximum retry delay cap for rate limiting (seconds)
MAX_RETRY_AFTER_SECONDS = 60
