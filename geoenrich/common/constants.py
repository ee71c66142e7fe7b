"""Application constants."""

USER_AGENT = "geoenrich/1.0 (+address-enrichment)"
DEFAULT_BATCH_SIZE = 1000
CACHE_NAMESPACE = "geocodeio"
GEOCODIO_ENDPOINT = "https://api.geocod.io/v1.7/geocode"
CACHE_URL_ENV = "GEOENRICH_CACHE_URL"
REQUIRES_GEOCODE_FLAG = "__requiresGeocode"
GEOCODED_FLAG = "__geocoded"
INTERNAL_FLAGS = (REQUIRES_GEOCODE_FLAG, GEOCODED_FLAG)
LOCATION_FIELD = "location"
WRITE_FAILURE_POLICIES = ("fail", "fail_open")
COMMANDS = ("enrich", "check-config")
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "event",
    "status",
    "batch",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
