"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for enrichment failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class ContractError(PipelineError):
    """Raised when a stage changes batch cardinality."""

    error_code = "CONTRACT_ERROR"


class StageError(PipelineError):
    """Raised for stage failures that abort the run."""

    error_code = "STAGE_ERROR"


class CacheError(StageError):
    """Raised when a cache read or write round trip fails."""

    error_code = "CACHE_ERROR"


class GeocodeServiceError(StageError):
    """Raised for unusable geocoding service payloads."""

    error_code = "GEOCODE_SERVICE_ERROR"


class PipelineCancelled(PipelineError):
    """Raised when a run is cancelled between batches."""

    error_code = "CANCELLED"
