"""Minimal strict schemas for configuration validation."""

from __future__ import annotations

from typing import Any

from geoenrich.common.constants import WRITE_FAILURE_POLICIES
from geoenrich.common.errors import ConfigError
from geoenrich.common.models import StageOptions


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_number(value: Any, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number")


def validate_enrich_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"geocodio", "cache", "pipeline"}
    _assert_required_keys(cfg, top_required, "geoenrich config")
    _assert_no_unknown_keys(cfg, top_required, "geoenrich config", allow_unknown)

    geocodio = cfg["geocodio"]
    _assert_required_keys(geocodio, {"endpoint", "api_key_env", "timeout"}, "geocodio")
    _assert_no_unknown_keys(
        geocodio,
        {"endpoint", "api_key_env", "timeout", "max_attempts"},
        "geocodio",
        allow_unknown,
    )
    _assert_required_keys(geocodio["timeout"], {"connect", "read"}, "geocodio.timeout")
    _assert_positive_number(geocodio["timeout"]["connect"], "geocodio.timeout.connect")
    _assert_positive_number(geocodio["timeout"]["read"], "geocodio.timeout.read")
    max_attempts = geocodio.get("max_attempts", 1)
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
        raise ConfigError("geocodio.max_attempts must be an integer >= 1")

    cache = cfg["cache"]
    _assert_required_keys(cache, {"url", "namespace"}, "cache")
    _assert_no_unknown_keys(cache, {"url", "namespace", "write_failure_policy"}, "cache", allow_unknown)
    if not isinstance(cache["namespace"], str) or not cache["namespace"]:
        raise ConfigError("cache.namespace must be a non-empty string")
    policy = cache.get("write_failure_policy", "fail")
    if policy not in WRITE_FAILURE_POLICIES:
        raise ConfigError(f"cache.write_failure_policy must be one of: {', '.join(WRITE_FAILURE_POLICIES)}")

    pipeline = cfg["pipeline"]
    _assert_required_keys(pipeline, {"batch_size"}, "pipeline")
    _assert_no_unknown_keys(pipeline, {"batch_size"}, "pipeline", allow_unknown)
    batch_size = pipeline["batch_size"]
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        raise ConfigError("pipeline.batch_size must be an integer >= 1")

    return cfg


def validate_stage_options(opts: Any) -> StageOptions:
    """Validate flow-step options, e.g. ``{"address": "street_address"}``."""
    if not isinstance(opts, dict):
        raise ConfigError("stage options must be a mapping")
    _assert_required_keys(opts, {"address"}, "stage options")
    _assert_no_unknown_keys(opts, {"address"}, "stage options", allow_unknown=False)
    address = opts["address"]
    if not isinstance(address, str) or not address.strip():
        raise ConfigError("stage option 'address' must be a non-empty string")
    return StageOptions(address_field=address)
