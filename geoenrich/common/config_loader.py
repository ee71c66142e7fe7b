"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from geoenrich.common.constants import CACHE_URL_ENV
from geoenrich.common.errors import ConfigError
from geoenrich.common.fs import read_yaml
from geoenrich.common.schema import validate_enrich_config

CONFIG_FILENAME = "geoenrich.yml"


@dataclass(frozen=True)
class EnrichConfig:
    endpoint: str
    api_key: str | None
    connect_timeout: float
    read_timeout: float
    max_attempts: int
    cache_url: str
    cache_namespace: str
    write_failure_policy: str
    batch_size: int


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path) or {}
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path) or {}
    return _deep_merge(base, overlay)


def load_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EnrichConfig:
    env = os.environ if environ is None else environ
    overlay_path = overlay_config_dir / CONFIG_FILENAME if overlay_config_dir is not None else None
    cfg = validate_enrich_config(
        _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path),
        allow_unknown=allow_unknown,
    )

    geocodio = cfg["geocodio"]
    cache = cfg["cache"]
    return EnrichConfig(
        endpoint=geocodio["endpoint"],
        api_key=env.get(geocodio["api_key_env"]) or None,
        connect_timeout=float(geocodio["timeout"]["connect"]),
        read_timeout=float(geocodio["timeout"]["read"]),
        max_attempts=int(geocodio.get("max_attempts", 1)),
        cache_url=env.get(CACHE_URL_ENV) or cache["url"],
        cache_namespace=cache["namespace"],
        write_failure_policy=cache.get("write_failure_policy", "fail"),
        batch_size=int(cfg["pipeline"]["batch_size"]),
    )
