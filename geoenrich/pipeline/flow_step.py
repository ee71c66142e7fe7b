"""Flow-step descriptor used by hosts that run record transforms."""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Iterator

from geoenrich.cache.backend import HashCache, open_cache
from geoenrich.common.config_loader import EnrichConfig
from geoenrich.common.constants import DEFAULT_BATCH_SIZE, LOCATION_FIELD
from geoenrich.common.errors import ConfigError
from geoenrich.common.http import HttpClient, RetryConfig, TimeoutConfig
from geoenrich.common.models import FieldDeclaration, Record, StageOptions
from geoenrich.common.schema import validate_stage_options
from geoenrich.geocode.geocodio import GeocodioClient
from geoenrich.pipeline.geocoder import BatchGeocoder, GeocodeErrorHook
from geoenrich.pipeline.reports import PipelineStats
from geoenrich.pipeline.runner import EnrichmentPipeline


class GeocodeFlowStep:
    id = "geocode"
    name = "GeoCode"
    group = "Add Field"
    description = "Geocode your data"

    def __init__(
        self,
        cache: HashCache,
        service: BatchGeocoder,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        write_failure_policy: str = "fail",
        on_geocode_error: GeocodeErrorHook | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cache = cache
        self.service = service
        self.batch_size = batch_size
        self.write_failure_policy = write_failure_policy
        self.on_geocode_error = on_geocode_error
        self.logger = logger

    @classmethod
    def from_config(
        cls,
        cfg: EnrichConfig,
        *,
        api_key: str | None = None,
        cache_url: str | None = None,
        logger: logging.Logger | None = None,
    ) -> "GeocodeFlowStep":
        key = api_key or cfg.api_key
        if not key:
            raise ConfigError("No Geocodio API key configured")
        timeout = TimeoutConfig(connect=cfg.connect_timeout, read=cfg.read_timeout)
        http = HttpClient(timeout=timeout, retry=RetryConfig(max_attempts=cfg.max_attempts))
        service = GeocodioClient(key, endpoint=cfg.endpoint, http_client=http, timeout=timeout)
        return cls(
            open_cache(cache_url or cfg.cache_url, namespace=cfg.cache_namespace),
            service,
            batch_size=cfg.batch_size,
            write_failure_policy=cfg.write_failure_policy,
            logger=logger,
        )

    def validate(self, opts: Any) -> StageOptions:
        return validate_stage_options(opts)

    def declare_fields(self, opts: Any) -> list[FieldDeclaration]:
        options = self.validate(opts)
        return [
            FieldDeclaration(name=LOCATION_FIELD, type="geo_point", label="Location"),
            FieldDeclaration(name=options.full_address_field, type="object"),
        ]

    def build_pipeline(
        self,
        opts: Any,
        *,
        stats: PipelineStats | None = None,
        cancel_event: threading.Event | None = None,
    ) -> EnrichmentPipeline:
        return EnrichmentPipeline(
            self.cache,
            self.service,
            self.validate(opts),
            batch_size=self.batch_size,
            write_failure_policy=self.write_failure_policy,
            on_geocode_error=self.on_geocode_error,
            cancel_event=cancel_event,
            logger=self.logger,
            stats=stats,
        )

    def through(
        self,
        records: Iterable[Record],
        opts: Any,
        *,
        stats: PipelineStats | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[Record]:
        return self.build_pipeline(opts, stats=stats, cancel_event=cancel_event).run(records)

    def close(self) -> None:
        for resource in (self.service, self.cache):
            close = getattr(resource, "close", None)
            if close is not None:
                close()
