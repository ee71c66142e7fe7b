"""Pipeline wiring: batch, cache read, geocode, cache write, flatten."""

from __future__ import annotations

import logging
import threading
import time
from typing import Iterable, Iterator, Protocol

from geoenrich.cache.backend import HashCache
from geoenrich.common.constants import DEFAULT_BATCH_SIZE
from geoenrich.common.errors import ConfigError, ContractError, PipelineCancelled
from geoenrich.common.logging import log_event
from geoenrich.common.models import Batch, Record, StageOptions
from geoenrich.common.time_utils import elapsed_ms
from geoenrich.pipeline.batcher import iter_batches
from geoenrich.pipeline.cache_reader import CacheReader
from geoenrich.pipeline.cache_writer import CacheWriter
from geoenrich.pipeline.flattener import flatten
from geoenrich.pipeline.geocoder import BatchGeocoder, GeocodeErrorHook, Geocoder
from geoenrich.pipeline.reports import PipelineStats


class Stage(Protocol):
    name: str

    def process(self, batch: Batch) -> Batch:
        ...


class EnrichmentPipeline:
    """Linear chain of 1:1 batch stages over a lazily consumed record stream.

    Only one batch is in flight at a time; the next batch is admitted when the
    consumer has pulled every record of the previous one.
    """

    def __init__(
        self,
        cache: HashCache,
        service: BatchGeocoder,
        options: StageOptions,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        write_failure_policy: str = "fail",
        on_geocode_error: GeocodeErrorHook | None = None,
        cancel_event: threading.Event | None = None,
        logger: logging.Logger | None = None,
        stats: PipelineStats | None = None,
    ) -> None:
        if batch_size < 1:
            raise ConfigError(f"batch size must be >= 1, got {batch_size}")
        self.options = options
        self.batch_size = batch_size
        self.cancel_event = cancel_event
        self.logger = logger or logging.getLogger(__name__)
        self.stats = stats or PipelineStats()
        self.stages: tuple[Stage, ...] = (
            CacheReader(cache, options, stats=self.stats, logger=self.logger),
            Geocoder(service, options, stats=self.stats, logger=self.logger, on_error=on_geocode_error),
            CacheWriter(
                cache,
                options,
                write_failure_policy=write_failure_policy,
                stats=self.stats,
                logger=self.logger,
            ),
        )

    def _process_batches(self, records: Iterable[Record]) -> Iterator[Batch]:
        for index, batch in enumerate(iter_batches(records, self.batch_size)):
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise PipelineCancelled(f"Run cancelled before batch {index}")
            started = time.monotonic()
            size = len(batch)
            self.stats.batches += 1
            self.stats.records_in += size
            for stage in self.stages:
                batch = stage.process(batch)
                if len(batch) != size:
                    raise ContractError(f"Stage {stage.name} returned {len(batch)} records for a batch of {size}")
            log_event(
                self.logger,
                f"batch {index} enriched",
                stage="pipeline",
                event="BATCH_END",
                status="ok",
                batch=index,
                rows_in=size,
                rows_out=len(batch),
                duration_ms=elapsed_ms(started),
            )
            yield batch

    def run(self, records: Iterable[Record]) -> Iterator[Record]:
        for record in flatten(self._process_batches(records)):
            self.stats.records_out += 1
            yield record
