"""Write-through cache stage."""

from __future__ import annotations

import json
import logging
import time

from geoenrich.cache.backend import HashCache
from geoenrich.common.constants import GEOCODED_FLAG, INTERNAL_FLAGS, LOCATION_FIELD
from geoenrich.common.errors import CacheError
from geoenrich.common.logging import log_event
from geoenrich.common.models import Batch, StageOptions
from geoenrich.common.time_utils import elapsed_ms
from geoenrich.pipeline.reports import PipelineStats


class CacheWriter:
    name = "cache_write"

    def __init__(
        self,
        cache: HashCache,
        options: StageOptions,
        *,
        write_failure_policy: str = "fail",
        stats: PipelineStats | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cache = cache
        self.options = options
        self.write_failure_policy = write_failure_policy
        self.stats = stats or PipelineStats()
        self.logger = logger or logging.getLogger(__name__)

    def process(self, batch: Batch) -> Batch:
        entries: dict[str, str] = {}
        for record in batch:
            if record.get(GEOCODED_FLAG) is not True:
                continue
            entries[record[self.options.address_field]] = json.dumps(
                {
                    "location": record[LOCATION_FIELD],
                    "address": record[self.options.full_address_field],
                }
            )

        for record in batch:
            for flag in INTERNAL_FLAGS:
                record.pop(flag, None)

        if not entries:
            return batch

        started = time.monotonic()
        try:
            self.cache.set_many(entries)
        except CacheError as exc:
            self.stats.cache_write_failures += 1
            log_event(
                self.logger,
                f"cache write failed for {len(entries)} addresses: {exc}",
                level=logging.ERROR,
                stage=self.name,
                event="CACHE_WRITE_FAIL",
                status="error",
                rows_in=len(entries),
                rows_out=0,
                duration_ms=elapsed_ms(started),
                error_code=exc.error_code,
            )
            if self.write_failure_policy != "fail_open":
                raise
            return batch

        self.stats.cache_writes += len(entries)
        log_event(
            self.logger,
            f"cached {len(entries)} addresses",
            stage=self.name,
            event="CACHE_WRITE",
            status="ok",
            rows_in=len(entries),
            rows_out=len(entries),
            duration_ms=elapsed_ms(started),
        )
        return batch
