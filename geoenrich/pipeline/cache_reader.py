"""Read-through cache stage."""

from __future__ import annotations

import json
import logging
import time

from geoenrich.cache.backend import CacheValue, HashCache
from geoenrich.common.constants import INTERNAL_FLAGS, REQUIRES_GEOCODE_FLAG
from geoenrich.common.logging import log_event
from geoenrich.common.models import Batch, GeocodeMatch, Record, StageOptions
from geoenrich.common.time_utils import elapsed_ms
from geoenrich.pipeline.reports import PipelineStats


def decode_cache_entry(value: CacheValue) -> GeocodeMatch | None:
    """Return the cached match, or None for misses and corrupt entries."""
    if value is None:
        return None
    try:
        entry = json.loads(value)
    except (TypeError, ValueError):
        return None
    if not isinstance(entry, dict):
        return None
    location = entry.get("location")
    address = entry.get("address")
    if not isinstance(location, dict) or not isinstance(address, dict):
        return None
    try:
        return GeocodeMatch(lat=float(location["lat"]), lon=float(location["lon"]), components=address)
    except (KeyError, TypeError, ValueError):
        return None


class CacheReader:
    name = "cache_read"

    def __init__(
        self,
        cache: HashCache,
        options: StageOptions,
        *,
        stats: PipelineStats | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cache = cache
        self.options = options
        self.stats = stats or PipelineStats()
        self.logger = logger or logging.getLogger(__name__)

    def process(self, batch: Batch) -> Batch:
        addressed: list[Record] = []
        addresses: list[str] = []
        for record in batch:
            # flags arriving on input records are never trusted
            for flag in INTERNAL_FLAGS:
                record.pop(flag, None)
            address = self.options.address_of(record)
            if address is None:
                continue
            record[REQUIRES_GEOCODE_FLAG] = True
            addressed.append(record)
            addresses.append(address)

        if not addresses:
            return batch

        started = time.monotonic()
        values = self.cache.get_many(addresses)

        hits = 0
        unusable = 0
        for record, value in zip(addressed, values):
            match = decode_cache_entry(value)
            if match is None:
                if value is not None:
                    unusable += 1
                continue
            match.apply(record, self.options)
            record[REQUIRES_GEOCODE_FLAG] = False
            hits += 1

        self.stats.addressed += len(addresses)
        self.stats.cache_hits += hits
        self.stats.cache_misses += len(addresses) - hits
        self.stats.unusable_cache_entries += unusable
        log_event(
            self.logger,
            f"cache lookup: {hits} hits, {len(addresses) - hits} misses",
            stage=self.name,
            event="CACHE_READ",
            status="ok",
            rows_in=len(addresses),
            rows_out=hits,
            duration_ms=elapsed_ms(started),
        )
        if unusable:
            log_event(
                self.logger,
                f"{unusable} unusable cache entries treated as misses",
                level=logging.WARNING,
                stage=self.name,
                event="CACHE_ENTRY_UNUSABLE",
                status="warning",
            )
        return batch
