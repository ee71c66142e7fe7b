"""Batched geocoding stage.

A failed service call never fails the run: the batch is forwarded with no
record marked as geocoded, and the affected addresses stay unresolved.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol, Sequence

from geoenrich.common.constants import GEOCODED_FLAG, REQUIRES_GEOCODE_FLAG
from geoenrich.common.errors import GeocodeServiceError
from geoenrich.common.logging import log_event
from geoenrich.common.models import Batch, GeocodeMatch, Record, StageOptions
from geoenrich.common.time_utils import elapsed_ms
from geoenrich.pipeline.reports import PipelineStats

GeocodeErrorHook = Callable[[Exception, Sequence[str]], None]


class BatchGeocoder(Protocol):
    def geocode_batch(self, addresses: Sequence[str]) -> list[GeocodeMatch | None]:
        ...


class Geocoder:
    name = "geocode"

    def __init__(
        self,
        service: BatchGeocoder,
        options: StageOptions,
        *,
        stats: PipelineStats | None = None,
        logger: logging.Logger | None = None,
        on_error: GeocodeErrorHook | None = None,
    ) -> None:
        self.service = service
        self.options = options
        self.stats = stats or PipelineStats()
        self.logger = logger or logging.getLogger(__name__)
        self.on_error = on_error

    def process(self, batch: Batch) -> Batch:
        pending: list[Record] = [record for record in batch if record.get(REQUIRES_GEOCODE_FLAG) is True]
        if not pending:
            return batch

        addresses = [record[self.options.address_field] for record in pending]
        started = time.monotonic()
        self.stats.geocode_requests += 1
        try:
            matches = self.service.geocode_batch(addresses)
            if len(matches) != len(pending):
                raise GeocodeServiceError(f"Geocoder returned {len(matches)} results for {len(pending)} addresses")
        except Exception as exc:
            self._handle_failure(exc, addresses, started)
            return batch

        geocoded = 0
        for record, match in zip(pending, matches):
            if match is None:
                continue
            match.apply(record, self.options)
            record[GEOCODED_FLAG] = True
            geocoded += 1

        self.stats.geocoded += geocoded
        self.stats.unresolved += len(pending) - geocoded
        log_event(
            self.logger,
            f"geocoded {geocoded} of {len(pending)} addresses",
            stage=self.name,
            event="GEOCODE_REQUEST",
            status="ok",
            rows_in=len(pending),
            rows_out=geocoded,
            duration_ms=elapsed_ms(started),
        )
        return batch

    def _handle_failure(self, exc: Exception, addresses: list[str], started: float) -> None:
        self.stats.geocode_failures += 1
        self.stats.unresolved += len(addresses)
        log_event(
            self.logger,
            f"geocoding request failed for {len(addresses)} addresses: {exc}",
            level=logging.ERROR,
            stage=self.name,
            event="GEOCODE_FAIL",
            status="error",
            rows_in=len(addresses),
            rows_out=0,
            duration_ms=elapsed_ms(started),
            error_code=getattr(exc, "error_code", "UNEXPECTED_ERROR"),
        )
        if self.on_error is None:
            return
        try:
            self.on_error(exc, list(addresses))
        except Exception:
            self.logger.exception("geocode error hook raised", extra={"stage": self.name, "event": "HOOK_FAIL"})
