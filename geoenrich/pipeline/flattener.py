"""Re-emit batches as a flat record stream."""

from __future__ import annotations

from typing import Iterable, Iterator

from geoenrich.common.models import Batch, Record


def flatten(batches: Iterable[Batch]) -> Iterator[Record]:
    for batch in batches:
        yield from batch
