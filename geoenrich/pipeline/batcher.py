"""Fixed-size batching of record streams."""

from __future__ import annotations

from typing import Iterable, Iterator

from geoenrich.common.constants import DEFAULT_BATCH_SIZE
from geoenrich.common.errors import ConfigError
from geoenrich.common.models import Batch, Record


def iter_batches(records: Iterable[Record], size: int = DEFAULT_BATCH_SIZE) -> Iterator[Batch]:
    if size < 1:
        raise ConfigError(f"batch size must be >= 1, got {size}")
    batch: Batch = []
    for record in records:
        batch.append(record)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch
