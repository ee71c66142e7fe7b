"""Run statistics and summary reports."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path

from geoenrich.common.fs import write_json


@dataclass
class PipelineStats:
    records_in: int = 0
    records_out: int = 0
    batches: int = 0
    addressed: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    unusable_cache_entries: int = 0
    geocode_requests: int = 0
    geocode_failures: int = 0
    geocoded: int = 0
    unresolved: int = 0
    cache_writes: int = 0
    cache_write_failures: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def run_status(stats: PipelineStats) -> str:
    if stats.geocode_failures > 0 or stats.cache_write_failures > 0:
        return "partial"
    return "success"


def write_run_summary(
    data_dir: Path,
    run_id: str,
    address_field: str,
    stats: PipelineStats,
    *,
    status: str | None = None,
    error_code: str | None = None,
) -> Path:
    summary_path = data_dir / "out" / "reports" / f"{run_id}_summary.json"
    payload = {
        "run_id": run_id,
        "address_field": address_field,
        "status": status or run_status(stats),
        "error_code": error_code,
        "totals": stats.to_dict(),
    }
    write_json(summary_path, payload)
    return summary_path
