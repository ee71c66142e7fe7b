"""Filesystem helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Iterator

from geoenrich.common.errors import StageError


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_json(path: Path, payload) -> None:
    ensure_dir(path.parent)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2, sort_keys=True)
        f.write("\n")


def iter_jsonl(path: Path) -> Iterator[dict[str, Any]]:
    if not path.exists():
        raise StageError(f"Missing JSONL input: {path}")
    with path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except ValueError as exc:
                raise StageError(f"Invalid JSON on line {line_no} of {path}") from exc
            if not isinstance(record, dict):
                raise StageError(f"Line {line_no} of {path} is not a JSON object")
            yield record


def write_jsonl(path: Path, records: Iterable[dict[str, Any]]) -> int:
    """Write records to a sibling ``.partial`` file, renamed over ``path`` on success."""
    ensure_dir(path.parent)
    partial = path.with_name(f"{path.name}.partial")
    count = 0
    try:
        with partial.open("w", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record, ensure_ascii=False, sort_keys=True))
                f.write("\n")
                count += 1
    except BaseException:
        partial.unlink(missing_ok=True)
        raise
    partial.replace(path)
    return count
