import json
import logging
from pathlib import Path

import pytest

from geoenrich.common.errors import StageError
from geoenrich.common.fs import iter_jsonl, write_jsonl
from geoenrich.common.ids import generate_run_id
from geoenrich.common.logging import JsonLineFormatter, build_logger, close_logger, log_event
from geoenrich.common.models import GeocodeMatch, StageOptions


def test_generate_run_id_prefix():
    assert generate_run_id().startswith("run-")


def test_json_line_formatter_emits_stable_schema():
    record = logging.LogRecord("geoenrich", logging.INFO, __file__, 1, "cached %d", (3,), None)
    record.stage = "cache_write"
    record.rows_in = 3

    payload = json.loads(JsonLineFormatter().format(record))

    assert payload["message"] == "cached 3"
    assert payload["stage"] == "cache_write"
    assert payload["rows_in"] == 3
    assert payload["error_code"] is None
    assert "timestamp" in payload


def test_build_logger_writes_jsonl_file(tmp_path: Path):
    logger = build_logger("run-log", log_dir=tmp_path, level="INFO")
    log_event(logger, "hello", stage="pipeline", event="BATCH_END", status="ok")
    close_logger(logger)

    lines = (tmp_path / "run-log.log.jsonl").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[0])["event"] == "BATCH_END"


def test_jsonl_round_trip_and_errors(tmp_path: Path):
    path = tmp_path / "records.jsonl"
    assert write_jsonl(path, iter([{"a": 1}, {"b": "ü"}])) == 2
    assert list(iter_jsonl(path)) == [{"a": 1}, {"b": "ü"}]

    path.write_text('{"a": 1}\n[1, 2]\n', encoding="utf-8")
    with pytest.raises(StageError):
        list(iter_jsonl(path))
    with pytest.raises(StageError):
        list(iter_jsonl(tmp_path / "missing.jsonl"))


def test_geocode_match_applies_flattened_fields():
    record = {"street": "1 Main St"}
    match = GeocodeMatch(lat=1.0, lon=2.0, components={"city": "Springfield", "zip": "12345"})

    match.apply(record, StageOptions(address_field="street"))

    assert record == {
        "street": "1 Main St",
        "location": {"lat": 1.0, "lon": 2.0},
        "street_full": {"city": "Springfield", "zip": "12345"},
        "street_city": "Springfield",
        "street_zip": "12345",
    }


def test_write_jsonl_leaves_no_output_when_records_fail(tmp_path: Path):
    path = tmp_path / "out.jsonl"
    path.write_text('{"previous": true}\n', encoding="utf-8")

    def records():
        yield {"a": 1}
        raise StageError("cache went away")

    with pytest.raises(StageError):
        write_jsonl(path, records())

    assert path.read_text(encoding="utf-8") == '{"previous": true}\n'
    assert list(tmp_path.iterdir()) == [path]
