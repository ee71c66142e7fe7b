from __future__ import annotations

from geoenrich.common.errors import GeocodeServiceError
from geoenrich.common.http import HttpRequestError
from geoenrich.common.models import GeocodeMatch, StageOptions
from geoenrich.pipeline.geocoder import Geocoder
from geoenrich.pipeline.reports import PipelineStats

OPTIONS = StageOptions(address_field="addr")


def _match(city: str, lat: float = 1.0, lon: float = 2.0) -> GeocodeMatch:
    return GeocodeMatch(lat=lat, lon=lon, components={"city": city})


class FakeService:
    def __init__(self, results=None, error: Exception | None = None):
        self.results = results
        self.error = error
        self.calls: list[list[str]] = []

    def geocode_batch(self, addresses):
        self.calls.append(list(addresses))
        if self.error is not None:
            raise self.error
        return self.results


def _pending(address: str) -> dict:
    return {"addr": address, "__requiresGeocode": True}


def test_no_pending_records_skips_service():
    service = FakeService(results=[])
    batch = [{"addr": "A", "__requiresGeocode": False}, {"id": 2}]

    out = Geocoder(service, OPTIONS).process(batch)

    assert service.calls == []
    assert out == [{"addr": "A", "__requiresGeocode": False}, {"id": 2}]


def test_single_request_with_pending_addresses_in_order():
    service = FakeService(results=[_match("X"), _match("Z")])
    batch = [_pending("A"), {"addr": "cached", "__requiresGeocode": False}, {"id": 3}, _pending("C")]

    Geocoder(service, OPTIONS).process(batch)

    assert service.calls == [["A", "C"]]
    assert batch[0]["addr_city"] == "X"
    assert batch[3]["addr_city"] == "Z"
    assert "__geocoded" not in batch[1]


def test_gap_in_results_leaves_only_that_record_unresolved():
    service = FakeService(results=[_match("a-city", 10, 11), None, _match("c-city", 30, 31)])
    batch = [_pending("A"), _pending("B"), _pending("C")]

    Geocoder(service, OPTIONS).process(batch)

    a, b, c = batch
    assert a["__geocoded"] is True
    assert a["location"] == {"lat": 10, "lon": 11}
    assert a["addr_full"] == {"city": "a-city"}
    assert b == {"addr": "B", "__requiresGeocode": True}
    assert c["__geocoded"] is True
    assert c["location"] == {"lat": 30, "lon": 31}
    assert c["addr_city"] == "c-city"


def test_service_failure_passes_batch_through_and_calls_hook():
    seen = []
    stats = PipelineStats()
    service = FakeService(error=HttpRequestError("HTTP status: 500"))
    batch = [_pending("A"), {"id": 2}, _pending("C")]

    out = Geocoder(service, OPTIONS, stats=stats, on_error=lambda exc, addresses: seen.append((exc, addresses))).process(batch)

    assert out is batch
    assert len(out) == 3
    assert all("__geocoded" not in record for record in out)
    assert out[0]["__requiresGeocode"] is True
    assert out[2]["__requiresGeocode"] is True
    assert len(seen) == 1
    assert isinstance(seen[0][0], HttpRequestError)
    assert seen[0][1] == ["A", "C"]
    assert stats.geocode_failures == 1
    assert stats.unresolved == 2


def test_unexpected_exception_is_contained():
    service = FakeService(error=RuntimeError("socket closed"))
    batch = [_pending("A")]

    out = Geocoder(service, OPTIONS).process(batch)

    assert out == [{"addr": "A", "__requiresGeocode": True}]


def test_result_count_mismatch_is_treated_as_failure():
    seen = []
    service = FakeService(results=[_match("only-one")])
    batch = [_pending("A"), _pending("B")]

    Geocoder(service, OPTIONS, on_error=lambda exc, _addresses: seen.append(exc)).process(batch)

    assert all("__geocoded" not in record for record in batch)
    assert all("location" not in record for record in batch)
    assert isinstance(seen[0], GeocodeServiceError)


def test_failing_hook_does_not_escape_stage():
    def bad_hook(_exc, _addresses):
        raise ValueError("hook bug")

    service = FakeService(error=HttpRequestError("down"))
    batch = [_pending("A")]

    assert Geocoder(service, OPTIONS, on_error=bad_hook).process(batch) is batch
