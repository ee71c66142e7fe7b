from __future__ import annotations

import json
from pathlib import Path

import pytest

from geoenrich.common.errors import ConfigError, GeocodeServiceError
from geoenrich.geocode.geocodio import GeocodioClient, parse_batch_response

FIXTURE = Path("tests/fixtures/geocodio/batch_response.json")


class FakeHttpClient:
    def __init__(self, payload):
        self.payload = payload
        self.calls: list[tuple[str, dict]] = []

    def post_json(self, url: str, **kwargs):
        self.calls.append((url, kwargs))
        return self.payload

    def close(self):
        return None


def test_parse_batch_response_aligns_results_with_request_order():
    payload = json.loads(FIXTURE.read_text(encoding="utf-8"))

    matches = parse_batch_response(payload, expected=3)

    assert matches[1] is None
    assert matches[0].location() == {"lat": 38.886672, "lon": -77.094735}
    assert matches[0].components["zip"] == "22201"
    assert matches[2].components["city"] == "Toronto"


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"error": "Invalid API key"},
        {"results": "nope"},
        {"results": [{}]},
    ],
)
def test_parse_batch_response_rejects_malformed_payloads(payload):
    with pytest.raises(GeocodeServiceError):
        parse_batch_response(payload, expected=2)


def test_parse_batch_response_drops_candidates_without_location():
    payload = {
        "results": [
            {"response": {"results": [{"address_components": {"city": "X"}}]}},
            {"response": {"results": [{"address_components": {"city": "Y"}, "location": {"lat": "1.5", "lng": "2"}}]}},
        ]
    }

    matches = parse_batch_response(payload, expected=2)

    assert matches[0] is None
    assert matches[1].location() == {"lat": 1.5, "lon": 2.0}


def test_geocode_batch_posts_address_list_with_api_key():
    http = FakeHttpClient(json.loads(FIXTURE.read_text(encoding="utf-8")))
    client = GeocodioClient("secret", endpoint="https://api.example.test/geocode", http_client=http)

    matches = client.geocode_batch(["a", "b", "c"])

    assert len(matches) == 3
    url, kwargs = http.calls[0]
    assert url == "https://api.example.test/geocode"
    assert kwargs["json_body"] == ["a", "b", "c"]
    assert kwargs["params"] == {"api_key": "secret"}


def test_geocode_batch_with_no_addresses_makes_no_call():
    http = FakeHttpClient({"results": []})
    assert GeocodioClient("secret", http_client=http).geocode_batch([]) == []
    assert http.calls == []


def test_geocodio_client_requires_api_key():
    with pytest.raises(ConfigError):
        GeocodioClient("")
