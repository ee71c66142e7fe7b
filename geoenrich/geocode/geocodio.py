"""Geocodio batch geocoding client."""

from __future__ import annotations

from typing import Any, Sequence

from geoenrich.common.constants import GEOCODIO_ENDPOINT
from geoenrich.common.errors import ConfigError, GeocodeServiceError
from geoenrich.common.http import HttpClient, TimeoutConfig
from geoenrich.common.models import GeocodeMatch


def _parse_match(entry: Any) -> GeocodeMatch | None:
    if not isinstance(entry, dict):
        return None
    response = entry.get("response")
    if not isinstance(response, dict):
        return None
    candidates = response.get("results")
    if not isinstance(candidates, list) or not candidates:
        return None

    best = candidates[0]
    if not isinstance(best, dict):
        return None
    components = best.get("address_components")
    location = best.get("location")
    if not isinstance(components, dict) or not isinstance(location, dict):
        return None
    try:
        lat = float(location["lat"])
        lon = float(location["lng"])
    except (KeyError, TypeError, ValueError):
        return None
    return GeocodeMatch(lat=lat, lon=lon, components=components)


def parse_batch_response(payload: Any, expected: int) -> list[GeocodeMatch | None]:
    """Return one match (or None) per requested address, in request order."""
    if not isinstance(payload, dict):
        raise GeocodeServiceError("Geocode response is not a JSON object")
    results = payload.get("results")
    if not isinstance(results, list):
        raise GeocodeServiceError("Geocode response has no results list")
    if len(results) != expected:
        raise GeocodeServiceError(f"Geocode response has {len(results)} results for {expected} addresses")
    return [_parse_match(entry) for entry in results]


class GeocodioClient:
    def __init__(
        self,
        api_key: str,
        *,
        endpoint: str = GEOCODIO_ENDPOINT,
        http_client: HttpClient | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> None:
        if not api_key:
            raise ConfigError("A Geocodio API key is required")
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout
        self.owns_http = http_client is None
        self.http = http_client or HttpClient(timeout=timeout)

    def geocode_batch(self, addresses: Sequence[str]) -> list[GeocodeMatch | None]:
        if not addresses:
            return []
        payload = self.http.post_json(
            self.endpoint,
            params={"api_key": self.api_key},
            json_body=list(addresses),
            timeout=self.timeout,
        )
        return parse_batch_response(payload, expected=len(addresses))

    def close(self) -> None:
        if self.owns_http:
            self.http.close()
