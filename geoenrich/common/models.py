"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, MutableMapping

from geoenrich.common.constants import LOCATION_FIELD

Record = MutableMapping[str, Any]
Batch = list[Record]


@dataclass(frozen=True)
class StageOptions:
    address_field: str
    full_address_field: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "full_address_field", f"{self.address_field}_full")

    def component_field(self, component: str) -> str:
        return f"{self.address_field}_{component}"

    def address_of(self, record: Record) -> str | None:
        # Only non-blank strings count; the raw value is also the literal cache key.
        value = record.get(self.address_field)
        if isinstance(value, str) and value.strip():
            return value
        return None


@dataclass(frozen=True)
class GeocodeMatch:
    lat: float
    lon: float
    components: dict[str, Any]

    def location(self) -> dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}

    def apply(self, record: Record, options: StageOptions) -> None:
        record[LOCATION_FIELD] = self.location()
        record[options.full_address_field] = self.components
        for component, value in self.components.items():
            record[options.component_field(component)] = value


@dataclass(frozen=True)
class FieldDeclaration:
    name: str
    type: str
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "label": self.label}
