"""Port for the external place lookup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class Coordinates:
    latitude: float
    longitude: float


@runtime_checkable
class Geocoder(Protocol):
    def geocode(self, query: str) -> Coordinates | None:
        """Return the best match for a free-text place query, ``None`` when unknown."""
        ...
