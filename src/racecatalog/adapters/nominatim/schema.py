"""Nominatim ``/search`` response schema."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, TypeAdapter

log = logging.getLogger(__name__)


class NominatimBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug("Nominatim %s: unmodeled keys: %s", type(self).__name__, sorted(new_keys))


class NominatimAddress(NominatimBaseModel):
    city: str | None = None
    town: str | None = None
    village: str | None = None
    county: str | None = None
    state: str | None = None
    postcode: str | None = None
    country: str | None = None
    country_code: str | None = None


class NominatimPlace(NominatimBaseModel):
    place_id: int | None = None
    # Coordinates come back as decimal strings.
    lat: str
    lon: str
    display_name: str | None = None
    importance: float | None = None
    address: NominatimAddress | None = None


NominatimSearch = TypeAdapter(list[NominatimPlace])
