"""Nominatim (OpenStreetMap) geocoding adapter."""

from __future__ import annotations

from .client import NominatimAPIError, NominatimClient, NominatimGeocoder

__all__ = ["NominatimAPIError", "NominatimClient", "NominatimGeocoder"]
