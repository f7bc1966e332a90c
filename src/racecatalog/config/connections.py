"""Named catalog database connections.

``CATALOG_CONNECTIONS`` lists ``name=uri`` pairs separated by commas. Without it
the single database from :func:`~racecatalog.config.storage.get_database_config`
is registered as ``default``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from .errors import ConfigurationError
from .storage import get_database_config

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .storage import StorageConfig

DEFAULT_CONNECTION_NAME: Final[str] = "default"


@dataclass(frozen=True, slots=True)
class ConnectionsConfig:
    uris: Mapping[str, str]
    default: str

    def uri_for(self, connection_id: str | None) -> str:
        name = connection_id or self.default
        try:
            return self.uris[name]
        except KeyError:
            raise ConfigurationError(f"Unknown catalog connection {name!r}") from None


def parse_connections(raw: str) -> dict[str, str]:
    uris: dict[str, str] = {}
    for entry in raw.split(","):
        if not entry.strip():
            continue
        name, separator, uri = entry.partition("=")
        if not separator or not name.strip() or not uri.strip():
            raise ConfigurationError(f"Invalid CATALOG_CONNECTIONS entry {entry.strip()!r}")
        uris[name.strip()] = uri.strip()
    return uris


def get_connections_config(*, storage: StorageConfig | None = None) -> ConnectionsConfig:
    raw = os.getenv("CATALOG_CONNECTIONS", "")
    uris = parse_connections(raw) if raw.strip() else {}
    if not uris:
        uris = {DEFAULT_CONNECTION_NAME: get_database_config(storage=storage).uri}

    default = os.getenv("CATALOG_DEFAULT_CONNECTION") or next(iter(uris))
    if default not in uris:
        raise ConfigurationError(f"CATALOG_DEFAULT_CONNECTION {default!r} is not configured")
    return ConnectionsConfig(uris=uris, default=default)
