"""Wire the application service to the configured adapters."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from racecatalog.adapters.nominatim import NominatimGeocoder
from racecatalog.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyConnectionResolver,
    SqlAlchemyProposalUnitOfWork,
    is_started,
    startup,
)
from racecatalog.config import get_connections_config, get_geocoding_config
from racecatalog.domain.application.orchestrator import ProposalApplicationService

if TYPE_CHECKING:
    from racecatalog.config import ConnectionsConfig, GeocodingConfig
    from racecatalog.domain.ports.geocoding import Geocoder

log = getLogger(__name__)


def build_geocoder(config: GeocodingConfig | None = None) -> Geocoder | None:
    geocoding = config or get_geocoding_config()
    if not geocoding.enabled:
        log.info("Geocoding disabled")
        return None
    return NominatimGeocoder(config=geocoding)


def build_application_service(
    *,
    connections: ConnectionsConfig | None = None,
    geocoder: Geocoder | None = None,
    geocoding: GeocodingConfig | None = None,
) -> ProposalApplicationService:
    """Start the store on the default connection and assemble the service.

    An explicit ``geocoder`` wins over the one built from ``geocoding``.
    """

    connections_config = connections or get_connections_config()
    if not is_started():
        startup(database_uri=connections_config.uri_for(None))
    resolver = SqlAlchemyConnectionResolver(
        uris=dict(connections_config.uris),
        default=connections_config.default,
    )
    log.info(
        "Catalog connections: %s (default %s)",
        ", ".join(sorted(connections_config.uris)),
        connections_config.default,
    )
    return ProposalApplicationService(
        connections=resolver,
        proposals=SqlAlchemyProposalUnitOfWork,
        geocoder=geocoder or build_geocoder(geocoding),
    )
