"""Domain port definitions for adapters."""

from __future__ import annotations

from .geocoding import Coordinates, Geocoder
from .persistence import CatalogRepository, ProposalRepository
from .unit_of_work import (
    CatalogConnectionResolver,
    CatalogRepositories,
    CatalogUnitOfWork,
    ProposalRepositories,
    ProposalUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "CatalogConnectionResolver",
    "CatalogRepositories",
    "CatalogRepository",
    "CatalogUnitOfWork",
    "Coordinates",
    "Geocoder",
    "ProposalRepositories",
    "ProposalRepository",
    "ProposalUnitOfWork",
    "RepositoryCollection",
    "UnitOfWork",
]
