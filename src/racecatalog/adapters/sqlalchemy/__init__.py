"""SQLAlchemy adapter for the catalog and proposal store."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemyCatalogRepository, SqlAlchemyProposalRepository

__all__ = [
    "SqlAlchemyCatalogRepository",
    "SqlAlchemyProposalRepository",
    "create_all_tables",
    "mapper_registry",
    "start_mappers",
]
