"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from types import TracebackType

    from racecatalog.domain.ports.persistence import CatalogRepository, ProposalRepository


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class CatalogRepositories(RepositoryCollection):
    catalog: CatalogRepository


@dataclass(slots=True)
class ProposalRepositories(RepositoryCollection):
    proposals: ProposalRepository


type CatalogUnitOfWork = UnitOfWork[CatalogRepositories]
type ProposalUnitOfWork = UnitOfWork[ProposalRepositories]


@runtime_checkable
class CatalogConnectionResolver(Protocol):
    """Open a catalog unit of work on a named connection (``None``: the default one).

    ``audit_user`` is recorded in the created/updated-by columns of every write and
    ``clock``, when given, supplies the matching created/updated-at timestamps.
    """

    def __call__(
        self,
        connection_id: str | None = None,
        *,
        audit_user: str,
        clock: Callable[[], datetime] | None = None,
    ) -> CatalogUnitOfWork: ...
