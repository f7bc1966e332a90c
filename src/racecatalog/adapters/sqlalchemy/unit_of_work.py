"""SQLAlchemy units of work and engine lifecycle."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from racecatalog.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from racecatalog.adapters.sqlalchemy.repositories import (
    SqlAlchemyCatalogRepository,
    SqlAlchemyProposalRepository,
    utcnow,
)
from racecatalog.config.storage import get_database_config
from racecatalog.domain.ports.unit_of_work import (
    CatalogRepositories,
    ProposalRepositories,
    RepositoryCollection,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import datetime
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call racecatalog.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Create the engine (unless given), map the model and create missing tables."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(database_uri or get_database_config().uri)
    start_mappers()
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine
    log.info("SQLAlchemy adapter started on %s", resolved_engine.url.render_as_string())


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Session-per-context unit of work; rolls back when the block raises."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self.session_factory: sessionmaker[Session] = session_factory or _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyCatalogUnitOfWork(BaseSqlAlchemyUnitOfWork[CatalogRepositories]):
    def __init__(
        self,
        *,
        audit_user: str,
        session_factory: sessionmaker[Session] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__(session_factory)
        self.audit_user = audit_user
        self.clock = clock or utcnow

    def _build_repositories(self, session: Session) -> CatalogRepositories:
        return CatalogRepositories(
            catalog=SqlAlchemyCatalogRepository(
                session, audit_user=self.audit_user, clock=self.clock
            )
        )


class SqlAlchemyProposalUnitOfWork(BaseSqlAlchemyUnitOfWork[ProposalRepositories]):
    def _build_repositories(self, session: Session) -> ProposalRepositories:
        return ProposalRepositories(proposals=SqlAlchemyProposalRepository(session))


@dataclass(slots=True)
class SqlAlchemyConnectionResolver:
    """Open catalog units of work on named databases.

    ``None`` and the configured default name use the engine set up by
    :func:`startup`; other names get their own lazily created engine.
    """

    uris: Mapping[str, str] = field(default_factory=dict)
    default: str | None = None
    _factories: dict[str, sessionmaker[Session]] = field(default_factory=dict)

    def __call__(
        self,
        connection_id: str | None = None,
        *,
        audit_user: str,
        clock: Callable[[], datetime] | None = None,
    ) -> SqlAlchemyCatalogUnitOfWork:
        if connection_id is None or connection_id == self.default:
            return SqlAlchemyCatalogUnitOfWork(audit_user=audit_user, clock=clock)
        return SqlAlchemyCatalogUnitOfWork(
            audit_user=audit_user,
            session_factory=self._factory(connection_id),
            clock=clock,
        )

    def _factory(self, connection_id: str) -> sessionmaker[Session]:
        factory = self._factories.get(connection_id)
        if factory is not None:
            return factory
        uri = self.uris.get(connection_id)
        if uri is None:
            raise StartupError(f"Unknown catalog connection {connection_id!r}")
        engine = create_engine(uri)
        create_all_tables(engine)
        factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._factories[connection_id] = factory
        log.info("Opened catalog connection %s", connection_id)
        return factory

    def dispose(self) -> None:
        for factory in self._factories.values():
            bind = factory.kw.get("bind")
            if bind is not None:
                bind.dispose()
        self._factories.clear()


if TYPE_CHECKING:
    from racecatalog.domain.ports.unit_of_work import (
        CatalogConnectionResolver,
        CatalogUnitOfWork,
        ProposalUnitOfWork,
    )

    _uow_catalog_check: CatalogUnitOfWork = SqlAlchemyCatalogUnitOfWork(audit_user="check")
    _uow_proposal_check: ProposalUnitOfWork = SqlAlchemyProposalUnitOfWork()
    _resolver_check: CatalogConnectionResolver = SqlAlchemyConnectionResolver()
