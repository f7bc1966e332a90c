from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from racecatalog.adapters.sqlalchemy import create_all_tables, start_mappers
from racecatalog.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyConnectionResolver,
    SqlAlchemyProposalUnitOfWork,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_proposals(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyProposalUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyProposalUnitOfWork:
        return SqlAlchemyProposalUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def sqlite_connections(
    sqlite_proposals: Callable[[], SqlAlchemyProposalUnitOfWork],
) -> SqlAlchemyConnectionResolver:
    _ = sqlite_proposals
    return SqlAlchemyConnectionResolver(uris={}, default="default")
