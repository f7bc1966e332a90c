"""SQLAlchemy tables and imperative mappings for the catalog and proposal store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)

from racecatalog.domain.model import (
    ApplicationStatus,
    Edition,
    Event,
    Organizer,
    Proposal,
    ProposalApplication,
    ProposalKind,
    ProposalStatus,
    Race,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware UTC timestamps, also on backends that drop the offset (SQLite)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _audit_columns() -> list[Column[Any]]:
    return [
        Column("created_by", String(255)),
        Column("updated_by", String(255)),
        Column("created_at", UTCDateTime()),
        Column("updated_at", UTCDateTime()),
    ]


# Catalog ---------------------------------------------------------------------

event_table = Table(
    "event",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("slug", String(255)),
    Column("city", String(255), nullable=False, default=""),
    Column("country", String(64), nullable=False),
    Column("country_subdivision_name_level1", String(255)),
    Column("country_subdivision_name_level2", String(255)),
    Column("country_subdivision_display_code_level1", String(16)),
    Column("country_subdivision_display_code_level2", String(16)),
    Column("full_address", String(512)),
    Column("latitude", Float),
    Column("longitude", Float),
    Column("website_url", String(512)),
    Column("facebook_url", String(512)),
    Column("instagram_url", String(512)),
    Column("twitter_url", String(512)),
    Column("cover_image", String(512)),
    Column("images", JSON, nullable=False),
    Column("peyce_review", Text),
    Column("is_private", Boolean, nullable=False),
    Column("is_featured", Boolean, nullable=False),
    Column("is_recommended", Boolean, nullable=False),
    Column("status", String(16), nullable=False),
    Column("data_source", String(32)),
    # Redirect pointer to a merged duplicate; may outlive its target.
    Column("old_slug_id", Integer),
    Column("to_update", Boolean, nullable=False),
    Column("algolia_object_to_update", Boolean, nullable=False),
    Column("algolia_object_to_delete", Boolean, nullable=False),
    *_audit_columns(),
)

edition_table = Table(
    "edition",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("event_id", Integer, ForeignKey("event.id"), nullable=False, index=True),
    Column("year", String(8), nullable=False),
    Column("start_date", UTCDateTime()),
    Column("end_date", UTCDateTime()),
    Column("registration_opening_date", UTCDateTime()),
    Column("registration_closing_date", UTCDateTime()),
    Column("confirmed_at", UTCDateTime()),
    Column("time_zone", String(64), nullable=False),
    Column("calendar_status", String(32), nullable=False),
    Column("client_status", String(32), nullable=False),
    Column("status", String(16), nullable=False),
    Column("currency", String(8), nullable=False),
    Column("medusa_version", String(8), nullable=False),
    Column("customer_type", String(32)),
    Column("registrants_number", Integer),
    Column("what_is_included", Text),
    Column("client_external_url", String(512)),
    Column("bib_withdrawal_full_address", String(512)),
    Column("volunteer_code", String(64)),
    Column("data_source", String(32)),
    Column("current_edition_event_id", Integer, ForeignKey("event.id")),
    Column("is_attendee_list_public", Boolean, nullable=False),
    Column("has_edited_dates", Boolean, nullable=False),
    Column("to_update", Boolean, nullable=False),
    *_audit_columns(),
)

edition_partner_table = Table(
    "edition_partner",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("edition_id", Integer, ForeignKey("edition.id"), nullable=False, index=True),
    Column("role", String(16), nullable=False),
    Column("name", String(255)),
    Column("website_url", String(512)),
    Column("facebook_url", String(512)),
    Column("instagram_url", String(512)),
    *_audit_columns(),
)

race_table = Table(
    "race",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("edition_id", Integer, ForeignKey("edition.id"), nullable=False, index=True),
    Column("event_id", Integer, ForeignKey("event.id"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("start_date", UTCDateTime()),
    Column("time_zone", String(64)),
    Column("price", Float),
    Column("price_type", String(16), nullable=False),
    Column("payment_collection_type", String(16), nullable=False),
    Column("run_distance", Float, nullable=False),
    Column("run_distance2", Float, nullable=False),
    Column("bike_distance", Float, nullable=False),
    Column("swim_distance", Float, nullable=False),
    Column("walk_distance", Float, nullable=False),
    Column("bike_run_distance", Float, nullable=False),
    Column("swim_run_distance", Float, nullable=False),
    Column("run_positive_elevation", Float),
    Column("run_negative_elevation", Float),
    Column("bike_positive_elevation", Float),
    Column("bike_negative_elevation", Float),
    Column("walk_positive_elevation", Float),
    Column("walk_negative_elevation", Float),
    Column("category_level1", String(32)),
    Column("category_level2", String(64)),
    Column("distance_category", String(16)),
    Column("is_active", Boolean, nullable=False),
    Column("is_archived", Boolean, nullable=False),
    Column("main_race_edition_id", Integer, ForeignKey("edition.id")),
    *_audit_columns(),
)

# Proposal store --------------------------------------------------------------

proposal_table = Table(
    "proposal",
    mapper_registry.metadata,
    Column("id", String(64), primary_key=True),
    Column("kind", Enum(ProposalKind, native_enum=False, length=32), nullable=False),
    Column("status", Enum(ProposalStatus, native_enum=False, length=32), nullable=False),
    Column("agent_name", String(255)),
    Column("changes", JSON, nullable=False),
    Column("user_modified_changes", JSON, nullable=False),
    Column("approved_blocks", JSON, nullable=False),
    Column("event_id", Integer),
    Column("edition_id", Integer),
    Column("race_id", Integer),
    Column("created_at", UTCDateTime()),
)

proposal_application_table = Table(
    "proposal_application",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("proposal_id", String(64), ForeignKey("proposal.id"), nullable=False, index=True),
    Column("block", String(16)),
    Column("status", Enum(ApplicationStatus, native_enum=False, length=16), nullable=False),
    Column("applied_changes", JSON, nullable=False),
    Column("created_ids", JSON, nullable=False),
    Column("errors", JSON, nullable=False),
    Column("warnings", JSON, nullable=False),
    Column("applied_by", String(255)),
    Column("applied_at", UTCDateTime()),
)


@cache
def start_mappers() -> orm.registry:
    """Map the domain dataclasses onto their tables (idempotent)."""

    mapper_registry.map_imperatively(Event, event_table)
    mapper_registry.map_imperatively(Edition, edition_table)
    mapper_registry.map_imperatively(Organizer, edition_partner_table)
    mapper_registry.map_imperatively(Race, race_table)
    mapper_registry.map_imperatively(Proposal, proposal_table)
    mapper_registry.map_imperatively(ProposalApplication, proposal_application_table)
    orm.configure_mappers()
    log.debug("Mapped %s tables", len(mapper_registry.metadata.tables))
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    mapper_registry.metadata.create_all(engine)
