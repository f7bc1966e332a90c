"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ProposalKind(StrEnum):
    NEW_EVENT = "NEW_EVENT"
    EVENT_UPDATE = "EVENT_UPDATE"
    EDITION_UPDATE = "EDITION_UPDATE"
    RACE_UPDATE = "RACE_UPDATE"
    EVENT_MERGE = "EVENT_MERGE"


class ProposalStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


class EventStatus(StrEnum):
    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    LIVE = "LIVE"
    DELETED = "DELETED"
    DEAD = "DEAD"


class EditionStatus(StrEnum):
    DRAFT = "DRAFT"
    LIVE = "LIVE"


class CalendarStatus(StrEnum):
    CONFIRMED = "CONFIRMED"
    CANCELED = "CANCELED"
    TO_BE_CONFIRMED = "TO_BE_CONFIRMED"


class ClientStatus(StrEnum):
    NEW_SALES_FUNNEL = "NEW_SALES_FUNNEL"
    INTERESTED = "INTERESTED"
    CLIENT = "CLIENT"


class DataSource(StrEnum):
    """Where catalog data came from; inferred from the agent name on creation."""

    ORGANIZER = "ORGANIZER"
    TIMER = "TIMER"
    FEDERATION = "FEDERATION"
    PEYCE = "PEYCE"
    OTHER = "OTHER"


class PartnerRole(StrEnum):
    ORGANIZER = "ORGANIZER"
    TIMER = "TIMER"
    SPONSOR = "SPONSOR"


class PriceType(StrEnum):
    PER_PERSON = "PER_PERSON"
    PER_TEAM = "PER_TEAM"


class PaymentCollectionType(StrEnum):
    SINGLE = "SINGLE"
    MULTIPLE = "MULTIPLE"


class RaceCategory(StrEnum):
    """Top-level race categories that route generic distance fields."""

    RUNNING = "RUNNING"
    TRAIL = "TRAIL"
    WALK = "WALK"
    CYCLING = "CYCLING"
    TRIATHLON = "TRIATHLON"
    FUN = "FUN"
    OTHER = "OTHER"


class ApplicationStatus(StrEnum):
    APPLIED = "APPLIED"
    FAILED = "FAILED"


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
