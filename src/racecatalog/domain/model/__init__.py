"""Domain model for the race catalog and its proposals."""

from __future__ import annotations

from .catalog import Edition, Event, Organizer, Race
from .enums import (
    ApplicationStatus,
    CalendarStatus,
    ClientStatus,
    DataSource,
    EditionStatus,
    EventStatus,
    PartnerRole,
    PaymentCollectionType,
    PriceType,
    ProposalKind,
    ProposalStatus,
    RaceCategory,
    Severity,
)
from .fields import (
    assign_fields,
    attribute_name,
    parse_datetime,
    parse_float,
    parse_int,
    read_fields,
    wire_name,
)
from .proposal import JsonObject, Proposal, ProposalApplication

__all__ = [
    "ApplicationStatus",
    "CalendarStatus",
    "ClientStatus",
    "DataSource",
    "Edition",
    "EditionStatus",
    "Event",
    "EventStatus",
    "JsonObject",
    "Organizer",
    "PartnerRole",
    "PaymentCollectionType",
    "PriceType",
    "Proposal",
    "ProposalApplication",
    "ProposalKind",
    "ProposalStatus",
    "Race",
    "RaceCategory",
    "Severity",
    "assign_fields",
    "attribute_name",
    "parse_datetime",
    "parse_float",
    "parse_int",
    "read_fields",
    "wire_name",
]
