"""Catalog rows owned by the external store.

The engine reads and writes these exclusively through the catalog repository port.
Defaults mirror what the store assigns to newly created rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from .enums import (
    CalendarStatus,
    ClientStatus,
    EditionStatus,
    EventStatus,
    PartnerRole,
    PaymentCollectionType,
    PriceType,
)

if TYPE_CHECKING:
    from datetime import datetime

_AUDIT_TIMESTAMPS = frozenset({"created_at", "updated_at"})


@dataclass(eq=False, kw_only=True)
class Event:
    DATETIME_FIELDS: ClassVar[frozenset[str]] = _AUDIT_TIMESTAMPS
    FLOAT_FIELDS: ClassVar[frozenset[str]] = frozenset({"latitude", "longitude"})
    INT_FIELDS: ClassVar[frozenset[str]] = frozenset({"old_slug_id"})
    TEXT_FIELDS: ClassVar[frozenset[str]] = frozenset()

    id: int | None = None
    name: str
    slug: str | None = None
    city: str = ""
    country: str = "France"
    country_subdivision_name_level1: str | None = None
    country_subdivision_name_level2: str | None = None
    country_subdivision_display_code_level1: str | None = None
    country_subdivision_display_code_level2: str | None = None
    full_address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    website_url: str | None = None
    facebook_url: str | None = None
    instagram_url: str | None = None
    twitter_url: str | None = None
    cover_image: str | None = None
    images: list[str] = field(default_factory=list)
    peyce_review: str | None = None
    is_private: bool = False
    is_featured: bool = False
    is_recommended: bool = False
    status: str = EventStatus.LIVE
    data_source: str | None = None
    old_slug_id: int | None = None
    to_update: bool = True
    algolia_object_to_update: bool = True
    algolia_object_to_delete: bool = False
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class Edition:
    DATETIME_FIELDS: ClassVar[frozenset[str]] = _AUDIT_TIMESTAMPS | {
        "start_date",
        "end_date",
        "registration_opening_date",
        "registration_closing_date",
        "confirmed_at",
    }
    FLOAT_FIELDS: ClassVar[frozenset[str]] = frozenset()
    INT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"event_id", "current_edition_event_id", "registrants_number"}
    )
    TEXT_FIELDS: ClassVar[frozenset[str]] = frozenset({"year"})

    id: int | None = None
    event_id: int
    year: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    registration_opening_date: datetime | None = None
    registration_closing_date: datetime | None = None
    confirmed_at: datetime | None = None
    time_zone: str = "Europe/Paris"
    calendar_status: str = CalendarStatus.TO_BE_CONFIRMED
    client_status: str = ClientStatus.NEW_SALES_FUNNEL
    status: str = EditionStatus.LIVE
    currency: str = "EUR"
    medusa_version: str = "V1"
    customer_type: str | None = None
    registrants_number: int | None = None
    what_is_included: str | None = None
    client_external_url: str | None = None
    bib_withdrawal_full_address: str | None = None
    volunteer_code: str | None = None
    data_source: str | None = None
    current_edition_event_id: int | None = None
    is_attendee_list_public: bool = True
    has_edited_dates: bool = False
    to_update: bool = False
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class Organizer:
    """Edition partner carrying the ``ORGANIZER`` role."""

    DATETIME_FIELDS: ClassVar[frozenset[str]] = _AUDIT_TIMESTAMPS
    FLOAT_FIELDS: ClassVar[frozenset[str]] = frozenset()
    INT_FIELDS: ClassVar[frozenset[str]] = frozenset({"edition_id"})
    TEXT_FIELDS: ClassVar[frozenset[str]] = frozenset()

    id: int | None = None
    edition_id: int
    role: str = PartnerRole.ORGANIZER
    name: str | None = None
    website_url: str | None = None
    facebook_url: str | None = None
    instagram_url: str | None = None
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class Race:
    DATETIME_FIELDS: ClassVar[frozenset[str]] = _AUDIT_TIMESTAMPS | {"start_date"}
    FLOAT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {
            "price",
            "run_distance",
            "run_distance2",
            "bike_distance",
            "swim_distance",
            "walk_distance",
            "bike_run_distance",
            "swim_run_distance",
            "run_positive_elevation",
            "run_negative_elevation",
            "bike_positive_elevation",
            "bike_negative_elevation",
            "walk_positive_elevation",
            "walk_negative_elevation",
        }
    )
    INT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"edition_id", "event_id", "main_race_edition_id"}
    )
    TEXT_FIELDS: ClassVar[frozenset[str]] = frozenset()

    id: int | None = None
    edition_id: int
    event_id: int
    name: str
    start_date: datetime | None = None
    time_zone: str | None = None
    price: float | None = None
    price_type: str = PriceType.PER_PERSON
    payment_collection_type: str = PaymentCollectionType.SINGLE
    run_distance: float = 0.0
    run_distance2: float = 0.0
    bike_distance: float = 0.0
    swim_distance: float = 0.0
    walk_distance: float = 0.0
    bike_run_distance: float = 0.0
    swim_run_distance: float = 0.0
    run_positive_elevation: float | None = None
    run_negative_elevation: float | None = None
    bike_positive_elevation: float | None = None
    bike_negative_elevation: float | None = None
    walk_positive_elevation: float | None = None
    walk_negative_elevation: float | None = None
    category_level1: str | None = None
    category_level2: str | None = None
    distance_category: str | None = None
    is_active: bool = True
    is_archived: bool = False
    main_race_edition_id: int | None = None
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
