"""Build catalog row payloads from a new-event change set."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from racecatalog.domain.changes import extract_value, lookup
from racecatalog.domain.model import (
    CalendarStatus,
    DataSource,
    EditionStatus,
    PaymentCollectionType,
    PriceType,
    Race,
    RaceCategory,
    parse_datetime,
    parse_float,
    parse_int,
    wire_name,
)

from .geography import build_full_address, region_code, resolve_department

if TYPE_CHECKING:
    from datetime import date, datetime

    from racecatalog.domain.changes import ChangeSet

    from .results import WarningLog

log = getLogger(__name__)

DEFAULT_RACE_NAME: Final[str] = "Course principale"
DEFAULT_COUNTRY: Final[str] = "FR"
DEFAULT_TIME_ZONE: Final[str] = "Europe/Paris"

RACE_NUMERIC_FIELDS: Final[frozenset[str]] = frozenset(
    wire_name(attribute) for attribute in Race.FLOAT_FIELDS
)
RACE_IDENTITY_FIELDS: Final[tuple[str, ...]] = ("id", "raceId")

EDITION_FIELDS: Final[tuple[str, ...]] = (
    "year",
    "startDate",
    "endDate",
    "registrationOpeningDate",
    "registrationClosingDate",
    "confirmedAt",
    "calendarStatus",
    "clientStatus",
    "status",
    "currency",
    "timeZone",
    "medusaVersion",
    "customerType",
    "registrantsNumber",
    "whatIsIncluded",
    "clientExternalUrl",
    "bibWithdrawalFullAddress",
    "volunteerCode",
    "isAttendeeListPublic",
    "hasEditedDates",
    "dataSource",
)
_EDITION_DATES: Final[tuple[str, ...]] = (
    "startDate",
    "endDate",
    "registrationOpeningDate",
    "registrationClosingDate",
    "confirmedAt",
)

_FLAT_RACE_FIELDS: Final[Mapping[str, str]] = {
    "raceName": "name",
    "raceStartDate": "startDate",
    "price": "price",
    "priceType": "priceType",
    "paymentCollectionType": "paymentCollectionType",
    "runDistance": "runDistance",
    "runDistance2": "runDistance2",
    "bikeDistance": "bikeDistance",
    "swimDistance": "swimDistance",
    "walkDistance": "walkDistance",
    "bikeRunDistance": "bikeRunDistance",
    "swimRunDistance": "swimRunDistance",
    "runPositiveElevation": "runPositiveElevation",
    "runNegativeElevation": "runNegativeElevation",
    "bikePositiveElevation": "bikePositiveElevation",
    "bikeNegativeElevation": "bikeNegativeElevation",
    "walkPositiveElevation": "walkPositiveElevation",
    "walkNegativeElevation": "walkNegativeElevation",
    "categoryLevel1": "categoryLevel1",
    "categoryLevel2": "categoryLevel2",
    "distanceCategory": "distanceCategory",
    "distance": "distance",
    "type": "type",
    "timeZone": "timeZone",
}

_INFERRED_SOURCES: Final[tuple[tuple[tuple[str, ...], DataSource], ...]] = (
    (("ffa", "federation"), DataSource.FEDERATION),
    (("timer", "chronometeur", "livetrail"), DataSource.TIMER),
)


def infer_data_source(agent_name: str | None) -> DataSource:
    name = (agent_name or "").lower()
    for markers, source in _INFERRED_SOURCES:
        if any(marker in name for marker in markers):
            return source
    return DataSource.OTHER


def lenient_datetime(value: object) -> datetime | None:
    try:
        return parse_datetime(value)
    except ValueError:
        log.warning("Ignoring unparseable date %r", value)
        return None


def _or_default(value: object, default: object) -> object:
    return default if value is None else value


# Event -----------------------------------------------------------------------


def extract_event_data(
    changes: ChangeSet,
    *,
    agent_name: str | None,
    warnings: WarningLog,
) -> dict[str, object]:
    city = str(lookup(changes, "city") or "")
    department = lookup(changes, "countrySubdivisionNameLevel2") or lookup(changes, "department")
    region = str(
        lookup(changes, "countrySubdivision")
        or lookup(changes, "countrySubdivisionNameLevel1")
        or ""
    )
    country = str(lookup(changes, "country") or DEFAULT_COUNTRY)
    department_code, department_name = resolve_department(str(department or ""))

    if "id" in changes:
        warnings.add("id", f"Ignoring proposed id {lookup(changes, 'id')!r} for a new event")

    return {
        "name": str(lookup(changes, "name") or ""),
        "city": city,
        "country": country,
        "countrySubdivisionNameLevel1": region,
        "countrySubdivisionNameLevel2": department_name,
        "countrySubdivisionDisplayCodeLevel1": region_code(region),
        "countrySubdivisionDisplayCodeLevel2": department_code,
        "fullAddress": lookup(changes, "fullAddress")
        or build_full_address(city, department_name, country),
        "latitude": parse_float(lookup(changes, "latitude")),
        "longitude": parse_float(lookup(changes, "longitude")),
        "websiteUrl": lookup(changes, "websiteUrl") or None,
        "facebookUrl": lookup(changes, "facebookUrl") or None,
        "instagramUrl": lookup(changes, "instagramUrl") or None,
        "twitterUrl": lookup(changes, "twitterUrl") or None,
        "coverImage": lookup(changes, "coverImage"),
        "images": lookup(changes, "images") or [],
        "peyceReview": lookup(changes, "peyceReview"),
        "isPrivate": _or_default(lookup(changes, "isPrivate"), False),
        "isFeatured": _or_default(lookup(changes, "isFeatured"), False),
        "isRecommended": _or_default(lookup(changes, "isRecommended"), False),
        "toUpdate": _or_default(lookup(changes, "toUpdate"), True),
        "dataSource": lookup(changes, "dataSource") or infer_data_source(agent_name),
    }


# Editions --------------------------------------------------------------------


def _edition_from(
    data: Mapping[str, object],
    *,
    today: date,
    default_source: DataSource,
) -> dict[str, object]:
    year = data.get("year")
    edition: dict[str, object] = {
        "year": str(year) if year else str(today.year),
        "calendarStatus": data.get("calendarStatus") or CalendarStatus.CONFIRMED,
        "clientStatus": data.get("clientStatus"),
        "status": data.get("status") or EditionStatus.LIVE,
        "currency": data.get("currency") or "EUR",
        "timeZone": data.get("timeZone") or DEFAULT_TIME_ZONE,
        "medusaVersion": data.get("medusaVersion") or "V1",
        "customerType": data.get("customerType"),
        "registrantsNumber": parse_int(data.get("registrantsNumber")),
        "whatIsIncluded": data.get("whatIsIncluded"),
        "clientExternalUrl": data.get("clientExternalUrl"),
        "bibWithdrawalFullAddress": data.get("bibWithdrawalFullAddress"),
        "volunteerCode": data.get("volunteerCode"),
        "isAttendeeListPublic": _or_default(data.get("isAttendeeListPublic"), True),
        "hasEditedDates": _or_default(data.get("hasEditedDates"), False),
        "dataSource": data.get("dataSource") or default_source,
    }
    for key in _EDITION_DATES:
        edition[key] = lenient_datetime(data.get(key))
    return edition


def nested_edition(changes: ChangeSet) -> Mapping[str, object] | None:
    value = lookup(changes, "edition")
    if isinstance(value, Mapping):
        return cast("Mapping[str, object]", value)
    return None


def extract_editions_data(
    changes: ChangeSet,
    *,
    agent_name: str | None,
    today: date,
) -> list[dict[str, object]]:
    """Editions to create, from the nested payload, root fields or ``edition_*`` objects."""

    default_source = infer_data_source(agent_name)

    nested = nested_edition(changes)
    if nested is not None:
        return [_edition_from(nested, today=today, default_source=default_source)]

    if any(lookup(changes, key) for key in ("year", "startDate", "endDate")):
        root = {key: lookup(changes, key) for key in EDITION_FIELDS}
        return [_edition_from(root, today=today, default_source=default_source)]

    editions: list[dict[str, object]] = []
    for key, change in changes.items():
        value = extract_value(change)
        if key.startswith("edition_") and isinstance(value, Mapping):
            editions.append(
                _edition_from(
                    cast("Mapping[str, object]", value),
                    today=today,
                    default_source=default_source,
                )
            )
    if editions:
        return editions

    return [
        {
            "year": str(today.year),
            "calendarStatus": CalendarStatus.CONFIRMED,
            "status": EditionStatus.LIVE,
        }
    ]


# Races -----------------------------------------------------------------------


def route_generic_measures(
    race: dict[str, object],
    *,
    category: object = None,
) -> dict[str, object]:
    """Move the generic ``distance``/``elevation`` keys onto the category's columns.

    Walks use the walk columns, cycling the bike columns, everything else the run
    columns. An explicit column value already present wins.
    """

    category = race.get("categoryLevel1") or category
    if category == RaceCategory.WALK:
        distance_key, elevation_key = "walkDistance", "walkPositiveElevation"
    elif category == RaceCategory.CYCLING:
        distance_key, elevation_key = "bikeDistance", "bikePositiveElevation"
    else:
        distance_key, elevation_key = "runDistance", "runPositiveElevation"

    for generic, target in (("distance", distance_key), ("elevation", elevation_key)):
        if generic not in race:
            continue
        value = parse_float(race.pop(generic))
        if value is not None and race.get(target) is None:
            race[target] = value
    return race


def normalize_race(data: Mapping[str, object]) -> dict[str, object]:
    """Coerce a proposed race row into a creatable payload (identity fields included)."""

    race = {key: value for key, value in data.items() if key != "type"}
    race["name"] = data.get("name") or DEFAULT_RACE_NAME
    race["categoryLevel1"] = data.get("categoryLevel1") or data.get("type")
    for key in race.keys() & RACE_NUMERIC_FIELDS:
        race[key] = parse_float(race[key])
    if "startDate" in race:
        race["startDate"] = lenient_datetime(race["startDate"])
    return route_generic_measures(race)


def strip_identity(
    race: dict[str, object],
    *,
    label: str,
    warnings: WarningLog,
) -> dict[str, object]:
    """New rows never carry a persisted id; drop any that slipped into the payload."""

    for key in RACE_IDENTITY_FIELDS:
        if key in race:
            warnings.add("races", f"Ignoring {key}={race.pop(key)!r} on new race {label}")
    return race


def extract_races_data(changes: ChangeSet) -> list[dict[str, object]]:
    races: list[dict[str, object]] = []

    nested = nested_edition(changes)
    nested_races = nested.get("races") if nested is not None else None
    if isinstance(nested_races, list):
        races.extend(
            normalize_race(cast("Mapping[str, object]", race))
            for race in cast("list[object]", nested_races)
            if isinstance(race, Mapping)
        )

    for key, change in changes.items():
        value = extract_value(change)
        if key.startswith("race_") and isinstance(value, Mapping):
            races.append(normalize_race(cast("Mapping[str, object]", value)))

    if not races and any(lookup(changes, key) for key in ("runDistance", "price", "raceName")):
        flat = {
            target: lookup(changes, source)
            for source, target in _FLAT_RACE_FIELDS.items()
            if source in changes
        }
        flat.setdefault("priceType", PriceType.PER_PERSON)
        flat.setdefault("paymentCollectionType", PaymentCollectionType.SINGLE)
        races.append(normalize_race(flat))

    return races


def extract_organizer_data(changes: ChangeSet) -> dict[str, object] | None:
    value = lookup(changes, "organizer")
    if not isinstance(value, Mapping):
        nested = nested_edition(changes)
        value = nested.get("organizer") if nested is not None else None
    if not isinstance(value, Mapping):
        return None
    organizer = cast("Mapping[str, object]", value)
    return {
        key: organizer.get(key)
        for key in ("name", "websiteUrl", "facebookUrl", "instagramUrl")
        if key in organizer
    }
