"""Conversion of raw page strings into typed station fields."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from models.records import PollutantKind, RawMeasurement, StationPage, StationSnapshot
from services.errors import BadNumber, BadTimestamp, StructureNotFound
from settings import get_settings

logger = logging.getLogger(__name__)

# Column order of the measurement row. The page labels columns only in Korean
# display text, so this table is the one place to update when the layout moves.
MEASUREMENT_COLUMNS: Tuple[Tuple[int, PollutantKind], ...] = (
    (0, PollutantKind.pm10),
    (1, PollutantKind.pm25),
    (2, PollutantKind.o3),
    (3, PollutantKind.no2),
    (4, PollutantKind.co),
    (5, PollutantKind.so2),
)

NO_DATA_PLACEHOLDERS = frozenset({"", "-", "--", "점검중", "통신장애", "자료이상", "자료없음", "N/A"})

_NUMBER_PATTERN = re.compile(r"^(?P<number>[+-]?(?:\d[\d,]*)?(?:\.\d+)?)\s*(?P<unit>[^\d\s.,+-].*)?$")
_GROUPED_PATTERN = re.compile(r"^[+-]?[1-9]\d{0,2}(?:,\d{3})+(?:\.\d+)?$")

_TIMESTAMP_PATTERN = re.compile(
    r"""
    ^(?:(?P<year>\d{4})\s*[-./년]\s*)?
    (?P<month>\d{1,2})\s*[-./월]\s*
    (?P<day>\d{1,2})\s*[.일]?\s+
    (?P<hour>\d{1,2})\s*(?:시(?:\s*(?P<kminute>\d{1,2})\s*분)?|:\s*(?P<minute>\d{2}))
    (?:\s*[^\d\s].*)?$
    """,
    re.VERBOSE,
)

# Future tolerance before a year-less timestamp is attributed to the previous year.
_YEAR_ROLLBACK_GRACE = timedelta(days=1)


def _read_number(text: str, pollutant: Optional[PollutantKind]) -> Optional[float]:
    candidate = text.strip()
    if candidate in NO_DATA_PLACEHOLDERS:
        logger.debug(
            "No data reported",
            extra={"pollutant": "CAI" if pollutant is None else pollutant.value, "raw_value": candidate},
        )
        return None

    match = _NUMBER_PATTERN.match(candidate)
    if match is None or not any(char.isdigit() for char in match.group("number")):
        raise BadNumber(text, pollutant)

    number = match.group("number")
    if _GROUPED_PATTERN.match(number):
        number = number.replace(",", "")
    elif number.count(",") == 1 and "." not in number:
        number = number.replace(",", ".")
    try:
        return float(number)
    except ValueError as exc:
        raise BadNumber(text, pollutant) from exc


def parse_value(text: str, pollutant: PollutantKind) -> Optional[float]:
    """Read a cell such as ``"45㎍/㎥"`` or ``"0,031 ppm"``; placeholders give ``None``."""
    return _read_number(text, pollutant)


def parse_index(text: str) -> Optional[float]:
    """Read the integrated air-quality index, which carries no unit."""
    return _read_number(text, None)


def parse_observed_at(text: str, tz: tzinfo, now: Optional[datetime] = None) -> datetime:
    """Rebuild the station-local observation time from the page's partial text.

    Hour ``24`` is the Korean convention for midnight closing the day. When the
    year is omitted the reference year is used, unless that places the
    observation more than a day in the future, in which case the snapshot
    belongs to the previous year.
    """
    match = _TIMESTAMP_PATTERN.match(text.strip())
    if match is None:
        raise BadTimestamp(text)

    reference = (now or datetime.now(tz)).astimezone(tz)
    year = int(match.group("year")) if match.group("year") else reference.year
    hour = int(match.group("hour"))
    minute = int(match.group("minute") or match.group("kminute") or 0)

    try:
        if hour == 24 and minute == 0:
            observed = datetime(year, int(match.group("month")), int(match.group("day")), tzinfo=tz)
            observed += timedelta(days=1)
        else:
            observed = datetime(
                year, int(match.group("month")), int(match.group("day")), hour, minute, tzinfo=tz
            )
    except ValueError as exc:
        raise BadTimestamp(text) from exc

    if match.group("year") is None and observed - reference > _YEAR_ROLLBACK_GRACE:
        try:
            observed = observed.replace(year=observed.year - 1)
        except ValueError as exc:
            raise BadTimestamp(text) from exc
    return observed


def normalize(
    page: StationPage,
    *,
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
) -> StationSnapshot:
    station_tz = tz or ZoneInfo(get_settings().station_timezone)

    address = page.station.address or page.heading
    if not address:
        raise StructureNotFound("the station address")
    name = page.station.name or address

    if len(page.cells) < len(MEASUREMENT_COLUMNS):
        raise StructureNotFound(
            "the measurement table",
            f"Expected {len(MEASUREMENT_COLUMNS)} cells, found {len(page.cells)}.",
        )

    measurements = tuple(
        RawMeasurement(pollutant=pollutant, value=parse_value(page.cells[position], pollutant))
        for position, pollutant in MEASUREMENT_COLUMNS
    )

    return StationSnapshot(
        address=address,
        name=name,
        observed_at=parse_observed_at(page.timestamp_text, station_tz, now),
        measurements=measurements,
        index_value=None if page.index_text is None else parse_index(page.index_text),
    )
