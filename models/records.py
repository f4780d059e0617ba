"""Domain enums and the intermediate records passed between pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import total_ordering
from typing import Optional, Tuple


class PollutantKind(str, Enum):
    """Pollutants published on the station page."""

    pm10 = "PM10"
    pm25 = "PM2.5"
    o3 = "O3"
    no2 = "NO2"
    co = "CO"
    so2 = "SO2"

    @property
    def unit(self) -> str:
        if self in (PollutantKind.pm10, PollutantKind.pm25):
            return "㎍/㎥"
        return "ppm"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    PollutantKind.pm10: "미세먼지",
    PollutantKind.pm25: "초미세먼지",
    PollutantKind.o3: "오존",
    PollutantKind.no2: "이산화질소",
    PollutantKind.co: "일산화탄소",
    PollutantKind.so2: "아황산가스",
}


@total_ordering
class Grade(Enum):
    """Severity grades; ordering follows declaration order."""

    good = "good"
    normal = "normal"
    bad = "bad"
    critical = "critical"

    @property
    def ordinal(self) -> int:
        return _GRADE_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Grade):
            return NotImplemented
        return self.ordinal < other.ordinal

    def __str__(self) -> str:
        return self.name.capitalize()


_GRADE_ORDER = tuple(Grade)


@dataclass(frozen=True, slots=True)
class StationEntry:
    """One item of the station list as found in the markup."""

    station_id: Optional[str]
    name: Optional[str]
    address: Optional[str]
    longitude: Optional[float]
    latitude: Optional[float]
    active: bool = False


@dataclass(frozen=True, slots=True)
class StationPage:
    """Raw strings located by the parser for the selected station."""

    station: StationEntry
    heading: Optional[str]
    timestamp_text: str
    headers: Tuple[str, ...]
    cells: Tuple[str, ...]
    # Text of the integrated air-quality index; None when the panel has no index block.
    index_text: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RawMeasurement:
    pollutant: PollutantKind
    value: Optional[float]


@dataclass(frozen=True, slots=True)
class StationSnapshot:
    """Typed fields extracted from a :class:`StationPage`."""

    address: str
    name: str
    observed_at: datetime
    measurements: Tuple[RawMeasurement, ...]
    index_value: Optional[float] = None
