"""Assembly of the final :class:`AirStatus` from extracted fields."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from models.records import RawMeasurement
from models.status import AirQualityIndex, AirStatus, Measurement
from services.grades import classify, classify_index


def grade_measurement(raw: RawMeasurement) -> Measurement:
    if raw.value is None:
        return Measurement(pollutant=raw.pollutant)
    return Measurement(
        pollutant=raw.pollutant,
        value=raw.value,
        grade=classify(raw.pollutant, raw.value),
    )


def grade_index(value: Optional[float]) -> Optional[AirQualityIndex]:
    if value is None:
        return None
    return AirQualityIndex(value=value, grade=classify_index(value))


def assemble(
    address: str,
    name: str,
    observed_at: datetime,
    raw_measurements: Iterable[RawMeasurement],
    index_value: Optional[float] = None,
) -> AirStatus:
    return AirStatus(
        station_address=address,
        station_name=name,
        observed_at=observed_at,
        measurements=tuple(grade_measurement(raw) for raw in raw_measurements),
        cai=grade_index(index_value),
    )
