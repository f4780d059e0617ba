"""Pydantic models for the assembled air-quality report."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.records import Grade, PollutantKind


class Measurement(BaseModel):
    """A single pollutant reading with its derived grade."""

    model_config = ConfigDict(frozen=True)

    pollutant: PollutantKind
    value: Optional[float] = Field(
        default=None, description="Concentration in the pollutant's unit; absent when unreported."
    )
    grade: Optional[Grade] = None

    @model_validator(mode="after")
    def _grade_requires_value(self) -> "Measurement":
        if self.value is None and self.grade is not None:
            raise ValueError("A measurement without a value cannot carry a grade.")
        return self

    @property
    def unit(self) -> str:
        return self.pollutant.unit

    def __str__(self) -> str:
        level = "--" if self.value is None else f"{self.value:g}"
        grade = "None" if self.grade is None else str(self.grade)
        return f"{self.pollutant.value:<6} {level + self.unit:<10} {grade}"


class AirQualityIndex(BaseModel):
    """The station's integrated air-quality index (CAI), which has no unit."""

    model_config = ConfigDict(frozen=True)

    value: float
    grade: Grade

    def __str__(self) -> str:
        return f"{'CAI':<6} {self.value:<10g} {self.grade}"


class AirStatus(BaseModel):
    """Report for the station nearest to the searched coordinate."""

    model_config = ConfigDict(frozen=True)

    station_address: str
    station_name: str
    observed_at: datetime = Field(..., description="Station-local observation time.")
    measurements: Tuple[Measurement, ...] = ()
    cai: Optional[AirQualityIndex] = Field(
        default=None, description="Integrated index; absent when the page reports none."
    )

    def measurement_for(self, pollutant: PollutantKind) -> Optional[Measurement]:
        for measurement in self.measurements:
            if measurement.pollutant is pollutant:
                return measurement
        return None

    @property
    def worst_grade(self) -> Optional[Grade]:
        grades = [m.grade for m in self.measurements if m.grade is not None]
        return max(grades) if grades else None
