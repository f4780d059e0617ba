"""Classification of pollutant concentrations into severity grades."""

from __future__ import annotations

from bisect import bisect_right
from typing import Dict, Tuple

from models.records import Grade, PollutantKind

# Lower bounds of the normal, bad and critical bands (Airkorea index bands).
# Particulates are in ㎍/㎥, gases in ppm.
GRADE_THRESHOLDS: Dict[PollutantKind, Tuple[float, float, float]] = {
    PollutantKind.pm10: (31.0, 81.0, 151.0),
    PollutantKind.pm25: (16.0, 36.0, 76.0),
    PollutantKind.o3: (0.031, 0.091, 0.151),
    PollutantKind.no2: (0.031, 0.061, 0.201),
    PollutantKind.co: (2.01, 9.01, 15.01),
    PollutantKind.so2: (0.021, 0.051, 0.151),
}

_GRADES = tuple(Grade)


def thresholds(pollutant: PollutantKind) -> Tuple[float, float, float]:
    return GRADE_THRESHOLDS[pollutant]


def classify(pollutant: PollutantKind, value: float) -> Grade:
    """Return the grade whose half-open band ``[lower, next)`` contains ``value``.

    A value equal to a threshold falls in the worse band. Values below zero
    land in the lowest band.
    """
    return _GRADES[bisect_right(GRADE_THRESHOLDS[pollutant], value)]


# Lower bounds of the normal, bad and critical bands of the integrated index (CAI).
INDEX_THRESHOLDS: Tuple[float, float, float] = (51.0, 101.0, 251.0)


def classify_index(value: float) -> Grade:
    return _GRADES[bisect_right(INDEX_THRESHOLDS, value)]
