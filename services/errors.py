"""Errors raised while searching for and parsing a station report."""

from __future__ import annotations

from typing import Optional

from models.records import PollutantKind


class AirKoreaError(Exception):
    """Base class for every failure surfaced by :func:`services.search.search`."""


class TransportError(AirKoreaError):
    """The station page could not be retrieved."""

    def __init__(self, message: str, url: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(AirKoreaError):
    pass


class StructureNotFound(ParseError):
    """An expected anchor is missing from the page; the page format likely changed."""

    def __init__(self, anchor: str, detail: Optional[str] = None) -> None:
        message = f"Could not locate {anchor} in the station page."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)
        self.anchor = anchor


class MalformedDocument(ParseError):
    """The response body could not be tokenized as HTML."""


class ExtractError(AirKoreaError):
    pass


class BadTimestamp(ExtractError):
    def __init__(self, text: str) -> None:
        super().__init__(f"Unrecognized observation time {text!r}.")
        self.text = text


class BadNumber(ExtractError):
    """A reading is not a number; ``pollutant`` is None for the air-quality index."""

    def __init__(self, text: str, pollutant: Optional[PollutantKind]) -> None:
        label = "CAI" if pollutant is None else pollutant.value
        super().__init__(f"Invalid {label} reading {text!r}.")
        self.text = text
        self.pollutant = pollutant
