"""Locate the selected station's raw fields in the Airkorea mobile page."""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

import lxml.html
from lxml import etree

from models.records import StationEntry, StationPage
from services.errors import MalformedDocument, StructureNotFound

logger = logging.getLogger(__name__)

STATION_LIST_CLASS = "station-list"
STATION_ITEM_CLASS = "station"
ACTIVE_CLASSES = frozenset({"on", "active"})
DATA_PANEL_CLASS = "station-data"
TIME_CLASS = "time"
HEADING_CLASS = "tit"
INDEX_CLASS = "cai"
INDEX_VALUE_CLASS = "num"
MEASUREMENT_TABLE_XPATH = ".//table[contains(concat(' ', normalize-space(@class), ' '), ' measurement ')]"

_EARTH_RADIUS_KM = 6371.0088


def _text(element: Optional[lxml.html.HtmlElement]) -> Optional[str]:
    if element is None:
        return None
    collapsed = " ".join(element.text_content().split())
    return collapsed or None


def _first_of_class(scope: lxml.html.HtmlElement, class_name: str) -> Optional[lxml.html.HtmlElement]:
    found = scope.find_class(class_name)
    return found[0] if found else None


def _classes(element: lxml.html.HtmlElement) -> set[str]:
    return set((element.get("class") or "").split())


def _read_coordinate(element: lxml.html.HtmlElement, attribute: str) -> Optional[float]:
    raw = (element.get(attribute) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _distance_km(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * _EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def _load_document(raw_html: str) -> lxml.html.HtmlElement:
    if not raw_html or not raw_html.strip():
        raise MalformedDocument("The station page body is empty.")
    # lxml rejects str input that carries an XML encoding declaration.
    parser = lxml.html.HTMLParser(encoding="utf-8")
    try:
        return lxml.html.document_fromstring(raw_html.encode("utf-8"), parser=parser)
    except (etree.ParserError, ValueError) as exc:
        raise MalformedDocument(f"The station page is not parseable HTML: {exc}") from exc


def _read_stations(document: lxml.html.HtmlElement) -> List[StationEntry]:
    container = _first_of_class(document, STATION_LIST_CLASS)
    if container is None:
        raise StructureNotFound("the station list")

    stations: List[StationEntry] = []
    for item in container.find_class(STATION_ITEM_CLASS):
        entry = StationEntry(
            station_id=(item.get("data-station-id") or "").strip() or None,
            name=_text(_first_of_class(item, "name")),
            address=_text(_first_of_class(item, "addr")),
            longitude=_read_coordinate(item, "data-lng"),
            latitude=_read_coordinate(item, "data-lat"),
            active=bool(_classes(item) & ACTIVE_CLASSES),
        )
        stations.append(entry)

    if not stations:
        raise StructureNotFound("the station list", "The list has no stations.")
    return stations


def select_station(
    stations: Sequence[StationEntry],
    longitude: Optional[float] = None,
    latitude: Optional[float] = None,
) -> StationEntry:
    """Pick the station whose data the page reports.

    The page marks its selection as active. When the marker is ambiguous or
    missing, the candidate nearest to the searched coordinate wins.
    """
    marked = [station for station in stations if station.active]
    if len(marked) == 1:
        return marked[0]

    candidates = marked or list(stations)
    located = [
        station
        for station in candidates
        if station.longitude is not None and station.latitude is not None
    ]
    if longitude is None or latitude is None or not located:
        if marked:
            return marked[0]
        raise StructureNotFound(
            "the selected station", "No station is marked and none can be located by distance."
        )

    return min(
        located,
        key=lambda station: _distance_km(longitude, latitude, station.longitude, station.latitude),
    )


def _find_panel(document: lxml.html.HtmlElement, station: StationEntry) -> lxml.html.HtmlElement:
    panels = document.find_class(DATA_PANEL_CLASS)
    for panel in panels:
        panel_id = (panel.get("data-station-id") or "").strip()
        if station.station_id is not None and panel_id == station.station_id:
            return panel
    if len(panels) == 1 and not (panels[0].get("data-station-id") or "").strip():
        return panels[0]
    raise StructureNotFound("the selected station's data panel", f"station_id={station.station_id!r}")


def _read_table(panel: lxml.html.HtmlElement) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    tables = panel.xpath(MEASUREMENT_TABLE_XPATH)
    if not tables:
        raise StructureNotFound("the measurement table")
    table = tables[0]

    headers = tuple(_text(cell) or "" for cell in table.xpath(".//tr/th"))
    for row in table.xpath(".//tr[td]"):
        cells = tuple(_text(cell) or "" for cell in row.xpath("./td"))
        return headers, cells
    raise StructureNotFound("the measurement table", "The table has no measurement row.")


def _read_index(panel: lxml.html.HtmlElement) -> Optional[str]:
    block = _first_of_class(panel, INDEX_CLASS)
    if block is None:
        return None
    value = _first_of_class(block, INDEX_VALUE_CLASS)
    return _text(block if value is None else value) or ""


def parse(
    raw_html: str,
    longitude: Optional[float] = None,
    latitude: Optional[float] = None,
) -> StationPage:
    """Parse the page body into the raw fields of the selected station."""
    document = _load_document(raw_html)
    stations = _read_stations(document)
    station = select_station(stations, longitude, latitude)
    logger.debug(
        "Selected station",
        extra={
            "station_id": station.station_id,
            "station": station.address or station.name,
        },
    )

    panel = _find_panel(document, station)
    timestamp_text = _text(_first_of_class(panel, TIME_CLASS))
    if timestamp_text is None:
        raise StructureNotFound("the observation time")
    headers, cells = _read_table(panel)

    return StationPage(
        station=station,
        heading=_text(_first_of_class(panel, HEADING_CLASS)),
        timestamp_text=timestamp_text,
        headers=headers,
        cells=cells,
        index_text=_read_index(panel),
    )
