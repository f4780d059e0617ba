"""Search the Airkorea mobile site for the station nearest to a coordinate."""

from __future__ import annotations

import logging
import time
from datetime import datetime, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

import httpx

from models.status import AirStatus
from services.assembler import assemble
from services.errors import TransportError
from services.extractor import normalize
from services.parser import parse
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

SEARCH_PATH = "/main"


def build_search_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}{SEARCH_PATH}"


def parse_status(
    raw_html: str,
    longitude: float,
    latitude: float,
    *,
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
) -> AirStatus:
    """Run the synchronous parse, normalize and assemble chain over a page body."""
    page = parse(raw_html, longitude, latitude)
    snapshot = normalize(page, tz=tz, now=now)
    return assemble(
        snapshot.address,
        snapshot.name,
        snapshot.observed_at,
        snapshot.measurements,
        snapshot.index_value,
    )


async def _fetch_page(client: httpx.AsyncClient, url: str, longitude: float, latitude: float) -> str:
    params = {"lng": str(longitude), "lat": str(latitude)}
    try:
        response = await client.get(url, params=params)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise TransportError(
            f"Station page request failed with status {exc.response.status_code}.",
            url=str(exc.request.url),
            status_code=exc.response.status_code,
        ) from exc
    except httpx.HTTPError as exc:
        raise TransportError(f"Station page request failed: {exc}", url=url) from exc

    logger.debug(
        "Received station page",
        extra={"url": str(response.url), "status_code": response.status_code},
    )
    return response.text


async def search(
    longitude: float,
    latitude: float,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> AirStatus:
    """Fetch and parse the report for the station nearest to ``(longitude, latitude)``.

    The network request is the only suspension point. A caller-supplied
    ``client`` is left open; otherwise a client is created for this call and
    closed when it finishes or is cancelled.

    Raises :class:`~services.errors.TransportError`,
    :class:`~services.errors.ParseError` or :class:`~services.errors.ExtractError`;
    no partial report is ever returned.
    """
    settings = settings or get_settings()
    url = build_search_url(settings.base_url)
    start_time = time.perf_counter()
    logger.info(
        "Searching station page",
        extra={"longitude": longitude, "latitude": latitude, "url": url},
    )

    if client is None:
        async with httpx.AsyncClient(timeout=settings.request_timeout) as owned_client:
            body = await _fetch_page(owned_client, url, longitude, latitude)
    else:
        body = await _fetch_page(client, url, longitude, latitude)

    status = parse_status(
        body,
        longitude,
        latitude,
        tz=ZoneInfo(settings.station_timezone),
        now=now,
    )
    logger.info(
        "Station report assembled",
        extra={
            "station": status.station_address,
            "elapsed_ms": int((time.perf_counter() - start_time) * 1000),
        },
    )
    return status
