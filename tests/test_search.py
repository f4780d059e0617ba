from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from mock_site import MockSite, create_mock_site
from models.records import Grade, PollutantKind
from models.status import AirStatus
from services.errors import MalformedDocument, StructureNotFound, TransportError
from services.search import build_search_url, parse_status, search
from settings import get_settings

LNG = 127.28698636603603
LAT = 36.61095403123917
KST = timezone(timedelta(hours=9))


def _search_site(site: MockSite, longitude: float = LNG, latitude: float = LAT) -> AirStatus:
    async def run() -> AirStatus:
        transport = httpx.ASGITransport(app=site.app)
        async with httpx.AsyncClient(transport=transport) as client:
            return await search(longitude, latitude, client=client)

    return asyncio.run(run())


def _search_with_handler(handler) -> AirStatus:
    async def run() -> AirStatus:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await search(LNG, LAT, client=client)

    return asyncio.run(run())


def test_search_returns_report_for_selected_station(mock_base_url: str, station_html: str) -> None:
    site = create_mock_site(station_html)

    status = _search_site(site)

    assert status.station_address == "세종 세종시 신흥동측정소"
    assert status.station_name == "신흥동"
    assert status.observed_at == datetime(2019, 4, 13, 18, tzinfo=KST)
    assert status.observed_at.utcoffset() == timedelta(hours=9)
    assert [(m.pollutant, m.value, m.grade) for m in status.measurements] == [
        (PollutantKind.pm10, 81.0, Grade.bad),
        (PollutantKind.pm25, 35.0, Grade.normal),
        (PollutantKind.o3, 0.031, Grade.normal),
        (PollutantKind.no2, None, None),
        (PollutantKind.co, 0.4, Grade.good),
        (PollutantKind.so2, 0.004, Grade.good),
    ]
    assert status.cai is not None
    assert (status.cai.value, status.cai.grade) == (74.0, Grade.normal)


def test_search_requests_the_overridden_base_url(mock_base_url: str, station_html: str) -> None:
    site = create_mock_site(station_html)

    _search_site(site)

    assert len(site.requested_urls) == 1
    requested = httpx.URL(site.requested_urls[0])
    assert requested.host == "airkorea.test"
    assert requested.path == "/main"
    assert requested.query.decode() == f"lng={LNG}&lat={LAT}"


def test_override_only_lasts_while_environment_is_set(monkeypatch) -> None:
    monkeypatch.setenv("AIRKOREA_URL", "http://localhost:12121/")
    get_settings.cache_clear()
    try:
        assert build_search_url(get_settings().base_url) == "http://localhost:12121/main"
    finally:
        monkeypatch.delenv("AIRKOREA_URL")
        get_settings.cache_clear()

    assert build_search_url(get_settings().base_url) == "http://m.airkorea.or.kr/main"


def test_placeholder_cell_only_affects_its_pollutant(mock_base_url: str, station_html: str) -> None:
    site = create_mock_site(station_html.replace("<td>0.4ppm</td>", "<td>점검중</td>"))

    status = _search_site(site)

    co = status.measurement_for(PollutantKind.co)
    assert co is not None
    assert co.value is None and co.grade is None
    pm10 = status.measurement_for(PollutantKind.pm10)
    assert pm10 is not None and pm10.grade is Grade.bad
    assert len(status.measurements) == 6


def test_missing_measurement_table_produces_no_report(mock_base_url: str, station_html: str) -> None:
    start = station_html.index('<table class="measurement summary">')
    end = station_html.index("</table>", start) + len("</table>")
    site = create_mock_site(station_html[:start] + station_html[end:])

    with pytest.raises(StructureNotFound) as excinfo:
        _search_site(site)

    assert excinfo.value.anchor == "the measurement table"
    assert len(site.requested_urls) == 1


def test_empty_body_is_malformed(mock_base_url: str) -> None:
    site = create_mock_site("")

    with pytest.raises(MalformedDocument):
        _search_site(site)


def test_error_status_is_a_transport_error(mock_base_url: str, station_html: str) -> None:
    site = create_mock_site(station_html, status_code=503)

    with pytest.raises(TransportError) as excinfo:
        _search_site(site)

    assert excinfo.value.status_code == 503
    assert excinfo.value.url.startswith("http://airkorea.test/main")


def test_connection_failure_is_a_transport_error(mock_base_url: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as excinfo:
        _search_with_handler(handler)

    assert excinfo.value.status_code is None
    assert excinfo.value.url == "http://airkorea.test/main"
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_parsing_same_body_twice_is_stable(station_html: str) -> None:
    now = datetime(2019, 4, 13, 18, 5, tzinfo=KST)

    first = parse_status(station_html, LNG, LAT, tz=KST, now=now)
    second = parse_status(station_html, LNG, LAT, tz=KST, now=now)

    assert first == second
    assert first.model_dump() == second.model_dump()


def test_concurrent_searches_are_independent(mock_base_url: str, station_html: str) -> None:
    site = create_mock_site(station_html)

    async def run() -> list[AirStatus]:
        transport = httpx.ASGITransport(app=site.app)
        async with httpx.AsyncClient(transport=transport) as client:
            return await asyncio.gather(
                search(LNG, LAT, client=client),
                search(127.2570, 36.5040, client=client),
            )

    first, second = asyncio.run(run())

    assert first == second
    assert len(site.requested_urls) == 2


def test_search_logs_request_and_report(mock_base_url: str, station_html: str, caplog) -> None:
    site = create_mock_site(station_html)

    with caplog.at_level(logging.INFO, logger="services.search"):
        _search_site(site)

    records = [record for record in caplog.records if record.name == "services.search"]
    messages = [record.getMessage() for record in records]
    assert "Searching station page" in messages
    assert "Station report assembled" in messages
    assert any(getattr(record, "url", None) == "http://airkorea.test/main" for record in records)
    assert any(getattr(record, "station", None) == "세종 세종시 신흥동측정소" for record in records)


def test_search_opens_and_closes_its_own_client(
    mock_base_url: str, station_html: str, monkeypatch
) -> None:
    monkeypatch.setenv("AIRKOREA_TIMEOUT", "2.5")
    get_settings.cache_clear()
    client_class = httpx.AsyncClient
    created: list[httpx.AsyncClient] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=station_html)

    def client_factory(**kwargs) -> httpx.AsyncClient:
        client = client_class(transport=httpx.MockTransport(handler), **kwargs)
        created.append(client)
        return client

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)

    status = asyncio.run(search(LNG, LAT))

    assert status.station_name == "신흥동"
    assert len(created) == 1
    assert created[0].timeout == httpx.Timeout(2.5)
    assert created[0].is_closed
