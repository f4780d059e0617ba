from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from mock_site import MOCK_BASE_URL
from settings import get_settings

FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture()
def station_html() -> str:
    return (FIXTURES / "station_page.html").read_text(encoding="utf-8")


@pytest.fixture()
def mock_base_url(monkeypatch) -> Iterator[str]:
    monkeypatch.setenv("AIRKOREA_URL", MOCK_BASE_URL)
    get_settings.cache_clear()
    try:
        yield MOCK_BASE_URL
    finally:
        get_settings.cache_clear()
