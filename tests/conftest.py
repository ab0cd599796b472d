# tests/conftest.py
from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from geoip_api.config import overlay_options
from geoip_api.providers import DbInterface
from geoip_api.server import GeoServer

RECORDS = {
    "8.8.8.8": {"country": "US", "subdivision": "CA", "city": "Mountain View"},
    "81.2.69.142": {"country": "GB"},
    "2001:4860:4860::8888": {"country": "US"},
}


class FakeDb(DbInterface):
    """In-memory database keyed by IP with flat country/subdivision fields"""

    def __init__(self, records: Optional[Dict[str, Dict[str, Any]]] = None):
        super().__init__("fake")
        self.records = RECORDS if records is None else records
        self.calls = []
        self.closed = False

    async def get(self, ip: str) -> Optional[Dict[str, Any]]:
        self.calls.append(ip)
        record = self.records.get(ip)
        return dict(record) if record else None

    def get_string_value(self, record: Optional[Dict[str, Any]], field: str) -> Optional[str]:
        if not record:
            return None
        return record.get(field)

    def close(self) -> None:
        self.closed = True


def with_client_ip(app, client_ip: str):
    """Wrap an ASGI app so every HTTP request comes from client_ip"""
    async def asgi(scope, receive, send):
        if scope["type"] == "http":
            scope = dict(scope, client=(client_ip, 50000))
        await app(scope, receive, send)
    return asgi


@pytest.fixture
def fake_db():
    return FakeDb()


@pytest.fixture
def make_server(fake_db):
    """Build a GeoServer from a raw JSON-style config, backed by fake_db"""
    def _make(config: Optional[Dict[str, Any]] = None, db: Optional[DbInterface] = None) -> GeoServer:
        return GeoServer(overlay_options(config or {}), db_interface=db or fake_db)
    return _make


@pytest.fixture
def make_client(make_server):
    """TestClient whose requests appear to come from client_ip"""
    def _make(config: Optional[Dict[str, Any]] = None, client_ip: str = "8.8.8.8",
              db: Optional[DbInterface] = None) -> TestClient:
        server = make_server(config, db)
        return TestClient(with_client_ip(server.app, client_ip))
    return _make
