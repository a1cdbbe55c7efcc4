"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from traveltime_client.config.settings import Settings
from traveltime_client.domain.models import ParamRow

SCHEMATIC_GUID = "6c1e8f2a-93b4-4d0e-8a57-2f9c1b7d4e60"
API_BASE = "https://api.test/v1/api/ulv2"
TOKEN_URL = "https://idp.test/oauth2/v2.0/token"


@dataclass
class CannedResponse:
    status: int = 200
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    reason: str = "OK"


class CannedTransport(BaseAdapter):
    """Transport adapter that replays queued responses and records requests."""

    def __init__(self, responses: Iterable[CannedResponse] = ()) -> None:
        super().__init__()
        self.queue: list[CannedResponse] = list(responses)
        self.requests: list[requests.PreparedRequest] = []

    def send(  # type: ignore[override]
        self, request: requests.PreparedRequest, **kwargs: Any
    ) -> requests.Response:
        self.requests.append(request)
        if not self.queue:
            raise AssertionError(f"No canned response for {request.method} {request.url}")
        canned = self.queue.pop(0)

        response = requests.Response()
        response.status_code = canned.status
        response.reason = canned.reason
        response._content = canned.body
        response.headers = CaseInsensitiveDict(canned.headers)
        response.url = request.url or ""
        response.request = request
        response.encoding = "utf-8"
        return response

    def close(self) -> None:
        pass

    def query(self, index: int) -> dict[str, list[str]]:
        return parse_qs(urlsplit(self.requests[index].url or "").query)

    def path(self, index: int) -> str:
        return urlsplit(self.requests[index].url or "").path


def json_response(payload: Any, status: int = 200) -> CannedResponse:
    return CannedResponse(
        status=status,
        body=json.dumps(payload).encode("utf-8"),
        headers={"content-type": "application/json"},
    )


@pytest.fixture
def transport() -> CannedTransport:
    return CannedTransport()


@pytest.fixture
def session(transport: CannedTransport) -> requests.Session:
    http_session = requests.Session()
    http_session.mount("https://", transport)
    return http_session


@pytest.fixture
def settings() -> Settings:
    return Settings(
        client_id="client-123",
        username="analyst@example.com",
        password="p@ss word&more",
        schematic=SCHEMATIC_GUID,
        realm="test-realm",
        api_base_url=API_BASE,
        api_authority="api.test",
        token_url=TOKEN_URL,
        token_policy="B2C_1_ropc",
        poll_initial_interval_seconds=0.001,
        poll_max_interval_seconds=0.001,
        poll_jitter_seconds=0.0,
        poll_timeout_seconds=None,
    )


@pytest.fixture
def sample_rows() -> list[ParamRow]:
    return [
        ParamRow(
            realm="test-realm",
            node_id="node-a",
            start_time=1577836800000,
            end_time=1577923200000,
            interval=15,
        ),
        ParamRow(
            realm="test-realm",
            node_id="node-b",
            start_time=1577923200000,
            end_time=1578009600000,
            interval=60,
        ),
    ]


@pytest.fixture
def write_json(tmp_path: Path):
    def _write(name: str, payload: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
