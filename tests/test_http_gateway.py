"""Tests for HttpGateway status handling and session lifetime."""

import pytest
import requests

from tests.conftest import CannedResponse, CannedTransport
from traveltime_client.adapters.http_gateway import HttpGateway, bearer_headers
from traveltime_client.domain.exceptions import RequestError


def test_success_returns_raw_bytes(session, transport: CannedTransport) -> None:
    transport.queue.append(CannedResponse(status=200, body=b"\x00\x01\x02"))
    gateway = HttpGateway(session=session)

    assert gateway.request_bytes("GET", "https://api.test/thing") == b"\x00\x01\x02"


def test_redirect_range_statuses_are_accepted(session, transport) -> None:
    transport.queue.append(CannedResponse(status=304, body=b"", reason="Not Modified"))
    gateway = HttpGateway(session=session)

    assert gateway.request("GET", "https://api.test/thing").status_code == 304


def test_404_raises_request_error_with_details(session, transport) -> None:
    transport.queue.append(
        CannedResponse(status=404, body=b"no such job", reason="Not Found")
    )
    gateway = HttpGateway(session=session)

    with pytest.raises(RequestError) as excinfo:
        gateway.request_bytes("GET", "https://api.test/jobs/missing")

    assert excinfo.value.status_code == 404
    assert excinfo.value.reason == "Not Found"
    assert excinfo.value.body == "no such job"
    assert "404" in str(excinfo.value)


@pytest.mark.parametrize("status", [100, 199, 400, 401, 500, 503])
def test_statuses_outside_success_range_raise(session, transport, status: int) -> None:
    transport.queue.append(CannedResponse(status=status, reason="Nope"))
    gateway = HttpGateway(session=session)

    with pytest.raises(RequestError) as excinfo:
        gateway.request("POST", "https://api.test/jobs", data=b"x")

    assert excinfo.value.status_code == status


def test_body_snippet_is_truncated(session, transport) -> None:
    transport.queue.append(CannedResponse(status=500, body=b"e" * 5000))
    gateway = HttpGateway(session=session)

    with pytest.raises(RequestError) as excinfo:
        gateway.request("GET", "https://api.test/boom")

    assert excinfo.value.body is not None
    assert len(excinfo.value.body) == 500


def test_post_sends_body_and_headers(session, transport) -> None:
    transport.queue.append(CannedResponse(status=201, body=b"ok"))
    gateway = HttpGateway(session=session)

    gateway.request(
        "POST",
        "https://api.test/jobs",
        headers=bearer_headers("tok", "api.test", "application/octet-stream"),
        data=b"\x01\x02",
    )

    sent = transport.requests[0]
    assert sent.method == "POST"
    assert sent.body == b"\x01\x02"
    assert sent.headers["authorization"] == "Bearer tok"
    assert sent.headers["authority"] == "api.test"
    assert sent.headers["content-type"] == "application/octet-stream"


def test_transport_failure_becomes_request_error(mocker) -> None:
    session = requests.Session()
    mocker.patch.object(
        session, "request", side_effect=requests.ConnectionError("refused")
    )
    gateway = HttpGateway(session=session)

    with pytest.raises(RequestError) as excinfo:
        gateway.request("GET", "https://api.test/")

    assert excinfo.value.status_code is None


def test_unsupported_method_is_rejected(session) -> None:
    gateway = HttpGateway(session=session)

    with pytest.raises(ValueError):
        gateway.request("DELETE", "https://api.test/")


def test_context_manager_closes_session(mocker) -> None:
    session = mocker.Mock(spec=requests.Session)

    with HttpGateway(session=session):
        pass

    session.close.assert_called_once()
