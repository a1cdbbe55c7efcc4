"""Blocking HTTP gateway built on a scoped requests session."""

from types import TracebackType
from typing import Any, Final

import requests

from traveltime_client.config.logging_config import get_logger
from traveltime_client.domain.exceptions import RequestError

logger = get_logger(__name__)

SUPPORTED_METHODS: Final[frozenset[str]] = frozenset({"GET", "POST"})
BODY_SNIPPET_CHARS: Final[int] = 500
DEFAULT_TIMEOUT_SECONDS: Final[float] = 60.0


def bearer_headers(token: str, authority: str, content_type: str) -> dict[str, str]:
    """Standard header set for authenticated API calls."""
    return {
        "authority": authority,
        "authorization": f"Bearer {token}",
        "content-type": content_type,
    }


class HttpGateway:
    """Issues GET/POST requests and rejects statuses outside [200, 400).

    Use as a context manager so the underlying session is always closed:

        >>> with HttpGateway() as gateway:
        ...     gateway.request_text("GET", "https://example.test/")
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize gateway.

        Args:
            timeout_seconds: Per-request connect/read timeout
            session: Optional pre-configured session (owned by the gateway)
        """
        if timeout_seconds <= 0:
            raise ValueError("HTTP timeout must be positive")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    def __enter__(self) -> "HttpGateway":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        data: bytes | None = None,
    ) -> requests.Response:
        """Send a request and return the successful response.

        Args:
            method: "GET" or "POST"
            url: Absolute endpoint URL
            headers: Extra request headers
            params: Query string parameters
            data: Request body (POST only)

        Returns:
            Response with a status in [200, 400)

        Raises:
            ValueError: For unsupported methods
            RequestError: On transport failure or a rejected status
        """
        verb = method.upper()
        if verb not in SUPPORTED_METHODS:
            raise ValueError(f"HTTP method {method} is not supported")

        try:
            response = self._session.request(
                verb,
                url,
                headers=headers,
                params=params,
                data=data if verb == "POST" and data else None,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error("http_request_failed", method=verb, url=url, error=str(e))
            raise RequestError(f"{verb} {url} failed: {e}") from e

        status_code = response.status_code
        if status_code < 200 or status_code >= 400:
            body = response.text[:BODY_SNIPPET_CHARS]
            logger.error(
                "http_status_rejected",
                method=verb,
                url=url,
                status_code=status_code,
                reason=response.reason,
            )
            raise RequestError(
                f"Status code is {status_code}\n"
                f"Status message is {response.reason}\n"
                f"response string: {body}",
                status_code=status_code,
                reason=response.reason,
                body=body,
            )

        logger.debug(
            "http_request_completed",
            method=verb,
            url=url,
            status_code=status_code,
            size_bytes=len(response.content),
        )
        return response

    def request_bytes(self, method: str, url: str, **kwargs: Any) -> bytes:
        return self.request(method, url, **kwargs).content

    def request_text(self, method: str, url: str, **kwargs: Any) -> str:
        return self.request(method, url, **kwargs).text
