"""Password-grant token retrieval from the identity provider."""

import json
from typing import Any

from traveltime_client.adapters.http_gateway import HttpGateway
from traveltime_client.config.logging_config import get_logger
from traveltime_client.domain.exceptions import AuthError, RequestError

logger = get_logger(__name__)


class AuthClient:
    """Exchanges client id and user credentials for a bearer token."""

    def __init__(self, gateway: HttpGateway, token_url: str, policy: str) -> None:
        self._gateway = gateway
        self._token_url = token_url
        self._policy = policy

    def get_token(self, client_id: str, username: str, password: str) -> str:
        """Request an access token with the resource-owner password grant.

        Args:
            client_id: Identity provider client id
            username: Account login
            password: Account password (sent URL-encoded, never logged)

        Returns:
            Access token for the Authorization header

        Raises:
            AuthError: If the request fails or no access_token is returned
        """
        params: dict[str, Any] = {
            "p": self._policy,
            "grant_type": "password",
            "response_type": "token",
            "client_id": client_id,
            "username": username,
            "password": password,
            "scope": f"openid {client_id}",
        }

        try:
            body = self._gateway.request_text("POST", self._token_url, params=params)
        except RequestError as e:
            logger.error(
                "token_request_failed",
                username=username,
                status_code=e.status_code,
            )
            raise AuthError(f"Could not get access token: {e}") from e

        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise AuthError("Token response is not valid JSON") from e

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise AuthError("Could not get access token: access_token missing")

        logger.info("token_acquired", username=username)
        return str(token)
