"""Asynchronous client for the authentication backend.

This module provides :class:`AuthAPIClient`, which exchanges provider
credentials for backend tokens. It wraps :class:`httpx.AsyncClient` and
speaks JSON over HTTPS:

- ``POST auth/apple/verify`` -- verify an Apple identity token and
  receive a :class:`~arcauth.models.TokenResponse`.
- ``POST auth/refresh`` -- trade a refresh token for a new token pair.
- ``POST auth/signout`` -- invalidate an access token server-side.

Every failure is reported through the
:class:`~arcauth.exceptions.AuthenticationError` taxonomy: transport
problems raise :class:`~arcauth.exceptions.NetworkError` and unexpected
status codes raise :class:`~arcauth.exceptions.ServerError` carrying the
raw body text.

The manager does not call the backend yet; the client is available for
applications that configure ``server_base_url``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from arcauth.exceptions import NetworkError, ServerError, TokenExpiredError
from arcauth.models import (
    AppleAuthPayload,
    AuthenticationConfiguration,
    RefreshTokenRequest,
    TokenResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class AuthAPIClient:
    """Asynchronous client for the authentication backend.

    Must be used as an async context manager, or closed with
    :meth:`aclose`, so the underlying connection pool is released.

    Args:
        base_url: Root URL of the backend (e.g. ``https://api.example.com/``).
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, mainly for tests
            (:class:`httpx.MockTransport`).

    Example::

        async with AuthAPIClient("https://api.example.com") as api:
            tokens = await api.verify_apple_credential(payload)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AuthAPIClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Endpoints
    # ------------------------------------------------------------------ #

    async def verify_apple_credential(self, payload: AppleAuthPayload) -> TokenResponse:
        """Verify an Apple credential with the backend.

        Args:
            payload: Identity token, authorization code and user details.

        Returns:
            The backend's :class:`~arcauth.models.TokenResponse`.

        Raises:
            NetworkError: On connection or timeout errors.
            ServerError: On any status other than 200, or an undecodable body.
        """
        response = await self._post(
            "auth/apple/verify",
            json_body=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        if response.status_code != 200:
            raise ServerError(response.status_code, response.text)
        return self._decode_tokens(response)

    async def refresh_token(self, request: RefreshTokenRequest) -> TokenResponse:
        """Exchange a refresh token for a new token pair.

        Raises:
            TokenExpiredError: When the backend answers 401.
            NetworkError: On connection or timeout errors.
            ServerError: On any other non-200 status, or an undecodable body.
        """
        response = await self._post(
            "auth/refresh",
            json_body=request.model_dump(mode="json", by_alias=True),
        )
        if response.status_code == 401:
            raise TokenExpiredError()
        if response.status_code != 200:
            raise ServerError(response.status_code, response.text)
        return self._decode_tokens(response)

    async def sign_out(self, access_token: str) -> None:
        """Invalidate *access_token* on the backend.

        Raises:
            NetworkError: On connection or timeout errors.
            ServerError: On any status other than 200 or 204.
        """
        response = await self._post(
            "auth/signout",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if response.status_code not in (200, 204):
            raise ServerError(response.status_code)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _post(
        self,
        path: str,
        json_body: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        logger.debug("POST %s", path)
        try:
            if json_body is None:
                return await self._client.post(path, headers=headers)
            return await self._client.post(path, json=json_body, headers=headers)
        except httpx.TransportError as exc:
            raise NetworkError(exc) from exc

    @staticmethod
    def _decode_tokens(response: httpx.Response) -> TokenResponse:
        try:
            return TokenResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise ServerError(response.status_code, "invalid response body") from exc


def create_api_client(
    configuration: AuthenticationConfiguration,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[AuthAPIClient]:
    """Return a client for ``configuration.server_base_url``, or ``None`` if unset."""
    if not configuration.server_base_url:
        return None
    return AuthAPIClient(configuration.server_base_url, transport=transport)
