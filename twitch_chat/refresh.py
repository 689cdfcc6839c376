"""Exchange a refresh token for a new access token."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging

import httpx

from .exceptions import RefreshError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access: str
    refresh: str


def normalize_access_token(token: str) -> str:
    """Return ``token`` with the ``oauth:`` prefix IRC expects."""
    token = token.strip()
    if token.startswith("oauth:"):
        return token
    return "oauth:" + token


def refresh_url(endpoint: str, refresh_token: str) -> str:
    return endpoint.rstrip("/") + "/" + refresh_token


class TokenRefresher:
    """One-shot client for ``GET {endpoint}/{refresh_token}``.

    The endpoint answers ``{success, token, refresh, message}``. There is no
    retry or backoff here; a new auth failure notice must trigger the next
    attempt.
    """

    def __init__(
        self,
        report: Callable[[str], None],
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        self._report = report
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def refresh(self, endpoint: str, refresh_token: str) -> TokenPair:
        if not refresh_token:
            self._report("Refresh failed: no refresh token available")
            raise RefreshError("no refresh token available")

        try:
            response = await self._client.get(refresh_url(endpoint, refresh_token))
        except httpx.HTTPError as exc:
            self._report(f"Refresh failed: API connection error - {exc}")
            raise RefreshError(f"api connection failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            self._report(f"Refresh failed: could not decode response - {exc}")
            raise RefreshError(f"failed to decode response: {exc}") from exc

        if not isinstance(payload, dict) or not payload.get("success"):
            message = payload.get("message", "") if isinstance(payload, dict) else ""
            self._report(f"Refresh failed: {message}")
            raise RefreshError(f"refresh failed: {message}")

        token = str(payload.get("token") or "").strip()
        new_refresh = str(payload.get("refresh") or "").strip()
        if not token:
            self._report("Refresh failed: response did not include a token")
            raise RefreshError("refresh response did not include a token")

        LOGGER.info("refresh.ok", extra={"event": "refresh.ok"})
        return TokenPair(access=token, refresh=new_refresh or refresh_token)
