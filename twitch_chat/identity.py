"""Token validation and login-to-numeric-id resolution against Twitch APIs."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import Any

import httpx

from .exceptions import AuthInvalidError, LookupFailedError

LOGGER = logging.getLogger(__name__)

VALIDATE_URL = "https://id.twitch.tv/oauth2/validate"
HELIX_USERS_URL = "https://api.twitch.tv/helix/users"

BODY_SNIPPET_LIMIT = 500

StatusReporter = Callable[[str], None]


@dataclass(frozen=True)
class Identity:
    """Owner of a validated access token."""

    user_id: str
    login: str
    client_id: str


def strip_oauth_prefix(token: str) -> str:
    return token[len("oauth:") :] if token.startswith("oauth:") else token


def body_snippet(response: httpx.Response) -> str:
    """Return at most 500 characters of a response body for status lines."""
    text = response.text.strip()
    if len(text) > BODY_SNIPPET_LIMIT:
        text = text[:BODY_SNIPPET_LIMIT] + "..."
    return text or "<empty body>"


def _status_label(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".strip()


class IdentityResolver:
    """Resolve who owns a token and what numeric id a channel login has.

    Every attempt, successful or not, is narrated through ``report`` so the
    UI can show progress without blocking on the result.
    """

    def __init__(
        self,
        report: StatusReporter,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        validate_url: str = VALIDATE_URL,
        users_url: str = HELIX_USERS_URL,
    ) -> None:
        self._report = report
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self.validate_url = validate_url
        self.users_url = users_url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def validate_and_identify(self, access_token: str) -> Identity:
        """Validate ``access_token`` and return its owner's identity."""
        token = strip_oauth_prefix(access_token.strip())
        if not token:
            self._report("OAuth validate failed: missing access token")
            raise AuthInvalidError("access token is required to validate")

        try:
            response = await self._client.get(
                self.validate_url, headers={"Authorization": f"OAuth {token}"}
            )
        except httpx.HTTPError as exc:
            self._report(f"OAuth validate failed: request error - {exc}")
            raise AuthInvalidError(f"validate request failed: {exc}") from exc

        if response.status_code != 200:
            self._report(
                f"OAuth validate failed: status={_status_label(response)} "
                f"body={body_snippet(response)}"
            )
            raise AuthInvalidError(
                f"failed to validate token: {_status_label(response)}"
            )

        payload = self._decode(response, "OAuth validate failed", AuthInvalidError)
        user_id = str(payload.get("user_id") or "").strip()
        if not user_id:
            self._report("OAuth validate failed: missing user ID")
            raise AuthInvalidError("token validation did not return user ID")

        self._report(f"OAuth validate ok: id={user_id}")
        LOGGER.info(
            "identity.validate.ok",
            extra={"event": "identity.validate.ok", "user_id": user_id},
        )
        return Identity(
            user_id=user_id,
            login=str(payload.get("login") or "").strip(),
            client_id=str(payload.get("client_id") or "").strip(),
        )

    async def resolve_channel_id(
        self, login: str, client_id: str, access_token: str
    ) -> str:
        """Return the numeric id for ``login`` via the Helix users endpoint."""
        login = login.strip().lstrip("#")
        if not login:
            self._report("Helix lookup failed: empty login")
            raise LookupFailedError("login is required to fetch user ID")
        if not client_id:
            self._report("Helix lookup failed: missing client ID")
            raise LookupFailedError("client ID is required to fetch user ID")
        token = strip_oauth_prefix(access_token.strip())
        if not token:
            self._report("Helix lookup failed: missing access token")
            raise LookupFailedError("access token is required to fetch user ID")

        self._report(f"Helix lookup: login={login}")
        try:
            response = await self._client.get(
                self.users_url,
                params={"login": login},
                headers={"Client-ID": client_id, "Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            self._report(f"Helix lookup failed: request error - {exc}")
            raise LookupFailedError(f"lookup request failed: {exc}") from exc

        if response.status_code != 200:
            self._report(
                f"Helix lookup failed: status={_status_label(response)} "
                f"body={body_snippet(response)}"
            )
            raise LookupFailedError(
                f"failed to fetch user ID: {_status_label(response)}"
            )

        payload = self._decode(response, "Helix lookup failed", LookupFailedError)
        data = payload.get("data")
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            self._report("Helix lookup failed: no user found")
            raise LookupFailedError("no user found")

        channel_id = str(data[0].get("id") or "").strip()
        if not channel_id:
            self._report("Helix lookup failed: no user found")
            raise LookupFailedError("no user found")

        self._report(f"Helix lookup ok: id={channel_id}")
        return channel_id

    def _decode(
        self,
        response: httpx.Response,
        label: str,
        error_cls: type[AuthInvalidError] | type[LookupFailedError],
    ) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            self._report(f"{label}: decode error - {exc}")
            raise error_cls(f"failed to decode response: {exc}") from exc
        if not isinstance(payload, dict):
            self._report(f"{label}: decode error - unexpected payload")
            raise error_cls("unexpected response payload")
        return payload
