"""Tests for token validation and Helix channel id lookup."""

from __future__ import annotations

import unittest

import httpx

from twitch_chat.exceptions import AuthInvalidError, LookupFailedError
from twitch_chat.identity import IdentityResolver, body_snippet, strip_oauth_prefix


class IdentityResolverTests(unittest.IsolatedAsyncioTestCase):
    """Validate request shape, status narration and error mapping."""

    async def asyncSetUp(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, httpx.Response] = {}
        self.reports: list[str] = []
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(self._handle))
        self.resolver = IdentityResolver(self.reports.append, client=self.client)

    async def asyncTearDown(self) -> None:
        await self.resolver.aclose()
        await self.client.aclose()

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.get(request.url.host, httpx.Response(404))

    async def test_validate_strips_prefix_and_returns_identity(self) -> None:
        self.responses["id.twitch.tv"] = httpx.Response(
            200, json={"client_id": "cid", "login": "me", "user_id": "42"}
        )

        identity = await self.resolver.validate_and_identify("oauth:abc")

        self.assertEqual(identity.user_id, "42")
        self.assertEqual(identity.login, "me")
        self.assertEqual(identity.client_id, "cid")
        self.assertEqual(self.requests[0].headers["Authorization"], "OAuth abc")
        self.assertEqual(self.reports, ["OAuth validate ok: id=42"])

    async def test_validate_without_token_makes_no_request(self) -> None:
        with self.assertRaises(AuthInvalidError):
            await self.resolver.validate_and_identify("oauth:")
        self.assertEqual(self.requests, [])
        self.assertEqual(self.reports, ["OAuth validate failed: missing access token"])

    async def test_validate_rejection_reports_status_and_body(self) -> None:
        self.responses["id.twitch.tv"] = httpx.Response(
            401, json={"status": 401, "message": "invalid access token"}
        )
        with self.assertRaises(AuthInvalidError):
            await self.resolver.validate_and_identify("abc")
        self.assertTrue(self.reports[0].startswith("OAuth validate failed: status=401"))
        self.assertIn("invalid access token", self.reports[0])

    async def test_validate_without_user_id_fails(self) -> None:
        self.responses["id.twitch.tv"] = httpx.Response(200, json={"client_id": "cid"})
        with self.assertRaises(AuthInvalidError):
            await self.resolver.validate_and_identify("abc")
        self.assertEqual(self.reports, ["OAuth validate failed: missing user ID"])

    async def test_validate_transport_error(self) -> None:
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(boom)) as client:
            resolver = IdentityResolver(self.reports.append, client=client)
            with self.assertRaises(AuthInvalidError):
                await resolver.validate_and_identify("abc")
        self.assertTrue(self.reports[0].startswith("OAuth validate failed: request error"))

    async def test_resolve_channel_id_sends_helix_headers(self) -> None:
        self.responses["api.twitch.tv"] = httpx.Response(
            200, json={"data": [{"id": "1001", "login": "somechannel"}]}
        )

        channel_id = await self.resolver.resolve_channel_id(
            "#somechannel", "cid", "oauth:abc"
        )

        self.assertEqual(channel_id, "1001")
        request = self.requests[0]
        self.assertEqual(request.url.params["login"], "somechannel")
        self.assertEqual(request.headers["Client-ID"], "cid")
        self.assertEqual(request.headers["Authorization"], "Bearer abc")
        self.assertEqual(
            self.reports,
            ["Helix lookup: login=somechannel", "Helix lookup ok: id=1001"],
        )

    async def test_resolve_channel_id_requires_inputs(self) -> None:
        cases = (
            (("", "cid", "abc"), "Helix lookup failed: empty login"),
            (("foo", "", "abc"), "Helix lookup failed: missing client ID"),
            (("foo", "cid", ""), "Helix lookup failed: missing access token"),
        )
        for args, report in cases:
            with self.subTest(args=args):
                self.reports.clear()
                with self.assertRaises(LookupFailedError):
                    await self.resolver.resolve_channel_id(*args)
                self.assertEqual(self.reports, [report])
        self.assertEqual(self.requests, [])

    async def test_resolve_channel_id_unknown_login(self) -> None:
        self.responses["api.twitch.tv"] = httpx.Response(200, json={"data": []})
        with self.assertRaisesRegex(LookupFailedError, "no user found"):
            await self.resolver.resolve_channel_id("ghost", "cid", "abc")
        self.assertEqual(self.reports[-1], "Helix lookup failed: no user found")

    async def test_resolve_channel_id_bad_json(self) -> None:
        self.responses["api.twitch.tv"] = httpx.Response(200, text="not json")
        with self.assertRaises(LookupFailedError):
            await self.resolver.resolve_channel_id("foo", "cid", "abc")
        self.assertTrue(self.reports[-1].startswith("Helix lookup failed: decode error"))


class HelperTests(unittest.TestCase):
    def test_strip_oauth_prefix(self) -> None:
        self.assertEqual(strip_oauth_prefix("oauth:abc"), "abc")
        self.assertEqual(strip_oauth_prefix("abc"), "abc")

    def test_body_snippet_is_truncated(self) -> None:
        response = httpx.Response(500, text="x" * 600)
        snippet = body_snippet(response)
        self.assertEqual(len(snippet), 503)
        self.assertTrue(snippet.endswith("..."))
        self.assertEqual(body_snippet(httpx.Response(500, text="")), "<empty body>")


if __name__ == "__main__":
    unittest.main()
