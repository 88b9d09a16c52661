"""
thruster: Basic Auth Gate Tests
=================================

What we test:
    ✅ No credentials configured → every route is open
    ✅ Missing, unknown-user and wrong-password requests → 401 before the handler
    ✅ Every configured pair → handler response
    ✅ A repeated username keeps its last password
    ✅ Credentials are decoded as UTF-8, so non-ASCII passwords authenticate
"""

import base64
from unittest.mock import MagicMock

import pytest
from starlette.responses import PlainTextResponse

from thruster import GET, Server
from thruster.auth import accounts_from, basic_auth, parse_basic
from thruster.config import Config, HTTPAuth


def ok(request):
    return PlainTextResponse("OK")


def basic_header(username, password):
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


class TestAccounts:

    def test_maps_username_to_password(self, credentials):
        assert accounts_from(credentials) == {"admin": "passwd", "root": "passwd2"}

    def test_last_duplicate_wins(self):
        accounts = accounts_from([
            HTTPAuth(username="admin", password="old"),
            HTTPAuth(username="admin", password="new"),
        ])
        assert accounts == {"admin": "new"}

    def test_no_credentials_means_no_dependencies(self):
        assert basic_auth([]) == []

    def test_credentials_give_one_dependency(self, credentials):
        assert len(basic_auth(credentials)) == 1


class TestParseBasic:

    def test_decodes_username_and_password(self):
        parsed = parse_basic(basic_header("admin", "12345")["Authorization"])
        assert (parsed.username, parsed.password) == ("admin", "12345")

    def test_password_may_contain_colons(self):
        parsed = parse_basic(basic_header("admin", "a:b:c")["Authorization"])
        assert parsed.password == "a:b:c"

    def test_utf8_credentials(self):
        parsed = parse_basic(basic_header("jürgen", "pässwort")["Authorization"])
        assert (parsed.username, parsed.password) == ("jürgen", "pässwort")

    def test_scheme_is_case_insensitive(self):
        token = basic_header("admin", "12345")["Authorization"].split()[1]
        assert parse_basic(f"basic {token}").username == "admin"

    @pytest.mark.parametrize(
        "header",
        [
            None,
            "",
            "Bearer abc",
            "Basic",
            "Basic not-base64!",
            "Basic " + base64.b64encode(b"no-separator").decode(),
            "Basic " + base64.b64encode(b"admin:\xff\xfe").decode(),
        ],
    )
    def test_malformed_headers_are_rejected(self, header):
        assert parse_basic(header) is None


class TestGatedRoutes:

    def setup_method(self):
        self.handler = MagicMock(side_effect=ok)

    def make_server(self, credentials):
        server = Server(Config(hostname="localhost", http_auth=credentials))
        server.add_handler(GET, "/test", self.handler)
        return server

    @pytest.mark.asyncio
    async def test_no_credentials_configured_is_open(self, asgi):
        async with asgi(self.make_server([])) as client:
            resp = await client.get("/test")
        assert resp.status_code == 200
        assert resp.text == "OK"

    @pytest.mark.asyncio
    async def test_missing_authorization_is_401(self, asgi, credentials):
        async with asgi(self.make_server(credentials)) as client:
            resp = await client.get("/test")
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"].startswith("Basic")
        self.handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_user_is_401(self, asgi, credentials):
        async with asgi(self.make_server(credentials)) as client:
            resp = await client.get("/test", auth=("user", "passwd"))
        assert resp.status_code == 401
        self.handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_wrong_password_is_401(self, asgi, credentials):
        async with asgi(self.make_server(credentials)) as client:
            resp = await client.get("/test", auth=("admin", "passwd2"))
        assert resp.status_code == 401
        self.handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_basic_scheme_is_401(self, asgi, credentials):
        async with asgi(self.make_server(credentials)) as client:
            resp = await client.get("/test", headers={"Authorization": "Bearer abc"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_every_listed_pair_is_accepted(self, asgi, credentials):
        async with asgi(self.make_server(credentials)) as client:
            for credential in credentials:
                resp = await client.get(
                    "/test", auth=(credential.username, credential.password)
                )
                assert resp.status_code == 200
                assert resp.text == "OK"
        assert self.handler.call_count == len(credentials)

    @pytest.mark.asyncio
    async def test_gate_applies_to_routes_added_later(self, asgi, credentials):
        server = self.make_server(credentials)
        server.add_json_handler(GET, "/later", lambda request: {"late": True})
        async with asgi(server) as client:
            assert (await client.get("/later")).status_code == 401
            resp = await client.get("/later", auth=("root", "passwd2"))
        assert resp.status_code == 200
        assert resp.json() == {"late": True}

    @pytest.mark.asyncio
    async def test_authenticated_user_is_on_request_state(self, asgi, credentials):
        seen = {}

        def whoami(request):
            seen["user"] = request.state.user
            return PlainTextResponse("OK")

        server = Server(Config(http_auth=credentials))
        server.add_handler(GET, "/me", whoami)
        async with asgi(server) as client:
            await client.get("/me", auth=("root", "passwd2"))
        assert seen["user"] == "root"

    @pytest.mark.asyncio
    async def test_non_ascii_password_is_accepted(self, asgi):
        server = self.make_server([HTTPAuth(username="admin", password="pässwort")])
        async with asgi(server) as client:
            good = await client.get("/test", headers=basic_header("admin", "pässwort"))
            bad = await client.get("/test", headers=basic_header("admin", "passwort"))
        assert good.status_code == 200
        assert good.text == "OK"
        assert bad.status_code == 401
        assert self.handler.call_count == 1

    @pytest.mark.asyncio
    async def test_undecodable_credentials_are_401(self, asgi, credentials):
        async with asgi(self.make_server(credentials)) as client:
            resp = await client.get("/test", headers={"Authorization": "Basic %%%"})
        assert resp.status_code == 401
        assert resp.headers["WWW-Authenticate"].startswith("Basic")
        self.handler.assert_not_called()
