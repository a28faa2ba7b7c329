import httpx
import pytest
from unittest.mock import patch

import config
from remote_auth import fetch_remote_identity

_RealAsyncClient = httpx.AsyncClient

def _client_factory(handler):
    def factory(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)
    return factory

@pytest.mark.asyncio
async def test_fetch_remote_identity_success():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["cookie"] = request.headers.get("cookie")
        return httpx.Response(200, json={"id": "u-42", "email": "staff@example.com", "role": "admin"})

    with patch('remote_auth.httpx.AsyncClient', side_effect=_client_factory(handler)):
        identity = await fetch_remote_identity("connect.sid=abc")

    assert identity.user_id == "u-42"
    assert identity.role == "admin"
    assert seen["url"] == config.REMOTE_AUTH_URL
    assert seen["cookie"] == "connect.sid=abc"

@pytest.mark.asyncio
async def test_fetch_remote_identity_rejected():
    def handler(request: httpx.Request):
        return httpx.Response(401, json={"message": "Non authentifié"})

    with patch('remote_auth.httpx.AsyncClient', side_effect=_client_factory(handler)):
        assert await fetch_remote_identity("connect.sid=expired") is None

@pytest.mark.asyncio
async def test_fetch_remote_identity_without_cookie_skips_call():
    with patch('remote_auth.httpx.AsyncClient') as mock_client:
        assert await fetch_remote_identity(None) is None
        mock_client.assert_not_called()

@pytest.mark.asyncio
async def test_fetch_remote_identity_network_error_propagates():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("unreachable", request=request)

    with patch('remote_auth.httpx.AsyncClient', side_effect=_client_factory(handler)):
        with pytest.raises(httpx.HTTPError):
            await fetch_remote_identity("connect.sid=abc")

@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    httpx.Response(200, text="<html>login</html>", headers={"content-type": "text/html"}),
    httpx.Response(200, json={"id": "u1"}),
    httpx.Response(200, json={"role": "admin"}),
    httpx.Response(200, json=["u1", "admin"]),
    httpx.Response(200, json={"id": "u1", "role": None}),
])
async def test_fetch_remote_identity_malformed_reply_is_rejected(reply):
    def handler(request: httpx.Request):
        return reply

    with patch('remote_auth.httpx.AsyncClient', side_effect=_client_factory(handler)):
        assert await fetch_remote_identity("connect.sid=abc") is None
