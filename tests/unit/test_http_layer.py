# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
from typing import Annotated, Optional

import httpx
import pytest

from ferry import ClientSettings, Deferred, Field, Job, Path, Query, create, form_url_encoded, get, post
from ferry.errors import ErrorCategory, TransportError
from ferry.http import HttpxTransport, StubTransport, build_base_dir_url, create_default_transport, is_absolute_url
from ferry.http.models import HttpResponse
from ferry.models.request import RequestTemplate


def make_transport(handler, **settings):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxTransport(ClientSettings(**settings), client=client)


def test_httpx_transport_sends_template_and_maps_response():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, headers={"Content-Type": "text/plain; charset=latin-1"}, content=b"caf\xe9")

    transport = make_transport(handler, user_agent="ferry-tests/1.0")
    template = RequestTemplate(
        method="POST",
        url="https://localhost/user",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        body=b"arg1=01",
    )
    response = asyncio.run(transport.send(template))

    assert response.status_code == 201
    assert response.ok is True
    assert response.text == "café"
    assert response.url == "https://localhost/user"
    assert seen[0].method == "POST"
    assert seen[0].content == b"arg1=01"
    assert seen[0].headers["user-agent"] == "ferry-tests/1.0"
    assert seen[0].headers["content-type"] == "application/x-www-form-urlencoded"


def test_httpx_transport_keeps_explicit_user_agent():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200)

    transport = make_transport(handler)
    asyncio.run(transport.send(RequestTemplate("GET", "https://localhost/", headers={"User-Agent": "custom"})))
    assert seen[0].headers["user-agent"] == "custom"


def test_httpx_transport_enforces_body_limit():
    transport = make_transport(lambda request: httpx.Response(200, content=b"x" * 32), max_body_bytes=16)
    with pytest.raises(TransportError, match="exceeds 16 bytes"):
        asyncio.run(transport.send(RequestTemplate("GET", "https://localhost/")))


@pytest.mark.parametrize(
    "exc, category",
    [
        (httpx.ConnectError("refused"), ErrorCategory.CONNECTION_ERROR),
        (httpx.ReadTimeout("slow"), ErrorCategory.TIMEOUT),
        (httpx.RemoteProtocolError("garbage"), ErrorCategory.PROTOCOL_ERROR),
    ],
)
def test_httpx_transport_wraps_httpx_errors(exc, category):
    def handler(request):  # noqa: ARG001
        raise exc

    transport = make_transport(handler)
    with pytest.raises(TransportError) as excinfo:
        asyncio.run(transport.send(RequestTemplate("GET", "https://localhost/")))
    assert excinfo.value.category is category
    assert excinfo.value.__cause__ is exc


def test_httpx_transport_aclose_closes_client():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    transport = HttpxTransport(ClientSettings(), client=client)
    asyncio.run(transport.aclose())
    assert client.is_closed


def test_create_default_transport_uses_settings():
    settings = ClientSettings(timeout=3.0, user_agent="x")
    transport = create_default_transport(settings)
    assert isinstance(transport, HttpxTransport)
    assert transport.settings is settings
    asyncio.run(transport.aclose())


def test_stub_transport_registered_handler_and_default():
    async def handler(request):
        return HttpResponse(status_code=202, url=request.url)

    stub = StubTransport(handler=handler)
    stub.add("https://localhost/a", HttpResponse(status_code=200, content=b"a"))

    async def scenario():
        first = await stub.send(RequestTemplate("GET", "https://localhost/a"))
        second = await stub.send(RequestTemplate("GET", "https://localhost/b"))
        return first, second

    first, second = asyncio.run(scenario())
    assert first.content == b"a"
    assert second.status_code == 202
    assert [r.url for r in stub.requests] == ["https://localhost/a", "https://localhost/b"]

    missing = asyncio.run(StubTransport().send(RequestTemplate("GET", "https://localhost/c")))
    assert missing.status_code == 404
    assert missing.ok is False


def test_url_helpers():
    assert build_base_dir_url("http://host/app") == "http://host/app/"
    assert build_base_dir_url("http://host/app/?q=1#frag") == "http://host/app/"
    assert is_absolute_url("https://host/")
    assert not is_absolute_url("/relative")


class GitHub:
    @get("users/{user}/repos")
    def repos(self, user: Annotated[str, Path()], page: Annotated[Optional[int], Query()] = None) -> Deferred[list]: ...

    @post("session")
    @form_url_encoded
    def login(self, name: Annotated[str, Field()], password: Annotated[str, Field("pass")]) -> Job: ...


def test_generated_client_over_httpx_wire():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/session":
            return httpx.Response(204)
        return httpx.Response(200, json=[{"name": "ferry"}])

    client = create(GitHub, transport=make_transport(handler), base_url="https://api.example/")

    async def scenario():
        async with client:
            repos = await client.repos("czp3009", page=2)
            await client.login("czp", "a b!")
        return repos

    repos = asyncio.run(scenario())
    assert repos == [{"name": "ferry"}]
    assert str(seen[0].url) == "https://api.example/users/czp3009/repos?page=2"
    assert seen[1].method == "POST"
    assert seen[1].content == b"name=czp&pass=a+b%21"
    assert seen[1].headers["content-type"] == "application/x-www-form-urlencoded"
