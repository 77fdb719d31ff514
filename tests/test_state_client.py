import json
from typing import Callable

import httpx
import pytest

from domain.models import Document, Recipe
from domain.state_client import StateService, TransportError, Unauthorized


def service(handler: Callable[[httpx.Request], httpx.Response]) -> StateService:
    return StateService(
        httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            base_url="http://testserver/api/",
        )
    )


def stored(version: int) -> dict[str, object]:
    return Document(recipes=[Recipe(id="r1")], version=version).to_dict()


@pytest.mark.asyncio
async def test_fetch() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/api/state"
        return httpx.Response(200, json={"state": stored(4), "version": 4})

    doc = await service(handler).fetch()
    assert doc.version == 4
    assert doc.recipe("r1") is not None


@pytest.mark.asyncio
async def test_submit_accepted() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.method == "PUT"
        assert body["version"] == 2
        return httpx.Response(200, json={"state": stored(3), "version": 3})

    result = await service(handler).submit(Document(version=2), 2)
    assert result.accepted
    assert result.doc.version == 3


@pytest.mark.asyncio
async def test_submit_conflict_returns_server_document() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"error": "Version conflict", "state": stored(9)})

    result = await service(handler).submit(Document(version=2), 2)
    assert not result.accepted
    assert result.doc.version == 9


@pytest.mark.asyncio
async def test_unauthorized() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "Unauthorized"})

    with pytest.raises(Unauthorized):
        await service(handler).fetch()


@pytest.mark.parametrize(
    "response",
    (
        httpx.Response(500, json={"error": "Internal server error"}),
        httpx.Response(502, text="<html>Bad gateway</html>"),
        httpx.Response(200, json=["not", "a", "document"]),
        httpx.Response(200, json={"state": {"version": "x"}, "version": None}),
    ),
)
@pytest.mark.asyncio
async def test_bad_responses_are_transport_errors(response: httpx.Response) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(TransportError):
        await service(handler).submit(Document(), 0)


@pytest.mark.asyncio
async def test_network_failure_is_a_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError) as e:
        await service(handler).fetch()
    assert e.value.status is None
