import logging
import os
from typing import Any

import httpx

from domain.gate import SubmitResult
from domain.models import Document, DocumentError


logger = logging.getLogger(__name__)


STATE_API_URL = os.environ.get("STATE_API_URL", "http://localhost:8000/api/")
API_TOKEN = os.environ.get("API_TOKEN")
TIMEOUT = 30


class TransportError(Exception):
    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.data = data


class Unauthorized(TransportError):
    pass


def state_client_factory(
    base_url: str | None = None,
    token: str | None = None,
) -> httpx.AsyncClient:
    base_url = STATE_API_URL if base_url is None else base_url
    token = API_TOKEN if token is None else token
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(base_url=base_url, headers=headers, timeout=TIMEOUT)


class StateService:
    """Client side of the state endpoints.

    `submit` mirrors `VersionGate.submit`, so a `MutationQueue` can sit on top
    of either the HTTP API or an in-process gate.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self.http_client = (
            state_client_factory() if http_client is None else http_client
        )

    async def _request(self, method: str, json: Any = None) -> tuple[int, Any]:
        try:
            resp = await self.http_client.request(method, "state", json=json)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} state failed: {e!r}") from e

        if resp.status_code == 401:
            raise Unauthorized("Unauthorized", status=401)

        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError(
                "Response was not JSON.", status=resp.status_code
            ) from e

        return resp.status_code, data

    async def fetch(self) -> Document:
        status, data = await self._request("GET")
        if status != 200:
            raise TransportError(_error(data), status=status, data=data)
        return _document(data, status)

    async def submit(self, proposed: Document, expected_version: int) -> SubmitResult:
        status, data = await self._request(
            "PUT",
            json={"state": proposed.to_dict(), "version": expected_version},
        )
        match status:
            case 200:
                return SubmitResult(accepted=True, doc=_document(data, status))
            case 409:
                return SubmitResult(accepted=False, doc=_document(data, status))
            case _:
                raise TransportError(_error(data), status=status, data=data)

    async def aclose(self) -> None:
        await self.http_client.aclose()


def _error(data: Any) -> str:
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return "Request failed"


def _document(data: Any, status: int) -> Document:
    if not isinstance(data, dict):
        raise TransportError("Unexpected response body.", status=status, data=data)
    version = data.get("version")
    try:
        return Document.from_dict(
            data.get("state"),
            version=version if isinstance(version, int) else None,
        )
    except DocumentError as e:
        raise TransportError(str(e), status=status, data=data) from e
