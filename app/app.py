import contextlib
import functools
import logging
from typing import Any, Awaitable, Callable

from databases import Database
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from app import config
from app.auth import TokenAuthenticator
from domain.gate import VersionGate
from domain.models import Document, DocumentError
from domain.store import DatabaseDocumentStore, DocumentStore


logger = logging.getLogger(__name__)


CONFIG = config.Config()


def aJSONResponse(route: Callable[..., Awaitable[Any | tuple[Any, int]]]):
    @functools.wraps(route)
    async def wrapper(*args: Any, **kwargs: Any) -> JSONResponse:
        try:
            resp = await route(*args, **kwargs)
        except Exception:
            logger.exception("State error.")
            resp = {"error": "Internal server error"}, 500
        if not isinstance(resp, tuple):
            body, code = resp, 200
        else:
            body, code = resp
        return JSONResponse(body, status_code=code)

    return wrapper


async def save_state(request: Request, gate: VersionGate) -> tuple[Any, int]:
    try:
        body = await request.json()
    except ValueError:
        return {"error": "Invalid JSON"}, 400

    version = body.get("version") if isinstance(body, dict) else None
    if isinstance(version, bool) or not isinstance(version, int):
        return {"error": "Version number required"}, 400

    try:
        # The client's own version field is never trusted.
        proposed = Document.from_dict(body.get("state"), version=version)
    except DocumentError as e:
        return {"error": f"Invalid state: {e}"}, 400

    result = await gate.submit(proposed, version)
    if not result.accepted:
        return {"error": "Version conflict", "state": result.doc.to_dict()}, 409

    return {"state": result.doc.to_dict(), "version": result.doc.version}, 200


@aJSONResponse
async def state(request: Request) -> Any:
    user = request.app.state.auth.authenticate(request)
    if user is None:
        return {"error": "Unauthorized"}, 401

    gate: VersionGate = request.app.state.gate
    match request.method.lower():
        case "get":
            doc = await gate.fetch()
            return {"state": doc.to_dict(), "version": doc.version}
        case "put":
            return await save_state(request, gate)
        case _:
            return {"error": "Method not allowed"}, 405


def create_app(
    cfg: config.Config | None = None,
    *,
    store: DocumentStore | None = None,
    auth: TokenAuthenticator | None = None,
) -> Starlette:
    cfg = CONFIG if cfg is None else cfg
    if store is None:
        store = DatabaseDocumentStore(Database(cfg.db_url), key=cfg.state_blob_key)
    if auth is None:
        auth = TokenAuthenticator(
            cfg.api_token,
            allow_anonymous=cfg.env == config.Env.local,
        )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        config.configure_logging(cfg.log_level)
        if isinstance(store, DatabaseDocumentStore):
            await store.db.connect()
            await store.create()
        yield
        if isinstance(store, DatabaseDocumentStore):
            await store.db.disconnect()

    app = Starlette(
        debug=True if cfg.env == config.Env.local else False,
        routes=[Route("/api/state", state, methods=["GET", "PUT"])],
        lifespan=lifespan,
    )

    app.state.store = store
    app.state.gate = VersionGate(store)
    app.state.auth = auth
    return app


app = create_app()
