"""FastAPI main application."""
import logging
import sqlite3
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.api import sessions as sessions_api
from backend.app.api.sessions import Engine
from backend.app.content.repository import MasterCatalog
from backend.app.core.error_handling import create_error_response, log_error_with_context
from backend.app.core.interpreter import CodeInterpreter
from backend.app.core.sync import refresh_master_catalog
from backend.app.db.local_cache import SqliteLocalCache
from backend.app.store.client import HttpEventStore
from shared.runtime_settings import NexusSettings, load_security_settings, load_settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SECURITY = load_security_settings()
DEV_MODE = SECURITY.dev_mode
API_TOKEN = SECURITY.api_token
CORS_ALLOW_ORIGINS = SECURITY.cors_allow_origins


def build_engine(settings: NexusSettings) -> Engine:
    """Wire the store, cache, interpreter and catalog from settings."""
    try:
        cache = SqliteLocalCache(settings.cache_path)
    except sqlite3.Error as e:
        # The engine runs on in-memory defaults without a durable cache
        logger.warning("Local cache unavailable at %s: %s", settings.cache_path, e)
        cache = None

    store = None
    if not settings.offline:
        store = HttpEventStore(
            settings.store_url,
            settings.admin_scope,
            timeout=settings.store_timeout,
            admin_token=settings.admin_token,
        )

    interpreter = None
    if settings.interpreter_enabled:
        interpreter = CodeInterpreter(
            settings.interpreter_url,
            settings.interpreter_model,
            timeout=settings.interpreter_timeout,
        )

    catalog = MasterCatalog()
    origin = refresh_master_catalog(catalog, store, cache)
    logger.info("Master catalog loaded from %s (%d cards)", origin, len(catalog))
    return Engine(
        catalog=catalog,
        store=store,
        cache=cache,
        interpreter=interpreter,
        admin_scope=settings.admin_scope,
        offline=settings.offline,
    )


def _validate_environment(engine: Engine) -> None:
    """Log collaborator health at startup. Never fails: the engine degrades to local sources."""
    if engine.store is None:
        logger.info("Store disabled (offline mode); remote sources are skipped")
    elif engine.store.check_health():
        logger.info("Store reachable")
    else:
        logger.warning("Store NOT reachable; scans fall through to local sources until it returns")
    if engine.interpreter is None:
        logger.info("Generative fallback disabled; unknown codes resolve to the stub card")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not DEV_MODE:
        if "*" in CORS_ALLOW_ORIGINS:
            raise RuntimeError(
                "Unsafe CORS config: '*' is only allowed in dev mode. "
                "Set NEXUS_CORS_ALLOW_ORIGINS to explicit origins."
            )
        if not API_TOKEN:
            raise RuntimeError("NEXUS_API_TOKEN is required when NEXUS_DEV_MODE=0.")
    if getattr(app.state, "engine", None) is None:
        app.state.engine = build_engine(load_settings())
    _validate_environment(app.state.engine)
    logger.info(
        "API startup complete (dev_mode=%s, auth=%s)",
        DEV_MODE,
        "enabled" if bool(API_TOKEN) else "disabled",
    )
    yield
    for sid in list(app.state.engine.sessions):
        app.state.engine.close_session(sid)


app = FastAPI(title="Nexus Companion API", version="2.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _extract_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "").strip()
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return request.headers.get("X-API-Key", "").strip()


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    if request.method.upper() == "OPTIONS":
        return await call_next(request)
    if not API_TOKEN:
        return await call_next(request)
    path = request.url.path or ""
    if path in ("/", "/health"):
        return await call_next(request)
    if DEV_MODE and (path.startswith("/docs") or path.startswith("/redoc") or path.startswith("/openapi")):
        return await call_next(request)

    provided = _extract_token(request)
    if provided != API_TOKEN:
        error_response = create_error_response(
            error_code="AUTH_HTTP_401",
            message="Unauthorized",
            node="api",
            details={"path": path},
        )
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=error_response)
    return await call_next(request)


def _node_for(path: str) -> str:
    if "/scan" in path:
        return "resolution"
    if "/events" in path or "/use" in path:
        return "lifecycle"
    if "/merchant" in path:
        return "merchant"
    if "/sessions" in path:
        return "session"
    return "api"


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTPExceptions with structured error responses."""
    node = _node_for(request.url.path)
    error_response = create_error_response(
        error_code=f"{node.upper()}_HTTP_{exc.status_code}",
        message=exc.detail,
        node=node,
        details={
            "status_code": exc.status_code,
            "path": request.url.path,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=error_response)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler: return structured error responses with logging."""
    node = _node_for(request.url.path)

    log_error_with_context(
        error=exc,
        operation=node,
        extra_context={
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
        },
    )

    message = f"An error occurred: {type(exc).__name__}"
    if str(exc):
        message = str(exc)

    error_response = create_error_response(
        error_code=f"{node.upper()}_ERROR",
        message=message,
        node=node,
        details={
            "exception_type": type(exc).__name__,
            "path": request.url.path,
        },
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_response)


app.include_router(sessions_api.router)


@app.get("/")
async def root():
    return {"message": "Nexus Companion API", "version": "2.0.0"}


@app.get("/health")
async def health(request: Request):
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        return {"status": "starting"}
    return {
        "status": "healthy",
        "catalog": {"origin": engine.catalog.origin, "size": len(engine.catalog)},
        "sessions": len(engine.sessions),
        "offline": engine.offline,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
