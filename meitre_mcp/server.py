import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

import httpx
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from meitre_mcp.clients.meitre import MeitreClient
from meitre_mcp.models.credentials import Credentials
from meitre_mcp.protocol import (
    EnvelopeError,
    ErrorCode,
    error_response,
    handle_mcp_request,
    parse_request,
)
from meitre_mcp.storage.crypto import TokenCipher
from meitre_mcp.storage.database import DatabaseManager
from meitre_mcp.storage.token_cache import TokenCache
from meitre_mcp.tools import ToolContext, ToolRegistry, build_registry

logger = logging.getLogger(__name__)

_db: DatabaseManager | None = None
_token_cache: TokenCache | None = None
_http: httpx.AsyncClient | None = None
_registry: ToolRegistry | None = None


def get_token_cache() -> TokenCache:
    """Get the process-wide TokenCache. Raises if the lifespan has not started."""
    if _token_cache is None:
        raise RuntimeError("Token cache not initialized. Server lifespan has not started.")
    return _token_cache


def get_http() -> httpx.AsyncClient:
    """Get the shared upstream connection pool. Raises if not initialized."""
    if _http is None:
        raise RuntimeError("HTTP client not initialized. Server lifespan has not started.")
    return _http


def get_registry() -> ToolRegistry:
    """Get the tool registry. Raises if not initialized."""
    if _registry is None:
        raise RuntimeError("Tool registry not initialized. Server lifespan has not started.")
    return _registry


def _reset_state() -> None:
    """Clear module-level references. Used in tests."""
    global _db, _token_cache, _http, _registry  # noqa: PLW0603
    _db = None
    _token_cache = None
    _http = None
    _registry = None


@asynccontextmanager
async def app_lifespan(app: Starlette) -> AsyncIterator[None]:
    """Open the token database and upstream connection pool for the server lifetime."""
    global _db, _token_cache, _http, _registry  # noqa: PLW0603
    from meitre_mcp.config import get_settings

    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    _db = DatabaseManager(settings.db_path)
    await _db.initialize()
    _token_cache = TokenCache(_db, TokenCipher(settings.encryption_key))
    _http = httpx.AsyncClient(timeout=settings.http_timeout)
    if _registry is None:
        _registry = build_registry()
    logger.info("Token cache ready, %d tools registered", len(_registry))

    try:
        yield
    finally:
        await _http.aclose()
        await _db.close()
        _http = None
        _token_cache = None
        _db = None
        logger.info("Token cache closed")


async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "timestamp": datetime.now(UTC).isoformat()})


async def mcp_endpoint(request: Request) -> JSONResponse:
    """Handle one MCP JSON-RPC request.

    Account credentials come from the ``username``, ``password`` and
    optional ``restaurant`` headers and are checked before the body is
    read. Each request gets its own MeitreClient.
    """
    from meitre_mcp.config import get_settings

    username = request.headers.get("username")
    password = request.headers.get("password")
    restaurant = request.headers.get("restaurant")

    if not username or not password:
        return JSONResponse(
            error_response(
                None,
                ErrorCode.MISSING_CREDENTIALS,
                "Missing required headers: username, password",
            ),
            status_code=401,
        )

    try:
        rpc_request = parse_request(await request.json())
    except ValueError as exc:
        request_id = exc.request_id if isinstance(exc, EnvelopeError) else None
        return JSONResponse(
            error_response(request_id, ErrorCode.PARSE_ERROR, "Parse error"),
            status_code=400,
        )

    settings = get_settings()
    api = MeitreClient(
        Credentials(username=username, password=password, restaurant=restaurant or None),
        get_token_cache(),
        http=get_http(),
        base_url=settings.meitre_base_url,
    )
    context = ToolContext(api=api, has_header_restaurant=bool(restaurant))
    response = await handle_mcp_request(rpc_request, context, get_registry())
    return JSONResponse(response)


async def method_not_allowed(request: Request) -> JSONResponse:
    return JSONResponse(
        error_response(None, ErrorCode.METHOD_NOT_FOUND, "Method not allowed. Use POST."),
        status_code=405,
    )


app = Starlette(
    routes=[
        Route("/health", health_check, methods=["GET"]),
        Route("/mcp", mcp_endpoint, methods=["POST"]),
        Route("/mcp", method_not_allowed),
    ],
    middleware=[
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        ),
    ],
    lifespan=app_lifespan,
)


def setup_logging(log_level: str, data_dir: Path) -> None:
    """Configure logging with file rotation and console output.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        data_dir: Base data directory; logs go to data_dir/logs/server.log.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Exact type check so FileHandler subclasses don't count as console output
    if not any(type(h) is logging.StreamHandler for h in root_logger.handlers):
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        root_logger.addHandler(console)

    log_dir = data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    if not any(isinstance(h, RotatingFileHandler) for h in root_logger.handlers):
        file_handler = RotatingFileHandler(
            log_dir / "server.log",
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def initialize() -> Starlette:
    """Load settings, prepare directories and logging, build the tool registry.

    A malformed ``ENCRYPTION_KEY`` fails here, before the server binds.
    """
    global _registry  # noqa: PLW0603
    from meitre_mcp.config import get_settings

    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(settings.log_level, settings.data_dir)

    _registry = build_registry()
    logger.info("Meitre MCP server initialized with %d tools", len(_registry))
    return app
