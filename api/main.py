"""
api/main.py -- FastAPI application entry point for the library API.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter
  3. log_requests       -- one access-log line per request

Lifespan builds the SQLAlchemy engine and the repositories on startup and
disposes the engine on shutdown.

Every response, success or failure, uses the {success, message, data?}
envelope from api/responses.py. The exception handlers below are the only
place errors are turned into HTTP responses.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.errors import ApiError
from api.limiter import limiter
from api.models import HealthResponse
from api.responses import fail
from api.routes.auth import router as auth_router
from api.routes.authors import router as author_router
from api.routes.books import router as book_router
from api.routes.borrowings import router as borrowing_router
from api.routes.categories import router as category_router
from api.routes.librarians import router as librarian_router
from api.routes.readers import router as reader_router
from api.routes.reviews import router as review_router
from api.routes.sites import branch_router, library_router
from api.stores import build_stores
from core.config import get_settings
from core.db import make_engine

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("libraryapi.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the engine and repositories once; dispose the engine on shutdown.

    app.state.user_store is the same UserStore as app.state.stores.users.
    The auth dependency reads it under that name so auth/ never imports api/.
    """
    logger.info("Library API starting up")
    engine = make_engine(_settings.database_url)
    stores = build_stores(engine)
    app.state.stores = stores
    app.state.user_store = stores.users
    logger.info("Database ready (%s)", engine.url.render_as_string(hide_password=True))

    yield

    stores.close()
    logger.info("Library API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Library API",
    description="Library management: users, books, authors, categories, branches, libraries, borrowings, reviews.",
    version=VERSION,
    lifespan=lifespan,
    debug=_settings.debug,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(librarian_router, prefix="/librarian", tags=["Librarians"])
app.include_router(reader_router, prefix="/reader", tags=["Readers"])
app.include_router(category_router, prefix="/categories", tags=["Categories"])
app.include_router(author_router, prefix="/author", tags=["Authors"])
app.include_router(book_router, prefix="/book", tags=["Books"])
app.include_router(branch_router, prefix="/branch", tags=["Branches"])
app.include_router(library_router, prefix="/library", tags=["Libraries"])
app.include_router(review_router, prefix="/review", tags=["Reviews"])
app.include_router(borrowing_router, prefix="/borrowing", tags=["Borrowings"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same envelope so clients can parse errors
# uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return fail(exc.status_code, exc.message, exc.data)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded.

    Retry-After is the length of the limit's window in seconds.
    """
    retry_after = exc.limit.limit.get_expiry() if exc.limit is not None else 60
    logger.warning("Rate limit exceeded on %s from %s", request.url.path, request.client.host if request.client else "unknown")
    response = fail(429, "Too many requests. Please try again later.")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """A body that is missing, not JSON, or not a JSON object.

    Field-level validation happens in api/validation.py; the only thing
    FastAPI checks is that `body: dict` received an object.
    """
    return fail(400, "Request body must be a JSON object")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Auth dependencies and unknown routes raise HTTPException; wrap its detail."""
    response = fail(exc.status_code, str(exc.detail))
    for key, value in (exc.headers or {}).items():
        response.headers[key] = value
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The exception is logged; the client only gets a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return fail(500, "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Not rate limited; load balancers and monitoring poll it.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and a database round-trip result."""
    try:
        with request.app.state.stores.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        database = "unavailable"
    status = "healthy" if database == "ok" else "degraded"
    return HealthResponse(status=status, version=VERSION, components={"database": database})
