from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from . import db_models  # noqa: F401  (register tables on Base.metadata)
from .api.errors import register_exception_handlers
from .api.v1.router import api_router
from .config import settings
from .db import Base, engine
from .live import LiveUpdateRegistry
from .logging_utils import setup_logging
from .rate_limit import limiter, rate_limit_exceeded_handler
from .routers import auth as auth_router
from .routers import live as live_router
from .routers import tasks as tasks_router
from .security import BcryptHasher, build_token_issuer


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App startup/shutdown lifecycle."""
    # --- Startup ---
    setup_logging(settings.LOG_LEVEL)
    if settings.DB_AUTO_CREATE:
        Base.metadata.create_all(bind=engine)

    # One registry per process, handed to handlers through dependencies
    app.state.live_registry = LiveUpdateRegistry()
    app.state.token_issuer = build_token_issuer(settings)
    app.state.hasher = BcryptHasher(rounds=settings.BCRYPT_ROUNDS)
    logging.getLogger("tasktracker").info("startup token_scheme=%s", settings.TOKEN_SCHEME)
    try:
        yield
    finally:
        # --- Shutdown ---
        app.state.live_registry.close_all()


tags_metadata = [
    {"name": "auth", "description": "Authentication: register and login, returning a bearer token."},
    {"name": "tasks", "description": "Owner-scoped task CRUD with filters."},
    {"name": "live", "description": "WebSocket channel pushing an 'update' marker on task changes."},
]

app = FastAPI(
    title="Task Tracker API",
    version="1.0.0",
    description=(
        "Multi-user task tracker. Register or log in to obtain a bearer token, "
        "then use it on /tasks and /ws. The API is also mounted under /api/v1."
    ),
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)


@app.get("/health")
def health():
    """Simple healthcheck endpoint."""
    return {"status": "ok"}


# Mount routers
app.include_router(auth_router.router)
app.include_router(tasks_router.router)
app.include_router(live_router.router)

# Versioned JSON API (parallel namespace)
app.include_router(api_router)

# Unified error handlers
register_exception_handlers(app)

# Rate limiting (per-route decorators + handler)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


# Request ID + access log middleware
@app.middleware("http")
async def request_id_and_logging(request: Request, call_next):
    start = time.perf_counter()
    incoming = request.headers.get(settings.REQUEST_ID_HEADER)
    req_id = incoming or uuid.uuid4().hex
    request.state.request_id = req_id
    response = await call_next(request)
    response.headers.setdefault(settings.REQUEST_ID_HEADER, req_id)
    duration_ms = int((time.perf_counter() - start) * 1000)
    logging.getLogger("tasktracker.request").info(
        "method=%s path=%s status=%s duration_ms=%s request_id=%s",
        request.method,
        request.url.path,
        getattr(response, "status_code", "-"),
        duration_ms,
        req_id,
    )
    return response


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    # Basic hardening headers
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    if settings.SECURITY_ENABLE_HSTS:
        # 6 months + preload; adjust as needed in prod
        response.headers.setdefault("Strict-Transport-Security", "max-age=15552000; includeSubDomains; preload")
    return response


# --- CORS (registered last so it is outermost and answers preflight first) ---


def _cors_headers(origin: str | None) -> dict[str, str]:
    allowed = settings.CORS_ALLOW_ORIGINS
    if "*" in allowed:
        allow_origin = "*"
    elif origin and origin in allowed:
        allow_origin = origin
    else:
        return {}
    headers = {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Headers": ", ".join(settings.CORS_ALLOW_HEADERS),
        "Access-Control-Allow-Methods": ", ".join(settings.CORS_ALLOW_METHODS),
    }
    if allow_origin != "*":
        headers["Vary"] = "Origin"
    return headers


@app.middleware("http")
async def cors(request: Request, call_next):
    if request.method == "OPTIONS":
        # Preflight: 204, no body, no routing or auth
        response = Response(status_code=status.HTTP_204_NO_CONTENT)
    else:
        try:
            response = await call_next(request)
        except Exception:
            # render the 500 here so it still carries CORS headers
            logging.getLogger("tasktracker.request").exception(
                "unhandled error method=%s path=%s", request.method, request.url.path
            )
            response = JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Internal server error", "status": 500, "path": request.url.path},
            )
    response.headers.update(_cors_headers(request.headers.get("origin")))
    return response


# --- Observability: liveness, readiness, metrics ---


@app.get("/live")
def live():
    return {"status": "live"}


@app.get("/ready")
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not ready") from exc


# Expose Prometheus metrics at /metrics
Instrumentator().instrument(app).expose(app, include_in_schema=False)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("tasktracker.main:app", host=settings.HOST, port=settings.PORT)
