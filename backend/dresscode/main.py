import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from dresscode.config import settings
from dresscode.database import engine, init_models
from dresscode.errors import OrchestrationError
from dresscode.middleware.logging_config import configure_logging

configure_logging(settings.log_level, settings.log_format)
logger = logging.getLogger("dresscode")

from dresscode.api.compliance import router as compliance_router  # noqa: E402
from dresscode.api.deps import get_runtime_settings  # noqa: E402
from dresscode.api.settings import router as settings_router  # noqa: E402
from dresscode.services.runtime_settings import RuntimeSettingsStore  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: make sure the compliance_checks table exists
    await init_models()
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="Dress Code Compliance API",
    description="Checks healthcare and construction outfits against industry dress codes",
    version="0.1.0",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────────────────────
origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "X-Admin-Token", "X-Request-ID"],
    expose_headers=["X-Request-ID", "X-Compliance-Source"],
)

# ── Security headers middleware ──────────────────────────────────────────────
from dresscode.middleware.security_headers import SecurityHeadersMiddleware  # noqa: E402

app.add_middleware(SecurityHeadersMiddleware)

# ── Rate limiting middleware ─────────────────────────────────────────────────
from dresscode.middleware.rate_limit import RateLimitMiddleware  # noqa: E402

app.add_middleware(RateLimitMiddleware)

# ── Request context middleware (request ID + timing) ─────────────────────────
from dresscode.middleware.request_context import RequestContextMiddleware  # noqa: E402

app.add_middleware(RequestContextMiddleware)

# ── Prometheus metrics middleware ────────────────────────────────────────────
from dresscode.middleware.metrics import PrometheusMiddleware  # noqa: E402

app.add_middleware(PrometheusMiddleware)


# ── Error handlers: every error body is {"message": ...} ─────────────────────

@app.exception_handler(OrchestrationError)
async def orchestration_error_handler(request: Request, exc: OrchestrationError):
    if exc.status_code >= 500:
        logger.error("Compliance check failed on %s: %s", request.url.path, exc, exc_info=exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = "Invalid request data. " + "; ".join(problems) if problems else "Invalid request data."
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled %s on %s %s: %s",
        type(exc).__name__, request.method, request.url.path, exc, exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"message": "Error analyzing outfit compliance. Please try again or provide a text description instead."},
    )


# Register API routers
app.include_router(compliance_router)
app.include_router(settings_router)


@app.get("/metrics", tags=["metrics"])
async def prometheus_metrics():
    """Expose Prometheus metrics in text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/api/health", tags=["health"])
async def health_check(runtime_settings: RuntimeSettingsStore = Depends(get_runtime_settings)):
    components: dict = {}

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        components["database"] = {"status": "connected"}
    except Exception as exc:
        components["database"] = {"status": "disconnected", "error": str(exc)}

    runtime = runtime_settings.current()
    components["reasoning"] = {
        "status": "live" if runtime.use_live_backend else "fallback",
        "mode": settings.reasoning_mode,
        "model": settings.llm_model,
    }

    healthy = components["database"]["status"] == "connected"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "components": components},
    )
