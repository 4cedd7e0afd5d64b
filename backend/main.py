"""
Rex360 Solutions — FastAPI Application

Public site API for a business-registration agency: news posts, hero
slides, service catalog, application intake/tracking, Paystack checkout and
webhooks, and the admin surface behind a single allow-listed account.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from deps import build_services
from domain.responses import error_response
from middleware.rate_limit import api_rate_limit
from routes import admin, agent, applications, catalog, health, payments, posts, slides, uploads

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings, create tables, build service clients."""
    # Ensure data/ directory exists for SQLite
    os.makedirs("data", exist_ok=True)

    settings.validate_production_settings()

    from database import init_db
    await init_db()
    logger.info("Database initialized")

    app.state.services = build_services(settings)
    logger.info(f"Server ready on port {settings.port} ({settings.environment})")

    yield  # app runs here

    from services.async_executor import shutdown_executor
    shutdown_executor()

    from database import engine
    await engine.dispose()
    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="Rex360 Solutions API",
    description="Business registration: content, applications, payments and admin",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS: explicit allow-list plus wildcard subdomain patterns
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Resource-Policy": "same-site",
    "X-DNS-Prefetch-Control": "off",
}


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


# ── Routes ──────────────────────────────────────────────────────────

_limited = [Depends(api_rate_limit)]

app.include_router(health.router)
app.include_router(posts.router, dependencies=_limited)
app.include_router(slides.router, dependencies=_limited)
app.include_router(catalog.router, dependencies=_limited)
app.include_router(applications.router, dependencies=_limited)
app.include_router(uploads.router, dependencies=_limited)
app.include_router(agent.router, dependencies=_limited)
app.include_router(admin.router, dependencies=_limited)
# Webhook deliveries are never throttled; /initialize carries its own limit
app.include_router(payments.router)


# ── Exception Handlers ──────────────────────────────────────────────


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all for unhandled exceptions.

    Never return raw exception details to clients; the full traceback is
    logged server-side.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response("internal_server_error", "Internal server error"),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing request fields are a 400, not FastAPI's default 422."""
    errors = [
        {"field": ".".join(str(p) for p in e.get("loc", ()) if p != "body"), "message": e.get("msg")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_response("validation", "Invalid request", {"errors": errors}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Standardize HTTP errors (including unknown routes) into the error envelope.

    Keeps the original HTTP status code, but wraps the payload.
    """
    headers = getattr(exc, "headers", None)

    # DomainError carries structured error info
    if hasattr(exc, "message") and hasattr(exc, "details"):
        error_code = exc.__class__.__name__.replace("Error", "").lower()
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(error_code, exc.message, exc.details or None),
            headers=headers,
        )

    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    code = "not_found" if exc.status_code == 404 else "http_error"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(code, message, detail if not isinstance(detail, str) else None),
        headers=headers,
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level="info")
