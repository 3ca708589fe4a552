"""
Kilo Thrift — FastAPI Application

Order storage, Stripe / Paystack checkout, provider webhooks and the admin
order console for the pay-by-weight thrift storefront.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from domain.errors import DomainError
from domain.responses import error_response
from routes import admin, health, orders, payments, webhooks

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings, create DB tables. Shutdown: stop executor."""
    # Ensure data/ directory exists for SQLite
    if settings.database_url.startswith("sqlite:///./"):
        os.makedirs("data", exist_ok=True)

    settings.validate_production_settings()

    from database import init_db
    await init_db()
    logger.info("Database initialized")

    yield  # app runs here

    from services.async_executor import shutdown_executor
    shutdown_executor()

    from database import dispose_db
    await dispose_db()

    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="Kilo Thrift API",
    description="Orders, checkout and payment reconciliation for a pay-by-weight thrift store",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(webhooks.router)
app.include_router(admin.router)


# ── Exception Handlers ──────────────────────────────────────────────


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions.

    Never return raw exception details to clients; the traceback is logged.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response("internal_server_error", "Internal server error"),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """
    Standardize HTTPException responses for storefront consumers.

    Keeps the original HTTP status code (and headers), but wraps the payload.
    """
    if isinstance(exc, DomainError):
        content = error_response(exc.code, exc.message, exc.details or None)
    else:
        detail = exc.detail
        message = detail if isinstance(detail, str) else "Request failed"
        content = error_response(
            "http_error",
            message,
            detail if not isinstance(detail, str) else None,
        )
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Request body / query validation failures (422) in the standard envelope."""
    return JSONResponse(
        status_code=422,
        content=error_response(
            "validation_error",
            "Invalid request",
            {"errors": [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg")}
                for e in exc.errors()
            ]},
        ),
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
