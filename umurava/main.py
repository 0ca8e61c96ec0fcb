"""
Application entry point.

Run locally:
    uvicorn umurava.main:app --reload --port 8000

In Docker:
    CMD ["uvicorn", "umurava.main:app", "--host", "0.0.0.0", "--port", "8000"]

API docs available at:
    http://localhost:8000/docs   (Swagger UI)
    http://localhost:8000/redoc  (ReDoc)
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from umurava.config import settings
from umurava.core.exceptions import InternalError
from umurava.core.rate_limiter import limiter
from umurava.routers import auth, users

logger = logging.getLogger(__name__)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    400 with one message per offending field, e.g.
    {"error": ["password: must be at least 8 characters ..."]}
    """
    messages = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"] if part != "body")
        msg = err["msg"].removeprefix("Value error, ")
        messages.append(f"{field}: {msg}" if field else msg)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": messages})


async def internal_error_handler(request: Request, exc: Exception):
    """
    Hashing, signing and store failures. Details go to the log only; the client
    never learns which step failed.
    """
    logger.error(f"Internal error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Umurava Platform API",
        description=(
            "Backend for the Umurava challenges platform: user accounts, "
            "OTP-gated login, and access/refresh token sessions."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Rate Limiter ──────────────────────────────────────────────────────────
    # Attach limiter to app state (required by slowapi)
    # Register the 429 handler so exceeded limits return proper JSON
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ── Error handling ────────────────────────────────────────────────────────
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(InternalError, internal_error_handler)
    app.add_exception_handler(SQLAlchemyError, internal_error_handler)

    # ── CORS ──────────────────────────────────────────────────────────────────
    # Credentials are allowed so the refresh cookie travels; the Authorization
    # response header is exposed so the frontend can pick up renewed access tokens.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Authorization"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    # Auth (public except the session-management endpoints)
    app.include_router(auth.router, prefix="/auth", tags=["Auth"])

    # User accounts
    app.include_router(users.router, prefix="/users", tags=["Users"])

    # ── Health Check ──────────────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Simple health check endpoint for load balancers and Docker health checks.
        Returns 200 if the application is running.
        """
        return {"status": "ok", "version": "1.0.0"}

    return app


app = create_app()
