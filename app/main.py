import os
import subprocess
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pyairtable import Api
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config.logger import (
    app_logger,
    log_request_end,
    log_request_error,
    log_request_start,
    setup_logging,
)
from app.config.settings import Settings, get_settings
from app.db.airtable_db import AirtableStore
from app.api.descriptions.router import router as descriptions_router
from app.services.description_save import DescriptionSaveService
from app.services.gemini_gateway import GeminiGateway
from app.utils.responses import error_response


_git_sha_cache: Optional[str] = None

MISSING_ERROR_TYPES = {"missing", "string_too_short", "string_type", "none_required"}


def get_git_sha() -> str:
    """Get the current Git commit SHA (cached to avoid blocking)."""
    global _git_sha_cache
    if _git_sha_cache is not None:
        return _git_sha_cache

    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            timeout=1.0
        )
        _git_sha_cache = result.stdout.strip()[:8]
        return _git_sha_cache
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
        _git_sha_cache = "local-dev"
        return _git_sha_cache


def describe_validation_errors(errors: List[Dict[str, Any]]) -> str:
    """One-line summary of a request validation failure."""
    if any(e.get("type") == "json_invalid" for e in errors):
        return "Malformed JSON body."

    missing: List[str] = []
    unknown: List[str] = []
    invalid: List[str] = []
    for e in errors:
        loc = [str(part) for part in e.get("loc", ()) if part != "body"]
        name = ".".join(loc) or "body"
        if e.get("type") == "extra_forbidden":
            unknown.append(name)
        elif e.get("type") in MISSING_ERROR_TYPES:
            missing.append(name)
        else:
            invalid.append(name)

    parts = []
    if missing:
        parts.append(f"Missing required fields: {', '.join(missing)}")
    if unknown:
        parts.append(f"Unrecognized fields: {', '.join(unknown)}")
    if invalid:
        parts.append(f"Invalid fields: {', '.join(invalid)}")
    return "; ".join(parts) or "Invalid request body."


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    airtable_api: Optional[Api] = None,
) -> FastAPI:
    """Build the application.

    ``settings`` is handed to every service. ``transport`` replaces the
    network for the shared Gemini HTTP client and ``airtable_api`` replaces
    the Airtable client; both are used by the tests.
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)

    http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, transport=transport)
    store = AirtableStore(settings, airtable_api)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan context manager for startup and shutdown events."""
        app_logger.info(f"{settings.APP_NAME} starting up")
        if not settings.gemini_configured:
            app_logger.warning("GEMINI_API_KEY is not set; /generate will answer 500")
        if settings.airtable_configured:
            is_ok, message = await store.ping()
            if is_ok:
                app_logger.info(message)
            else:
                app_logger.warning(message)
        else:
            app_logger.warning("AIRTABLE_API_TOKEN / AIRTABLE_BASE_ID are not set; /save-description will answer 500")

        yield

        await http_client.aclose()
        store.close()
        app_logger.info(f"{settings.APP_NAME} shutdown complete")

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.store = store
    app.state.gemini_gateway = GeminiGateway(settings, http_client)
    app.state.description_service = DescriptionSaveService(settings, store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "User-Agent"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests with timing information."""
        start_time = datetime.now()
        log_request_start(request)

        try:
            response = await call_next(request)
            process_time = (datetime.now() - start_time).total_seconds()
            log_request_end(request, response.status_code, process_time)
            return response

        except Exception as e:
            process_time = (datetime.now() - start_time).total_seconds()
            log_request_error(request, e, process_time)
            raise

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, dict):
            body = error_response(exc.detail.get("error") or "Error", exc.detail.get("detail"))
        else:
            body = error_response(str(exc.detail))
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(mode="json"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ]
        message = describe_validation_errors(errors)
        app_logger.warning(f"Validation failed for {request.method} {request.url.path}: {message}")
        return JSONResponse(
            status_code=400,
            content=error_response(message, errors).model_dump(mode="json"),
        )

    @app.get("/", tags=["health"])
    async def root():
        """Root endpoint with basic API information."""
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "status": "operational",
            "docs": "/docs",
        }

    @app.get("/status", tags=["health"])
    async def status():
        """Status endpoint with build information for CI/CD monitoring."""
        build_number = os.getenv("BUILD_NUMBER", "local-dev")
        git_sha = os.getenv("GIT_SHA", os.getenv("GITHUB_SHA", get_git_sha()))
        environment = os.getenv("ENVIRONMENT", os.getenv("ENV", "development"))

        return {
            "status": "ok",
            "build": build_number,
            "sha": git_sha,
            "env": environment
        }

    @app.get("/health/store", tags=["health"])
    async def health_store():
        """Store health endpoint: lists one row of the Products table."""
        is_ok, message = await store.ping()
        if not is_ok:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "store": "unavailable", "message": message}
            )
        return {"status": "ok", "store": "available", "connection": "Airtable API", "message": message}

    app.include_router(descriptions_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    app_logger.info("Starting Product Description Backend server")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8000)),
        log_config=None
    )
