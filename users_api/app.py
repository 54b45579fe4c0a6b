import logging
import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from users_api.core.config import Settings, get_settings
from users_api.core.logging_setup import configure_logging
from users_api.repositories.json_storage import JsonUserStorage, StorageError
from users_api.routers import users as users_router
from users_api.services.user_service import UserService

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration for every request."""

    async def dispatch(self, request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return errors


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API; compatible with ``uvicorn --factory``."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title="Users API")
    app.state.settings = settings
    app.state.user_service = UserService(JsonUserStorage(settings.data_file))

    allowed_cors = settings.allowed_origins()
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_cors,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"error": "Validation failed", "errors": _validation_errors(exc)},
            status_code=400,
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        body = {"error": "Storage failure"}
        if not settings.is_prod:
            body["detail"] = str(exc)
        return JSONResponse(body, status_code=500)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        body = {"error": "Something went wrong!"}
        if not settings.is_prod:
            body["detail"] = repr(exc)
        return JSONResponse(body, status_code=500)

    @app.get("/")
    def root():
        return {"status": "API is running"}

    @app.get("/health")
    def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    app.include_router(users_router.router)
    logger.info("Users API ready (env=%s, data_file=%s)", settings.app_env, settings.data_file)
    return app
