"""FastAPI application entry point."""

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from payroll_api.config import settings
from payroll_api.database import close_database, get_database
from payroll_api.errors import ApiError, StoreError, ValidationFailed, store_error_response
from payroll_api.logging_config import configure_logging
from payroll_api.routers import departments, employees, stats
from payroll_api.schemas import ApiInfoResponse, FieldError, HealthResponse
from payroll_api.validators import field_errors

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("payroll_api.access")

API_NAME = "Manila Payroll API"
NOT_FOUND_PAGE = "404 Page Not Found..!"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "X-XSS-Protection": "0",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize logging and the database pool on startup, close the pool on shutdown."""
    configure_logging(settings)
    database = await run_in_threadpool(get_database)
    await run_in_threadpool(database.check_connection)
    logger.info("%s %s ready", API_NAME, settings.APP_VERSION)
    yield
    await run_in_threadpool(close_database)


app = FastAPI(
    title=API_NAME,
    description="Employee and department management for the Manila payroll system.",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)


# --- Error Translation ---

def is_api_request(request: Request) -> bool:
    path = request.url.path
    return path == "/api" or path.startswith("/api/")


def error_response(
    request: Request,
    status_code: int,
    message: str,
    details: Optional[list[FieldError]] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """JSON envelope for API paths, a plain message for everything else."""
    if is_api_request(request):
        content = {"success": False, "error": message}
        if details:
            content["details"] = [detail.model_dump() for detail in details]
    else:
        content = {"message": NOT_FOUND_PAGE if status_code == 404 else message}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    details = exc.errors if isinstance(exc, ValidationFailed) else None
    return error_response(request, exc.status_code, exc.message, details)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    status_code, message = store_error_response(exc)
    logger.error(
        "Store error on %s %s [%s]: %s",
        request.method,
        request.url.path,
        exc.kind.value,
        exc.message,
        exc_info=exc,
    )
    return error_response(request, status_code, message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(request, 400, "Validation failed", field_errors(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(request, exc.status_code, message, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, "Internal server error")


# --- Middleware (registered innermost first) ---

@app.middleware("http")
async def limit_body_size(request: Request, call_next):
    # Chunked bodies are measured again in read_payload
    length = request.headers.get("content-length", "")
    if length.isdigit() and int(length) > settings.MAX_BODY_SIZE:
        return error_response(request, 413, "Request entity too large")
    return await call_next(request)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start_time) * 1000

    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    access_logger.info(
        '%s "%s %s HTTP/%s" %d %s %.1fms "%s" "%s"',
        request.client.host if request.client else "-",
        request.method,
        target,
        request.scope.get("http_version", "1.1"),
        response.status_code,
        response.headers.get("content-length", "-"),
        duration_ms,
        request.headers.get("referer", "-"),
        request.headers.get("user-agent", "-"),
    )
    return response


app.add_middleware(GZipMiddleware, minimum_size=1000)

# Only the configured front end may send credentialed requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
)


# --- Static Assets ---

if os.path.isdir(settings.STATIC_DIR):
    app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")


# --- Health Check ---

@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Health Check",
    description="Check if the API is running.",
)
async def health_check():
    return HealthResponse(
        success=True,
        message=f"{API_NAME} is running",
        timestamp=datetime.now(UTC),
        version=settings.APP_VERSION,
    )


@app.get("/api", response_model=ApiInfoResponse, tags=["Health"], summary="API Info")
async def api_info():
    return ApiInfoResponse(
        message=API_NAME,
        version=settings.APP_VERSION,
        endpoints={
            "health": "/health",
            "employees": "/api/employees",
            "departments": "/api/departments",
            "stats": "/api/stats",
        },
    )


app.include_router(employees.router)
app.include_router(departments.router)
app.include_router(stats.router)


def run() -> None:
    """Serve the API with uvicorn on the configured port."""
    uvicorn.run("payroll_api.main:app", host=settings.HOST, port=settings.PORT, server_header=False)


if __name__ == "__main__":
    run()
