"""
FastAPI application entry point.

Wires the workflow and notification routers behind CORS, request logging and
the typed error handlers. Every failure leaves the process as
``{"ok": false, "error_code": ..., "detail": ...}``.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from routers import admin_applications, associate_applications, team_applications, evaluation_requests, notifications
from core.config import settings
from core.database import check_db_connection
from core.logging import log_fields, setup_logging
from core.exceptions import APIException, InternalError, ValidationError
import logging
import time
import uuid

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Athlete Hub Workflow API",
    description="Approval workflows (associate, team formation, physical evaluation) and notification delivery",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)


def _allowed_origins():
    # DEBUG allows everything; otherwise CORS_ORIGINS (comma-separated) or the local web app.
    if settings.DEBUG:
        return ["*"]
    if settings.CORS_ORIGINS:
        return [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
    return ["http://localhost:3000", "http://127.0.0.1:3000"]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with timing and a request id echoed back to the client."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.error(
            f"Request failed: {request.method} {request.url.path}",
            exc_info=True,
            extra=log_fields(request_id=request_id, method=request.method, path=request.url.path),
        )
        raise

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} - {response.status_code}",
        extra=log_fields(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time_ms=elapsed_ms,
        ),
    )
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(elapsed_ms)
    return response


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    fields = log_fields(method=request.method, path=request.url.path, error_code=exc.error_code)
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.detail}", extra=fields)
    else:
        logger.warning(f"{exc.error_code}: {exc.detail}", extra=fields)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and params share the VALIDATION_ERROR shape."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid input")
    error = ValidationError(f"{field}: {message}" if field else message)
    return await api_exception_handler(request, error)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra=log_fields(method=request.method, path=request.url.path),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=InternalError().to_dict(),
    )


@app.get("/health")
async def health():
    """
    Health check for load balancers.

    Returns 200 while the database answers, 503 otherwise.
    """
    if not check_db_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "timestamp": time.time()}


app.include_router(admin_applications.router)
app.include_router(associate_applications.router)
app.include_router(team_applications.router)
app.include_router(team_applications.guide_router)
app.include_router(evaluation_requests.router)
app.include_router(evaluation_requests.guide_router)
app.include_router(notifications.router)


def serve():
    """Run the API under uvicorn on API_HOST:API_PORT."""
    import uvicorn

    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT, log_config=None)


if __name__ == "__main__":
    serve()
