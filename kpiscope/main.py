from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from kpiscope.core.config import settings
from kpiscope.core.exceptions import ExecutionError, QueryCancelledError, QueryValidationError
from kpiscope.core.logging import configure_logging, get_logger
from kpiscope.core.middleware import LoggingMiddleware, RequestIDMiddleware
from kpiscope.api.v1 import kpis, metrics


# Configure logging first
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events.
    Runs on startup and shutdown.
    """
    logger.info(
        "api_started",
        app_env=settings.app_env,
        kpi_api_url=settings.kpi_api_url,
    )

    yield

    logger.info("api_shutdown_complete")


app = FastAPI(
    title="KPI Scope API",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan
)


# Add middleware (last added runs first)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.app_env == "development" else [settings.app_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(kpis.router, prefix="/api/v1")
app.include_router(metrics.router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint.
    The remote KPI API is not contacted; it is outside our control.
    """
    return {
        "status": "healthy",
        "kpi_api_url": settings.kpi_api_url,
    }


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle request validation errors (422).
    Returns errors in the standard error envelope.
    """
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=errors
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": errors
            }
        }
    )


@app.exception_handler(QueryValidationError)
async def query_validation_exception_handler(request: Request, exc: QueryValidationError):
    """
    Handle KPI query validation errors (422).
    Only the first failing rule is reported.
    """
    logger.warning(
        "query_validation_error",
        path=request.url.path,
        field=exc.field,
        reason=exc.message
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": exc.message,
                "details": [{"field": exc.field, "message": exc.message}]
            }
        }
    )


@app.exception_handler(ExecutionError)
async def execution_exception_handler(request: Request, exc: ExecutionError):
    """
    Handle remote KPI API failures (502).
    Upstream status and body are passed through for debugging.
    """
    logger.warning(
        "upstream_error",
        path=request.url.path,
        upstream_status=exc.status,
        reason=exc.message
    )

    code = "UPSTREAM_CANCELLED" if isinstance(exc, QueryCancelledError) else "UPSTREAM_ERROR"
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "error": {
                "code": code,
                "message": exc.message,
                "upstream_status": exc.status,
                "upstream_body": exc.body
            }
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle all unhandled exceptions.
    Logs full traceback and returns 500 error.
    """
    request_id = structlog.contextvars.get_contextvars().get("request_id", "unknown")

    logger.error(
        "unhandled_exception",
        exc_info=exc,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred",
                "request_id": request_id
            }
        }
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "KPI Scope API",
        "version": "1.0.0",
        "status": "running"
    }
