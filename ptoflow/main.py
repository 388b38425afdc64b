from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import text
import time
import logging

from ptoflow.core.config import settings
from ptoflow.core.database import engine
from ptoflow.api.v1.router import api_router
from ptoflow.core.logging_config import setup_logging

setup_logging(settings.LOG_DIR)
logger = logging.getLogger(__name__)
access_logger = logging.getLogger("access")

IGNORED_LOCATIONS = ("body", "query", "path")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting PTOFlow API server...")
    # Schema is managed by Alembic; only check connectivity here
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info(
        f"PTOFlow API server started (timezone {settings.TIMEZONE}, "
        f"cancellation notice {settings.CANCELLATION_NOTICE_HOURS}h)"
    )
    yield
    logger.info("Shutting down PTOFlow API server...")
    await engine.dispose()


app = FastAPI(
    title="PTOFlow API",
    description="PTO requests, multi-level approvals and leave balance ledger",
    version="1.0.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """One access log line per request; unhandled exceptions go to the error log."""
    started = time.perf_counter()
    client = request.client.host if request.client else "unknown"

    try:
        response = await call_next(request)
    except Exception:
        logger.error(
            f"Unhandled exception in {request.method} {request.url.path}",
            exc_info=True,
            extra={
                "method": request.method,
                "path": str(request.url.path),
                "client": client,
                "duration": f"{time.perf_counter() - started:.3f}s",
            },
        )
        raise

    duration = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{duration:.3f}"
    access_logger.info(
        f"{request.method} {request.url.path} - Status: {response.status_code} - "
        f"Duration: {duration:.3f}s - Client: {client}"
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _field_path(loc) -> str:
    """``("body", "day_options", 0, "date")`` -> ``"day_options.0.date"``"""
    return ".".join(str(part) for part in loc if part not in IGNORED_LOCATIONS)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Schema errors in the same field/message form the services use."""
    errors = []
    for error in exc.errors():
        field = _field_path(error["loc"])
        if error["type"] == "missing":
            message = f"{field} is required"
        elif error["type"] == "value_error":
            message = f"{field}: {error['msg']}"
        else:
            message = error["msg"]
        errors.append({"field": field, "message": message, "type": error["type"]})

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "errors": errors,
            "message": "Please check your input and try again.",
        },
    )


app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
