"""What-if glucose forecasting FastAPI application."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from whatif.config import settings
from whatif.core.forecasting.errors import (
    ForecastError,
    ForecastErrorKind,
    ModelInvocationError,
)
from whatif.core.forecasting.tables import get_forecast_tables
from whatif.database import close_database
from whatif.logging_config import get_logger, setup_logging
from whatif.middleware import CorrelationIdMiddleware
from whatif.routers import health, patients, predict

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the forecast tables before serving; a bad registry aborts startup."""
    tables = get_forecast_tables()
    logger.info(
        "What-if API started",
        features=len(tables.registry.schema),
        encoder_length=tables.encoder_length,
        horizon=tables.horizon,
    )

    yield

    logger.info("Shutting down what-if API...")
    await close_database()
    logger.info("What-if API shutdown complete")


app = FastAPI(
    title="Hospital What-If API",
    description="Experimental glucose forecasting under simulated treatments",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware (order matters: first added = last executed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(ForecastError)
async def forecast_error_handler(request: Request, exc: ForecastError) -> JSONResponse:
    fields: dict[str, Any] = {"kind": exc.kind.value, "path": request.url.path}
    if isinstance(exc, ModelInvocationError):
        fields["timed_out"] = exc.timed_out
    logger.warning(f"Forecast request failed: {exc.message}", **fields)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "kind": ForecastErrorKind.validation_error.value,
                "message": problems or "Invalid request",
            }
        },
    )


app.include_router(health.router)
app.include_router(predict.router)
app.include_router(patients.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "Hospital What-If API",
        "version": "0.1.0",
        "docs": "/docs",
    }
