"""
Provider Orders Service - FastAPI Application
Version: 1.0

Main entry point: wires the booking sources, the transition manager and
the orders router.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_settings
from services.logging_config import configure_logging, get_logger, set_trace_id

settings = get_settings()

# Configure structured logging before the service modules are imported
configure_logging(
    json_format=settings.is_production,
    log_level=settings.LOG_LEVEL,
    service=settings.APP_NAME,
    version=settings.APP_VERSION,
    environment=settings.APP_ENV
)

logger = get_logger(__name__)

from routers.orders import router as orders_router
from services.errors import OrdersError


def build_booking_service(app_settings):
    """Gateway -> circuit breaker -> adapters -> booking service."""
    from services.api_gateway import APIGateway
    from services.booking_service import BookingService
    from services.circuit_breaker import CircuitBreaker
    from services.source_adapters import build_adapters

    gateway = APIGateway(
        base_url=app_settings.ORDERS_API_URL,
        token=app_settings.ORDERS_API_TOKEN,
        timeout=app_settings.HTTP_TIMEOUT,
        max_retries=app_settings.HTTP_MAX_RETRIES
    )
    breaker = CircuitBreaker(
        failure_threshold=app_settings.CIRCUIT_FAILURE_THRESHOLD,
        open_duration_seconds=app_settings.CIRCUIT_OPEN_SECONDS
    )
    return gateway, BookingService(build_adapters(gateway, breaker))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager."""
    logger.info("Starting Provider Orders Service", version=settings.APP_VERSION)

    try:
        app.state.gateway, app.state.booking_service = build_booking_service(settings)
        logger.info("Booking sources ready", base_url=settings.ORDERS_API_URL)
    except Exception as e:
        logger.error(f"Service initialization failed: {e}")
        raise

    from services.metrics import set_app_info
    set_app_info(version=settings.APP_VERSION, environment=settings.APP_ENV)

    yield

    logger.info("Shutting down...")
    if getattr(app.state, 'gateway', None):
        await app.state.gateway.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Service provider orders: merged bookings, lifecycle and pricing",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def trace_id_middleware(request: Request, call_next):
    """Attach a trace ID to each request and time it."""
    from services.metrics import REQUEST_DURATION

    trace_id = request.headers.get("X-Trace-ID") or str(uuid.uuid4())[:8]
    set_trace_id(trace_id)
    started = time.perf_counter()

    logger.info("Request started", method=request.method, path=request.url.path)

    response = await call_next(request)
    response.headers["X-Trace-ID"] = trace_id

    route = request.scope.get("route")
    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=getattr(route, "path", "unmatched"),
        status_code=str(response.status_code)
    ).observe(time.perf_counter() - started)

    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code
    )
    return response


app.include_router(orders_router, prefix="/orders", tags=["orders"])


@app.get("/health/live")
async def liveness_check():
    """Liveness probe - the process is up. Does not touch the booking API."""
    return {"status": "alive"}


@app.get("/health")
async def health_check():
    """Readiness: both booking sources readable."""
    service = getattr(app.state, "booking_service", None)
    if service is None:
        return JSONResponse(status_code=503, content={"status": "not_ready"})

    merged = await service.load()
    checks = {
        "status": "degraded" if merged.partial else "ready",
        "version": settings.APP_VERSION,
        "bookings": len(merged.bookings),
        "failed_sources": [s.value for s in merged.failed_sources],
    }
    return JSONResponse(status_code=503 if merged.partial else 200, content=checks)


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    from services.metrics import get_metrics
    return get_metrics()


@app.exception_handler(OrdersError)
async def orders_error_handler(request: Request, exc: OrdersError):
    """Engine errors that escaped a route: reported, never fatal."""
    logger.warning(f"Unhandled orders error: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        workers=1
    )
