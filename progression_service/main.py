import time
import logging
import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .infrastructure.db import engine, Base
from .infrastructure import models  # noqa: F401  registers tables on Base
from .infrastructure.metrics import (
    metrics_endpoint,
    http_requests_total,
    http_request_duration_seconds
)
from .domain.errors import ConcurrentUpdateError, NotFound, Unauthorized, ValidationFailure
from .interfaces.http.routers import access as access_router
from .interfaces.http.routers import assessments as assessments_router
from .interfaces.http.routers import catalog as catalog_router
from .interfaces.http.routers import certificates as certificates_router
from .interfaces.http.routers import progress as progress_router
from .config import settings

log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(log_level),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

app = FastAPI(title="Progression Service", version="0.1.0")


@app.middleware("http")
async def observe_requests(request: Request, call_next):
    start_time = time.time()
    method = request.method
    response = await call_next(request)
    route = request.scope.get("route")
    path = getattr(route, "path", request.url.path)

    if response.headers.get("content-type", "").startswith("application/json"):
        response.headers["content-type"] = "application/json; charset=utf-8"

    duration = time.time() - start_time
    status_code = response.status_code
    http_requests_total.labels(method=method, endpoint=path, status=status_code).inc()
    http_request_duration_seconds.labels(method=method, endpoint=path).observe(duration)

    logger.info(
        "http_request",
        method=method,
        path=request.url.path,
        status_code=status_code,
        duration_ms=round(duration * 1000, 2)
    )

    return response


@app.exception_handler(Unauthorized)
async def unauthorized_handler(request: Request, exc: Unauthorized):
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": exc.message})


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": exc.message})


@app.exception_handler(ConcurrentUpdateError)
async def conflict_handler(request: Request, exc: ConcurrentUpdateError):
    logger.error("progress_save_gave_up", user_id=exc.user_id, course_id=exc.course_id)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Progress was updated by another request, please retry"},
    )


@app.on_event("startup")
def on_startup():
    logger.info("Starting progression service", version="0.1.0")
    Base.metadata.create_all(bind=engine)

    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("Database connection established")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint"""
    return metrics_endpoint()


app.include_router(access_router.router)
app.include_router(assessments_router.router)
app.include_router(progress_router.router)
app.include_router(certificates_router.router)
app.include_router(catalog_router.router)
