from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.admin import router as admin_router
from app.api.certificates import router as certificates_router
from app.api.courses import router as courses_router
from app.api.errors import register_exception_handlers
from app.api.health import router as health_router
from app.api.lessons import router as lessons_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.modules import router as modules_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import lifespan_db
from app.db.redis import lifespan_redis
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Torn down in reverse order: Redis first, then the database engine.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="course-progress-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last-added runs first: RequestContext (outermost) -> Metrics -> route handler.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(courses_router)
app.include_router(lessons_router)
app.include_router(modules_router)
app.include_router(certificates_router)
app.include_router(admin_router)

logger.info(
    "course-progress-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
