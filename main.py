import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.admin_routes import router as admin_router
from app.core.config import settings
from app.core.logging_config import setup_logging
from app.core.rate_limit import limiter, rate_limit_handler
from app.dependencies import get_device_hasher, get_toxicity_scorer
from app.routes import router
from prometheus_fastapi_instrumentator import Instrumentator

setup_logging(settings.LOG_LEVEL, structured=settings.LOG_STRUCTURED, service_name=settings.SERVICE_NAME)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing secrets are fatal: refuse to start rather than hash guessably
    settings.validate_required()
    get_device_hasher()
    get_toxicity_scorer()
    logger.info("%s %s started (%s)", settings.SERVICE_NAME, settings.SERVICE_VERSION, settings.ENVIRONMENT)
    yield


app = FastAPI(
    title="Dining Reviews Service",
    description="Review intake with toxicity moderation, device bans and admin overrides",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api", tags=["reviews"])
app.include_router(admin_router, prefix="/api/admin/moderation", tags=["moderation"])

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/health", "/api/health"],
).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": settings.SERVICE_NAME}


@app.get("/")
async def root():
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "status": "running"
    }
