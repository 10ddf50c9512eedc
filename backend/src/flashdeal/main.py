import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flashdeal.api.deps import build_flash_deal_service
from flashdeal.api.v1 import flash_deals
from flashdeal.core.config import settings
from flashdeal.core.database import get_db
from flashdeal.core.redis import close_redis, get_redis
from flashdeal.middleware.metrics import PrometheusMiddleware, metrics_endpoint
from flashdeal.services.errors import FlashDealError
from flashdeal.services.redis_service import RedisService

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Background task control
_deal_clock_task: asyncio.Task | None = None


async def deal_clock_loop():
    """Background task driving time-based transitions.

    Activates scheduled deals whose window opened and ends active or paused
    deals whose window closed, using the same lifecycle primitives as the API.
    """
    while True:
        try:
            async for db in get_db():
                redis = await get_redis()
                service = build_flash_deal_service(db, RedisService(redis))
                result = await service.advance_clock()
                if result.activated or result.ended or result.failed:
                    logger.info(
                        f"Deal clock: activated {len(result.activated)}, "
                        f"ended {len(result.ended)}, failed {len(result.failed)}"
                    )
                break  # Only run once per iteration

            await asyncio.sleep(settings.DEAL_CLOCK_INTERVAL_SECONDS)

        except asyncio.CancelledError:
            logger.info("Deal clock loop cancelled")
            break
        except Exception as e:
            logger.error(f"Error in deal clock loop: {e}")
            await asyncio.sleep(settings.DEAL_CLOCK_INTERVAL_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    global _deal_clock_task

    logger.info("Starting application...")
    if settings.DEAL_CLOCK_ENABLED:
        logger.info("Starting deal clock...")
        _deal_clock_task = asyncio.create_task(deal_clock_loop())

    yield

    logger.info("Stopping background tasks")
    if _deal_clock_task:
        _deal_clock_task.cancel()
        try:
            await _deal_clock_task
        except asyncio.CancelledError:
            pass
        _deal_clock_task = None

    await close_redis()


app = FastAPI(
    title="Flash Deal Engine",
    version="1.0.0",
    description="Flash deal scheduling and inventory reservation",
    lifespan=lifespan,
)

# Prometheus Metrics Middleware (must be first to capture all requests)
app.add_middleware(PrometheusMiddleware)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FlashDealError)
async def flash_deal_error_handler(request: Request, exc: FlashDealError) -> JSONResponse:
    """Map engine errors to JSON bodies with a stable error code."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message, **exc.context()},
    )


# Include API routers
app.include_router(flash_deals.router, prefix="/api/v1/flash-deals", tags=["flash-deals"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Prometheus metrics endpoint
app.add_route("/metrics", metrics_endpoint)
