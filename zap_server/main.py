# zap_server/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from zap_server.routers import execute, health, runs, webhooks, zaps
from zapflow import conf

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    from zap_server.db.engine import get_engine
    from zap_server.services.scheduler import start_trigger_monitoring, stop_trigger_monitoring

    # Startup
    get_engine()
    if conf.SCHEDULER_ENABLED:
        start_trigger_monitoring()
    else:
        logger.info("Trigger monitoring disabled (SCHEDULER_ENABLED=false)")

    logger.info("Zap server started")

    yield

    # Shutdown
    stop_trigger_monitoring()


app = FastAPI(
    title="Zapflow API",
    description="Trigger monitoring and zap execution",
    version="0.1.0",
    lifespan=lifespan,
)

# Register routers
app.include_router(health.router, tags=["health"])
app.include_router(webhooks.router, tags=["webhooks"])
app.include_router(execute.router, tags=["execute"])
app.include_router(zaps.router, prefix="/api/v1", tags=["zaps"])
app.include_router(runs.router, prefix="/api/v1", tags=["runs"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=conf.HOST, port=conf.PORT)
