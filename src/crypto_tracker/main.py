"""Main module for the crypto tracker service."""
import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from crypto_tracker.container import Container, init_container
from crypto_tracker.db.sessions import init_db
from crypto_tracker.routers import (alerts_router, crypto_router,
                                    portfolio_router, users_router)

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup for the server process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Create tables and start the alert scheduler; release resources on shutdown."""
    container: Container = fastapi_app.state.container
    settings = container.settings()

    await asyncio.to_thread(init_db, container.engine())

    scheduler = None
    if settings.alerts_scheduler_enabled:
        scheduler = container.alert_scheduler()
        scheduler.start()
    else:
        logger.info("Alert scheduler disabled")

    yield

    if scheduler is not None:
        await scheduler.stop()
    await container.throttled_cache().aclose()

    # Close HTTP clients
    for resource in (container.gateway(), container.identity_provider()):
        try:
            await resource.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error closing %s: %s", type(resource).__name__, exc)


def create_app(container: Container | None = None) -> FastAPI:
    """Build the FastAPI app around a wired container."""
    if container is None:
        container = init_container()
    else:
        container.wire()

    fastapi_app = FastAPI(
        title="Crypto Tracker",
        description="Crypto market data with throttled upstream access and price alerts",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.container = container

    fastapi_app.include_router(crypto_router)
    fastapi_app.include_router(alerts_router)
    fastapi_app.include_router(portfolio_router)
    fastapi_app.include_router(users_router)

    @fastapi_app.get("/")
    def health():
        """Return health check status."""
        return {"status": "ok"}

    return fastapi_app


app = create_app()


def run():
    """Run the server (uvicorn). Use for `poetry run start`."""
    configure_logging(app.state.container.settings().log_level)
    uvicorn.run("crypto_tracker.main:app", host="127.0.0.1", port=8001)
