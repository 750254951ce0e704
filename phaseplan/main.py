import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from phaseplan.api.phases import router as phases_router
from phaseplan.core.logger import configure_from_settings
from phaseplan.db.models import Base
from phaseplan.db.session import get_engine


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Create tables on startup.

    Note: FastAPI requires async for lifespan context manager,
    even if no await operations are used.
    """
    logger.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=get_engine())
    await asyncio.sleep(0)
    yield
    logger.info("Phase planner shutting down")


def create_app() -> FastAPI:
    configure_from_settings()
    application = FastAPI(title="Phase Planner", lifespan=lifespan)
    application.include_router(phases_router)

    @application.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
