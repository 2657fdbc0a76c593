import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cleansteps.config import settings
from cleansteps.db import create_tables
from cleansteps.recovery.router import router as recovery_router

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.create_tables_on_startup:
        await create_tables()
        logger.info("Database tables ensured")
    yield


app = FastAPI(title="CleanSteps", version="0.1.0", lifespan=lifespan)
app.include_router(recovery_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "recovery": {
            "substances": "/recovery/substances",
            "milestone_presets": "/recovery/milestones/presets",
            "addictions": "/recovery/addictions",
            "addiction_detail": "/recovery/addictions/{id}",
            "reset": "/recovery/addictions/{id}/reset",
            "savings": "/recovery/addictions/{id}/savings",
            "milestones": "/recovery/addictions/{id}/milestones",
            "milestone_detail": "/recovery/milestones/{id}",
            "goals": "/recovery/milestones/{id}/goals",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
