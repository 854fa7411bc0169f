from contextlib import asynccontextmanager

from fastapi import FastAPI

from odds_engine.api.v1.router import api_router
from odds_engine.config import settings
from odds_engine.database import AsyncSessionLocal
from odds_engine.services.policy_service import ensure_default_policy


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with AsyncSessionLocal() as session:
        await ensure_default_policy(session)
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.include_router(api_router, prefix="/api/v1")
