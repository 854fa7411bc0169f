from fastapi import APIRouter

from odds_engine.api.v1.policies import router as policies_router
from odds_engine.api.v1.quotes import router as quotes_router
from odds_engine.api.v1.system import router as system_router
from odds_engine.api.v1.volumes import router as volumes_router
from odds_engine.api.v1.wagers import router as wagers_router

api_router = APIRouter()
api_router.include_router(quotes_router)
api_router.include_router(wagers_router)
api_router.include_router(policies_router)
api_router.include_router(volumes_router)
api_router.include_router(system_router)
