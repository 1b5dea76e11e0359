"""V1 API router aggregation."""
from fastapi import APIRouter

from vidsphere.api.v1.endpoints import auth, users, engagement, videos, articles, realtime

api_router = APIRouter(prefix="/v1")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(engagement.router)
api_router.include_router(videos.router)
api_router.include_router(articles.router)
api_router.include_router(realtime.router)
