"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from app.api import health, captions, media, prompts, tasks, datasets, requirements

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(captions.router, prefix="/captions", tags=["captions"])
api_router.include_router(media.router, prefix="/media", tags=["media"])
api_router.include_router(prompts.router, prefix="/prompts", tags=["prompts"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(datasets.router, prefix="/datasets", tags=["datasets"])
api_router.include_router(requirements.router, prefix="/requirements", tags=["requirements"])
