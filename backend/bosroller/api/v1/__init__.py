from fastapi import APIRouter
from .auth import router as auth_router
from .projects import router as projects_router
from .team import router as team_router
from .video_analyses import router as video_analyses_router
from .system import router as system_router

api_router = APIRouter()
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(projects_router, prefix="/projects", tags=["projects"])
api_router.include_router(team_router, prefix="/team", tags=["team"])
api_router.include_router(video_analyses_router, prefix="/video-analyses", tags=["video-analyses"])
api_router.include_router(system_router, prefix="/system", tags=["system"])
