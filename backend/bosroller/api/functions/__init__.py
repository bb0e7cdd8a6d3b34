from fastapi import APIRouter
from .analyze_video import router as analyze_video_router
from .receive_analysis import router as receive_analysis_router
from .ask_about_video import router as ask_about_video_router

functions_router = APIRouter()
functions_router.include_router(analyze_video_router, tags=["functions"])
functions_router.include_router(receive_analysis_router, tags=["functions"])
functions_router.include_router(ask_about_video_router, tags=["functions"])
