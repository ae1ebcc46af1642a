from fastapi import APIRouter
from tubely.modules.videos.router import router as videos_router
from tubely.modules.uploads.router import router as uploads_router

api_router = APIRouter()
api_router.include_router(videos_router, prefix="/videos", tags=["videos"])
api_router.include_router(uploads_router, tags=["uploads"])
