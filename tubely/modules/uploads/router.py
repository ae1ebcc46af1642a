import uuid
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from tubely.core.config import Settings, get_settings
from tubely.core.db import get_session
from tubely.core.security import get_current_user_id
from tubely.modules.uploads.service import UploadService
from tubely.modules.videos.schemas import VideoOut
from tubely.modules.videos.service import VideoService, video_id_path
from tubely.platform.provider_registry import ProviderRegistry, get_registry

router = APIRouter()

def svc(
    session: AsyncSession = Depends(get_session),
    registry: ProviderRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
) -> UploadService:
    return UploadService(VideoService(session), registry, settings)

# the multipart body is parsed by the service after the ownership check, so no File() params here

@router.post("/video_upload/{video_id}", response_model=VideoOut)
async def upload_video(
    request: Request,
    video_id: uuid.UUID = Depends(video_id_path),
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: UploadService = Depends(svc),
):
    return await service.upload_video(video_id, user_id, request)

@router.post("/thumbnail_upload/{video_id}", response_model=VideoOut)
async def upload_thumbnail(
    request: Request,
    video_id: uuid.UUID = Depends(video_id_path),
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: UploadService = Depends(svc),
):
    return await service.upload_thumbnail(video_id, user_id, request)
