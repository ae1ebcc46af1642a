import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from tubely.core.config import Settings, get_settings
from tubely.core.db import get_session
from tubely.core.security import get_current_user_id
from tubely.media.presign import PresignedURLIssuer
from tubely.modules.videos.schemas import VideoCreate, VideoOut
from tubely.modules.videos.service import VideoService, video_id_path
from tubely.platform.provider_registry import ProviderRegistry, get_registry

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> VideoService:
    return VideoService(session)

def issuer(registry: ProviderRegistry = Depends(get_registry), settings: Settings = Depends(get_settings)) -> PresignedURLIssuer:
    return PresignedURLIssuer(registry.object_storage(), settings.PRESIGN_TTL_SECONDS)

@router.post("", response_model=VideoOut, status_code=201)
async def create_video(
    payload: VideoCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: VideoService = Depends(svc),
    signer: PresignedURLIssuer = Depends(issuer),
):
    obj = await service.create(user_id, payload)
    return signer.sign_video(obj)

@router.get("", response_model=list[VideoOut])
async def list_videos(
    limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0),
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: VideoService = Depends(svc),
    signer: PresignedURLIssuer = Depends(issuer),
):
    return [signer.sign_video(v) for v in await service.list(user_id, limit, offset)]

@router.get("/{video_id}", response_model=VideoOut)
async def get_video(
    video_id: uuid.UUID = Depends(video_id_path),
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: VideoService = Depends(svc),
    signer: PresignedURLIssuer = Depends(issuer),
):
    obj = await service.get_owned(video_id, user_id)
    return signer.sign_video(obj)
