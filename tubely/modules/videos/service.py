import logging
import uuid
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tubely.core.errors import BadRequestError, ForbiddenError, PersistenceError, VideoLookupError, VideoNotFoundError
from tubely.modules.videos.models import Video
from tubely.modules.videos.repository import VideoRepository
from tubely.modules.videos.schemas import VideoCreate

log = logging.getLogger(__name__)

def parse_video_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError as e:
        raise BadRequestError("Invalid ID") from e

def video_id_path(video_id: str) -> uuid.UUID:
    """Path dependency; list it before auth so a malformed id is a 400 even without a token."""
    return parse_video_id(video_id)

class VideoService:
    def __init__(self, session: AsyncSession):
        self.repo = VideoRepository(session)
        self.session = session

    async def create(self, user_id: uuid.UUID, payload: VideoCreate) -> Video:
        try:
            obj = await self.repo.create(user_id, **payload.model_dump(exclude_unset=True))
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(f"couldn't create video: {e}") from e
        return obj

    async def get_owned(self, video_id: uuid.UUID, user_id: uuid.UUID) -> Video:
        try:
            video = await self.repo.get(video_id)
        except SQLAlchemyError as e:
            raise VideoLookupError(f"lookup of video {video_id} failed: {e}") from e
        if video is None:
            raise VideoNotFoundError("Couldn't find video")
        if video.user_id != user_id:
            raise ForbiddenError("Insufficient rights to video")
        return video

    async def list(self, user_id: uuid.UUID, limit: int = 50, offset: int = 0):
        try:
            return await self.repo.list_for_user(user_id, limit, offset)
        except SQLAlchemyError as e:
            raise VideoLookupError(f"listing videos for {user_id} failed: {e}") from e

    async def save(self, video: Video) -> Video:
        try:
            obj = await self.repo.update(video)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(f"couldn't update video {video.id}: {e}") from e
        return obj
