import uuid
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from tubely.modules.videos.models import Video

class VideoRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user_id: uuid.UUID, **data) -> Video:
        obj = Video(user_id=user_id, **data)
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    async def get(self, video_id: uuid.UUID) -> Video | None:
        return await self.session.get(Video, video_id)

    async def list_for_user(self, user_id: uuid.UUID, limit: int = 50, offset: int = 0) -> Sequence[Video]:
        q = select(Video).where(Video.user_id == user_id).order_by(Video.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def update(self, video: Video) -> Video:
        self.session.add(video)
        await self.session.flush()
        await self.session.refresh(video)
        return video
