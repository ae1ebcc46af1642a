import uuid
from datetime import datetime
from pydantic import BaseModel, Field

class VideoCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None

class VideoOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str | None
    thumbnail_url: str | None
    # presigned, time-limited; never the stored bucket/key
    video_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
