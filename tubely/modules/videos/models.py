import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text
from tubely.core.base import Base, TimestampedMixin
from tubely.media.references import StorageReference

class Video(Base, TimestampedMixin):
    user_id: Mapped[uuid.UUID] = mapped_column(index=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    # durable reference to the uploaded video; presigned on every read
    video_bucket: Mapped[str | None] = mapped_column(String(255), nullable=True)
    video_key: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    # "<bucket>,<key>" written by older revisions, read-only now
    video_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    @property
    def storage_reference(self) -> StorageReference | None:
        if self.video_bucket and self.video_key:
            return StorageReference(bucket=self.video_bucket, key=self.video_key)
        if self.video_url:
            return StorageReference.decode(self.video_url)
        return None

    def set_storage_reference(self, ref: StorageReference) -> None:
        self.video_bucket = ref.bucket
        self.video_key = ref.key
        self.video_url = None
