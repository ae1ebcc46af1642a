from tubely.modules.videos.models import Video
from tubely.modules.videos.schemas import VideoOut
from tubely.platform.ports.object_storage import ObjectStoragePort

class PresignedURLIssuer:
    """Turns durable (bucket, key) references into short-lived GET URLs.

    Called at response time only, so the stored reference never expires.
    Nothing persisted is touched here.
    """

    def __init__(self, storage: ObjectStoragePort, ttl_seconds: int):
        self.storage = storage
        self.ttl_seconds = ttl_seconds

    def issue(self, bucket: str, key: str, ttl_seconds: int | None = None) -> str:
        return self.storage.presign_download(bucket, key, ttl_seconds or self.ttl_seconds)

    def sign_video(self, video: Video) -> VideoOut:
        out = VideoOut(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description,
            thumbnail_url=video.thumbnail_url,
            created_at=video.created_at,
            updated_at=video.updated_at,
        )
        ref = video.storage_reference
        if ref is not None:
            out.video_url = self.issue(ref.bucket, ref.key)
        return out
