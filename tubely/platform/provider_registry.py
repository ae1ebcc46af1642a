from fastapi import Request
from tubely.core.config import Settings
from tubely.platform.ports.object_storage import ObjectStoragePort
from tubely.platform.ports.media_tool import MediaToolPort
from tubely.platform.adapters.storage_s3 import S3Storage
from tubely.platform.adapters.storage_local import LocalAssetStore
from tubely.platform.adapters.media_ffmpeg import FfmpegMediaTool

class ProviderRegistry:
    def __init__(
        self,
        settings: Settings,
        *,
        object_storage: ObjectStoragePort | None = None,
        media_tool: MediaToolPort | None = None,
        asset_store: LocalAssetStore | None = None,
    ):
        self.settings = settings
        self._object_storage = object_storage
        self._media_tool = media_tool
        self._asset_store = asset_store

    def object_storage(self) -> ObjectStoragePort:
        if self._object_storage is None:
            self._object_storage = S3Storage(self.settings)
        return self._object_storage

    def media_tool(self) -> MediaToolPort:
        if self._media_tool is None:
            self._media_tool = FfmpegMediaTool(self.settings.FFPROBE_PATH, self.settings.FFMPEG_PATH)
        return self._media_tool

    def asset_store(self) -> LocalAssetStore:
        if self._asset_store is None:
            self._asset_store = LocalAssetStore(self.settings)
        return self._asset_store

def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry
