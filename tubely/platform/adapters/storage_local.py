import logging
import os
import shutil
from typing import BinaryIO
from tubely.core.config import Settings

log = logging.getLogger("storage.local")

ASSETS_MOUNT = "/assets"

class LocalAssetStore:
    """Thumbnails on local disk, served back by this service under /assets."""

    def __init__(self, settings: Settings):
        self.root = os.path.abspath(settings.ASSETS_ROOT)
        self.base_url = f"{settings.PUBLIC_BASE_URL}{ASSETS_MOUNT}/"

    def ensure_root(self) -> None:
        os.makedirs(self.root, mode=0o755, exist_ok=True)

    def disk_path(self, asset_path: str) -> str:
        safe = asset_path.replace("..", "").lstrip("/")
        return os.path.join(self.root, safe)

    def url_for(self, asset_path: str) -> str:
        return f"{self.base_url}{asset_path}"

    def asset_path_from_url(self, url: str) -> str:
        if not url.startswith(self.base_url):
            raise ValueError(f"Invalid asset URL {url!r}. Missing expected base URL {self.base_url!r}")
        return url[len(self.base_url):]

    def save(self, asset_path: str, src: BinaryIO) -> str:
        self.ensure_root()
        path = self.disk_path(asset_path)
        with open(path, "xb") as f:
            try:
                shutil.copyfileobj(src, f)
            except OSError:
                f.close()
                os.remove(path)
                raise
        return path

    def remove(self, asset_path: str) -> None:
        os.remove(self.disk_path(asset_path))
