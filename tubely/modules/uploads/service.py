"""Upload pipeline for videos and thumbnails.

A video upload runs authorize, validate, stage, probe, remux, key, store,
persist, respond. Any step may raise; scratch files acquired up to that point
are removed on the way out. The record is only mutated after the object
store accepted the bytes, so a storage failure leaves the video untouched.
A persistence failure after a successful store leaves an orphaned object,
which is logged but not reconciled.
"""
import logging
import re
import uuid
from typing import BinaryIO
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.requests import Request
from tubely.core.config import Settings
from tubely.core.errors import AssetWriteError, BadRequestError, PersistenceError, UnsupportedMediaTypeError
from tubely.media.keys import generate_key, media_type_to_ext, prefixed_key
from tubely.media.presign import PresignedURLIssuer
from tubely.media.probe import MediaProber
from tubely.media.references import StorageReference
from tubely.media.remux import MediaRemuxer
from tubely.modules.uploads.scratch import ScratchSpace
from tubely.modules.videos.models import Video
from tubely.modules.videos.schemas import VideoOut
from tubely.modules.videos.service import VideoService
from tubely.platform.provider_registry import ProviderRegistry

log = logging.getLogger(__name__)

VIDEO_FIELD = "video"
THUMBNAIL_FIELD = "thumbnail"
VIDEO_MEDIA_TYPES = frozenset({"video/mp4"})
THUMBNAIL_MEDIA_TYPES = frozenset({"image/jpeg", "image/png"})

_TOKEN = r"[A-Za-z0-9!#$&^_.+-]+"
_MEDIA_TYPE_RE = re.compile(rf"^{_TOKEN}/{_TOKEN}$")


def parse_media_type(header: str | None) -> str:
    """``'video/MP4; codecs=avc1'`` -> ``'video/mp4'``; parameters are dropped."""
    if not header:
        raise BadRequestError("Invalid Content-Type")
    media_type = header.split(";", 1)[0].strip().lower()
    if not _MEDIA_TYPE_RE.match(media_type):
        raise BadRequestError("Invalid Content-Type")
    return media_type


def _form_file(form, field: str) -> UploadFile:
    upload = form.get(field)
    if not isinstance(upload, UploadFile):
        raise BadRequestError("Unable to parse form file")
    return upload


class UploadService:
    def __init__(self, videos: VideoService, registry: ProviderRegistry, settings: Settings):
        self.videos = videos
        self.settings = settings
        self.storage = registry.object_storage()
        self.assets = registry.asset_store()
        tool = registry.media_tool()
        self.prober = MediaProber(tool)
        self.remuxer = MediaRemuxer(tool)
        self.issuer = PresignedURLIssuer(self.storage, settings.PRESIGN_TTL_SECONDS)

    async def upload_video(self, video_id: uuid.UUID, user_id: uuid.UUID, request: Request) -> VideoOut:
        video = await self.videos.get_owned(video_id, user_id)

        form = await request.form()
        try:
            upload = _form_file(form, VIDEO_FIELD)
            media_type = parse_media_type(upload.content_type)
            if media_type not in VIDEO_MEDIA_TYPES:
                raise UnsupportedMediaTypeError("Invalid media type, only MP4 supported.")

            log.info("uploading video %s by user %s", video_id, user_id)
            with ScratchSpace(self.settings.SCRATCH_DIR) as scratch:
                staged = await run_in_threadpool(scratch.stage, upload.file, media_type_to_ext(media_type))
                classification = await run_in_threadpool(self.prober.classify, staged)
                processed = scratch.adopt(await run_in_threadpool(self.remuxer.remux_for_streaming, staged))

                ref = StorageReference(self.settings.S3_BUCKET, prefixed_key(classification.prefix, media_type))
                await run_in_threadpool(self._store, processed, ref, media_type)
        finally:
            await form.close()

        video.set_storage_reference(ref)
        try:
            await self.videos.save(video)
        except PersistenceError:
            log.error("video %s not updated; %s is orphaned", video_id, ref)
            raise

        log.info("video %s stored at %s (%s)", video_id, ref, classification.value)
        return self.issuer.sign_video(video)

    def _store(self, path: str, ref: StorageReference, content_type: str) -> None:
        with open(path, "rb") as body:
            self.storage.put_object(ref.bucket, ref.key, body, content_type)

    async def upload_thumbnail(self, video_id: uuid.UUID, user_id: uuid.UUID, request: Request) -> VideoOut:
        video = await self.videos.get_owned(video_id, user_id)

        form = await request.form()
        try:
            upload = _form_file(form, THUMBNAIL_FIELD)
            media_type = parse_media_type(upload.content_type)
            if media_type not in THUMBNAIL_MEDIA_TYPES:
                raise UnsupportedMediaTypeError("Only JPEG and PNG are valid file types for a thumbnail")

            log.info("uploading thumbnail for video %s by user %s", video_id, user_id)
            asset_path = generate_key(media_type)
            await run_in_threadpool(self._write_asset, asset_path, upload.file)
        finally:
            await form.close()

        old_url = video.thumbnail_url
        video.thumbnail_url = self.assets.url_for(asset_path)
        try:
            await self.videos.save(video)
        except PersistenceError:
            self._discard_thumbnail(asset_path)
            raise

        if old_url:
            self._discard_replaced_thumbnail(video, old_url)
        return self.issuer.sign_video(video)

    def _write_asset(self, asset_path: str, src: BinaryIO) -> None:
        try:
            self.assets.save(asset_path, src)
        except OSError as e:
            raise AssetWriteError(f"couldn't write thumbnail {asset_path}: {e}") from e

    def _discard_thumbnail(self, asset_path: str) -> None:
        try:
            self.assets.remove(asset_path)
        except OSError as e:
            log.warning(
                "thumbnail.cleanup_failed asset=%s: %s", asset_path, e,
                extra={"event": "thumbnail.cleanup_failed", "asset_path": asset_path},
            )

    def _discard_replaced_thumbnail(self, video: Video, old_url: str) -> None:
        # best effort: the new thumbnail is already committed
        try:
            asset_path = self.assets.asset_path_from_url(old_url)
        except ValueError as e:
            log.warning(
                "thumbnail.cleanup_failed video=%s: %s", video.id, e,
                extra={"event": "thumbnail.cleanup_failed", "asset_url": old_url},
            )
            return
        self._discard_thumbnail(asset_path)
