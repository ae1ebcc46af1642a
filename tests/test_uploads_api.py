import os
import uuid

import httpx
import pytest

from tubely.core.db import get_session
from tubely.core.errors import PersistenceError, ProbeInvocationError, RemuxInvocationError
from tubely.core.security import create_access_token
from tubely.main import create_app
from tubely.modules.videos.models import Video
from tubely.modules.videos.service import VideoService

pytestmark = pytest.mark.anyio

MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 256


def video_form(content_type="video/mp4", data=MP4_BYTES, field="video"):
    return {field: ("clip.mp4", data, content_type)}


def scratch_files(settings):
    if not os.path.isdir(settings.SCRATCH_DIR):
        return []
    return os.listdir(settings.SCRATCH_DIR)


async def test_owner_upload_lands_under_landscape_prefix(client, video, auth_headers, storage, media_tool, settings, reload_video):
    bucket_name = settings.S3_BUCKET
    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=auth_headers)

    assert resp.status_code == 200, resp.text
    [(bucket, key)] = storage.objects
    assert bucket == bucket_name
    assert key.startswith("landscape/")
    assert key.endswith(".mp4")

    body, content_type = storage.objects[(bucket, key)]
    assert content_type == "video/mp4"
    # the remuxed file is what gets stored, not the raw upload
    assert body == b"faststart:" + MP4_BYTES

    data = resp.json()
    assert data["id"] == str(video.id)
    assert data["video_url"].startswith(f"https://{bucket_name}.s3.test/{key}?")
    assert f"X-Amz-Expires={24 * 60 * 60}" in data["video_url"]

    saved = await reload_video(video.id)
    assert (saved.video_bucket, saved.video_key) == (bucket, key)
    assert saved.video_url is None

    assert scratch_files(settings) == []


@pytest.mark.parametrize(
    "width,height,prefix",
    [(1080, 1920, "portrait/"), (1000, 1000, "other/"), (1920, 1080, "landscape/")],
)
async def test_key_prefix_follows_aspect_ratio(client, video, auth_headers, storage, media_tool, width, height, prefix):
    media_tool.streams = [{"codec_type": "video", "width": width, "height": height}]

    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=auth_headers)

    assert resp.status_code == 200, resp.text
    [(_, key)] = storage.objects
    assert key.startswith(prefix)


async def test_reupload_gets_a_new_key(client, video, auth_headers, storage, media_tool):
    first = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=auth_headers)
    second = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=auth_headers)

    assert first.status_code == second.status_code == 200
    assert len(storage.objects) == 2
    staged = [src for src, _ in media_tool.remuxed]
    assert staged[0] != staged[1]


async def test_non_owner_is_rejected_before_staging(client, video, storage, media_tool, settings, reload_video):
    intruder = {"Authorization": f"Bearer {create_access_token(uuid.uuid4(), settings.JWT_SECRET)}"}

    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=intruder)

    assert resp.status_code == 403
    assert resp.json() == {"error": "Insufficient rights to video"}
    assert media_tool.inspected == []
    assert storage.objects == {}
    assert scratch_files(settings) == []
    assert (await reload_video(video.id)).video_key is None


async def test_missing_token(client, video):
    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form())
    assert resp.status_code == 401


async def test_invalid_token(client, video):
    bad = {"Authorization": f"Bearer {create_access_token(uuid.uuid4(), 'some-other-secret')}"}
    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=bad)
    assert resp.status_code == 401


async def test_malformed_video_id(client, auth_headers):
    resp = await client.post("/api/video_upload/not-a-uuid", files=video_form(), headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid ID"}


async def test_malformed_video_id_without_token(client):
    resp = await client.post("/api/video_upload/not-a-uuid", files=video_form())
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid ID"}


async def test_unknown_video(client, auth_headers):
    resp = await client.post(f"/api/video_upload/{uuid.uuid4()}", files=video_form(), headers=auth_headers)
    assert resp.status_code == 404


async def test_missing_form_field(client, video, auth_headers):
    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(field="file"), headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Unable to parse form file"}


@pytest.mark.parametrize("content_type", ["video/quicktime", "image/png", "not a type"])
async def test_video_content_type_must_be_mp4(client, video, auth_headers, media_tool, settings, content_type):
    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(content_type), headers=auth_headers)

    assert resp.status_code == 400
    assert media_tool.inspected == []
    assert scratch_files(settings) == []


async def test_content_type_parameters_are_ignored(client, video, auth_headers, storage):
    resp = await client.post(
        f"/api/video_upload/{video.id}", files=video_form("video/MP4; codecs=avc1"), headers=auth_headers
    )
    assert resp.status_code == 200
    [((_, key), (_, content_type))] = storage.objects.items()
    assert content_type == "video/mp4"


async def test_probe_failure_cleans_up_and_leaves_record(client, video, auth_headers, storage, media_tool, settings, reload_video):
    media_tool.inspect_error = ProbeInvocationError("ffprobe exited with 1")

    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=auth_headers)

    assert resp.status_code == 500
    # diagnostics stay in the log
    assert resp.json() == {"error": "Couldn't calculate aspect ratio"}
    assert len(media_tool.inspected) == 1
    assert not os.path.exists(media_tool.inspected[0])
    assert scratch_files(settings) == []
    assert storage.objects == {}
    assert (await reload_video(video.id)).video_key is None


async def test_remux_failure_cleans_up_and_leaves_record(client, video, auth_headers, storage, media_tool, settings, reload_video):
    media_tool.remux_error = RemuxInvocationError("ffmpeg exited with 1")

    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=auth_headers)

    assert resp.status_code == 500
    [(staged, processed)] = media_tool.remuxed
    assert not os.path.exists(staged)
    assert not os.path.exists(processed)
    assert scratch_files(settings) == []
    assert storage.objects == {}
    assert (await reload_video(video.id)).video_key is None


async def test_zero_dimension_stream_is_rejected(client, video, auth_headers, storage, media_tool):
    media_tool.streams = [{"codec_type": "video", "width": 0, "height": 0}]

    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=auth_headers)

    assert resp.status_code == 500
    assert storage.objects == {}


async def test_storage_failure_leaves_record_untouched(client, video, auth_headers, storage, settings, reload_video):
    storage.fail_puts = True

    resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=auth_headers)

    assert resp.status_code == 500
    assert resp.json() == {"error": "Error uploading file to storage"}
    assert scratch_files(settings) == []
    assert (await reload_video(video.id)).video_key is None


async def test_upload_over_ceiling_is_refused(settings, registry, sessionmaker, video, auth_headers, media_tool):
    small = settings.model_copy(update={"MAX_UPLOAD_BYTES": 128})
    app = create_app(small, registry)

    async def _session():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=auth_headers)

    assert resp.status_code == 413
    assert media_tool.inspected == []


async def test_thumbnail_upload_writes_to_assets(client, video, auth_headers, settings, reload_video):
    resp = await client.post(
        f"/api/thumbnail_upload/{video.id}",
        files={"thumbnail": ("thumb.png", b"\x89PNG fake", "image/png")},
        headers=auth_headers,
    )

    assert resp.status_code == 200, resp.text
    url = resp.json()["thumbnail_url"]
    assert url.startswith("http://testserver/assets/")
    assert url.endswith(".png")

    asset_path = url.removeprefix("http://testserver/assets/")
    with open(os.path.join(settings.ASSETS_ROOT, asset_path), "rb") as f:
        assert f.read() == b"\x89PNG fake"
    assert (await reload_video(video.id)).thumbnail_url == url

    served = await client.get(f"/assets/{asset_path}")
    assert served.status_code == 200
    assert served.content == b"\x89PNG fake"


async def test_thumbnail_replacement_removes_previous_file(client, video, auth_headers, settings):
    first = await client.post(
        f"/api/thumbnail_upload/{video.id}",
        files={"thumbnail": ("a.jpg", b"first", "image/jpeg")},
        headers=auth_headers,
    )
    second = await client.post(
        f"/api/thumbnail_upload/{video.id}",
        files={"thumbnail": ("b.jpg", b"second", "image/jpeg")},
        headers=auth_headers,
    )

    assert first.status_code == second.status_code == 200
    remaining = os.listdir(settings.ASSETS_ROOT)
    assert remaining == [second.json()["thumbnail_url"].rsplit("/", 1)[1]]


async def test_thumbnail_cleanup_failure_is_logged_not_fatal(client, video, auth_headers, sessionmaker, caplog):
    async with sessionmaker() as session:
        obj = await session.get(Video, video.id)
        obj.thumbnail_url = "https://cdn.elsewhere.example/thumb.jpg"
        await session.commit()

    with caplog.at_level("WARNING"):
        resp = await client.post(
            f"/api/thumbnail_upload/{video.id}",
            files={"thumbnail": ("b.jpg", b"new", "image/jpeg")},
            headers=auth_headers,
        )

    assert resp.status_code == 200
    assert any(getattr(r, "event", None) == "thumbnail.cleanup_failed" for r in caplog.records)


async def test_gif_thumbnail_rejected_before_write(client, video, auth_headers, settings, reload_video):
    resp = await client.post(
        f"/api/thumbnail_upload/{video.id}",
        files={"thumbnail": ("t.gif", b"GIF89a", "image/gif")},
        headers=auth_headers,
    )

    assert resp.status_code == 400
    assert resp.json() == {"error": "Only JPEG and PNG are valid file types for a thumbnail"}
    assert not os.path.exists(settings.ASSETS_ROOT) or os.listdir(settings.ASSETS_ROOT) == []
    assert (await reload_video(video.id)).thumbnail_url is None


async def test_thumbnail_non_owner(client, video, settings):
    intruder = {"Authorization": f"Bearer {create_access_token(uuid.uuid4(), settings.JWT_SECRET)}"}
    resp = await client.post(
        f"/api/thumbnail_upload/{video.id}",
        files={"thumbnail": ("t.png", b"png", "image/png")},
        headers=intruder,
    )
    assert resp.status_code == 403
    assert not os.path.exists(settings.ASSETS_ROOT) or os.listdir(settings.ASSETS_ROOT) == []


async def _failing_save(self, video):
    raise PersistenceError(f"couldn't update video {video.id}: database is locked")


async def test_video_persist_failure_logs_orphaned_object(client, video, auth_headers, storage, settings, reload_video, monkeypatch, caplog):
    monkeypatch.setattr(VideoService, "save", _failing_save)

    with caplog.at_level("ERROR"):
        resp = await client.post(f"/api/video_upload/{video.id}", files=video_form(), headers=auth_headers)

    assert resp.status_code == 500
    assert resp.json() == {"error": "Couldn't update video"}
    [(bucket, key)] = storage.objects
    assert any(f"s3://{bucket}/{key}" in r.getMessage() for r in caplog.records)
    assert scratch_files(settings) == []
    assert (await reload_video(video.id)).video_key is None


async def test_thumbnail_persist_failure_removes_new_file(client, video, auth_headers, settings, reload_video, monkeypatch):
    monkeypatch.setattr(VideoService, "save", _failing_save)

    resp = await client.post(
        f"/api/thumbnail_upload/{video.id}",
        files={"thumbnail": ("t.png", b"\x89PNG fake", "image/png")},
        headers=auth_headers,
    )

    assert resp.status_code == 500
    assert os.listdir(settings.ASSETS_ROOT) == []
    assert (await reload_video(video.id)).thumbnail_url is None
