"""Unit tests for remote scene video generation."""

import fal_client
import pytest

from services.media_store import MediaStore
from services.video_gen_service import (
    VideoGenService,
    clamp_duration,
    extract_video_url,
    normalize_prompt,
    resolve_video_model,
)
from utils.errors import (
    ConfigurationError,
    NotFoundError,
    RemoteCallError,
    UnsupportedReferenceError,
)


@pytest.fixture
def media_store(storage_root, mock_http_client):
    return MediaStore(storage_root, http_client=mock_http_client)


@pytest.mark.unit
class TestHelpers:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, 5),
            ("abc", 5),
            (float("nan"), 5),
            (float("inf"), 10),
            (float("-inf"), 5),
            ("1e400", 10),
            (3, 5),
            (5.4, 5),
            (7.6, 8),
            (30, 10),
            ("6", 6),
        ],
    )
    def test_clamp_duration(self, value, expected):
        assert clamp_duration(value) == expected

    def test_normalize_prompt_collapses_whitespace(self):
        assert normalize_prompt("  line one\n\nline   two\t") == "line one line two"

    @pytest.mark.parametrize(
        "payload",
        [
            {"video": {"url": "https://v/1.mp4"}},
            {"videos": [{"url": "https://v/1.mp4"}]},
            {"data": {"video": {"url": "https://v/1.mp4"}}},
            {"data": {"videos": [{"url": "https://v/1.mp4"}]}},
            {"video_url": "https://v/1.mp4"},
        ],
    )
    def test_extract_video_url_shapes(self, payload):
        assert extract_video_url(payload) == "https://v/1.mp4"

    def test_extract_video_url_precedence(self):
        payload = {"video_url": "https://v/late.mp4", "video": {"url": "https://v/first.mp4"}}

        assert extract_video_url(payload) == "https://v/first.mp4"

    def test_extract_video_url_nested_list_before_top_level_url(self):
        payload = {
            "video_url": "https://v/late.mp4",
            "data": {"videos": [{"url": "https://v/nested.mp4"}]},
        }

        assert extract_video_url(payload) == "https://v/nested.mp4"

    @pytest.mark.parametrize("payload", [None, "x", {}, {"video": {}}, {"videos": []}])
    def test_extract_video_url_missing(self, payload):
        assert extract_video_url(payload) == ""


@pytest.mark.unit
class TestModelRegistry:
    def test_unknown_key_falls_back_to_seedance(self, monkeypatch):
        monkeypatch.delenv("FAL_VIDEO_MODEL_SEEDANCE", raising=False)
        monkeypatch.delenv("FAL_VIDEO_MODEL", raising=False)

        model = resolve_video_model("  SORA ")

        assert model.key == "seedance"
        assert model.model_id == "fal-ai/bytedance/seedance/v1/lite/image-to-video"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("FAL_VIDEO_MODEL_KLING", "fal-ai/kling/custom")

        assert resolve_video_model("kling").model_id == "fal-ai/kling/custom"

    def test_unconfigured_model_raises(self, monkeypatch):
        monkeypatch.delenv("FAL_VIDEO_MODEL_VEO3", raising=False)

        with pytest.raises(ConfigurationError, match="Veo 3 model is not configured"):
            resolve_video_model("veo3")


@pytest.mark.unit
@pytest.mark.asyncio
class TestVideoGenService:
    async def test_remote_anchor_passes_through(self, media_store, fake_fal_client):
        service = VideoGenService(media_store, api_key="key", client=fake_fal_client)
        try:
            url = await service.generate_scene_video(
                "https://cdn.example.com/anchor.png", "  A shot\nof the sea ", 7.4
            )

            assert url == "https://fal.media/files/clip.mp4"
            assert fake_fal_client.uploads == []
            call = fake_fal_client.subscriptions[0]
            assert call["application"] == "fal-ai/bytedance/seedance/v1/lite/image-to-video"
            assert call["arguments"] == {
                "image_url": "https://cdn.example.com/anchor.png",
                "prompt": "A shot of the sea",
                "resolution": "720p",
                "duration": "7",
            }
            assert call["with_logs"] is True
        finally:
            await media_store.close()

    async def test_local_anchor_is_uploaded(self, media_store, storage_root, fake_fal_client):
        (storage_root / "anchor.png").write_bytes(b"png-bytes")
        service = VideoGenService(media_store, api_key="key", client=fake_fal_client)
        try:
            await service.generate_scene_video("/uploads/anchor.png?v=2", "prompt")

            assert fake_fal_client.uploads == [(b"png-bytes", "image/png", "anchor.png")]
            arguments = fake_fal_client.subscriptions[0]["arguments"]
            assert arguments["image_url"] == "https://fal.media/files/anchor.png"
        finally:
            await media_store.close()

    async def test_missing_credential_fails_before_any_remote_call(
        self, media_store, storage_root, fake_fal_client
    ):
        (storage_root / "anchor.png").write_bytes(b"png-bytes")
        service = VideoGenService(media_store, api_key="", client=fake_fal_client)
        try:
            assert service.is_configured() is False
            with pytest.raises(ConfigurationError, match="FAL_KEY"):
                await service.generate_scene_video("/uploads/anchor.png", "prompt")

            assert fake_fal_client.uploads == []
            assert fake_fal_client.subscriptions == []
        finally:
            await media_store.close()

    async def test_missing_local_anchor(self, media_store, fake_fal_client):
        service = VideoGenService(media_store, api_key="key", client=fake_fal_client)
        try:
            with pytest.raises(NotFoundError):
                await service.generate_scene_video("/uploads/nope.png", "prompt")
        finally:
            await media_store.close()

    @pytest.mark.parametrize("source", ["", "   ", "ftp://example.com/a.png", "anchor.png"])
    async def test_unsupported_anchor(self, media_store, fake_fal_client, source):
        service = VideoGenService(media_store, api_key="key", client=fake_fal_client)
        try:
            with pytest.raises(UnsupportedReferenceError):
                await service.generate_scene_video(source, "prompt")
            assert fake_fal_client.subscriptions == []
        finally:
            await media_store.close()

    async def test_response_without_video_url(self, media_store, make_fal_client):
        client = make_fal_client(result={"status": "ok"})
        service = VideoGenService(media_store, api_key="key", client=client)
        try:
            with pytest.raises(RemoteCallError, match="returned no video URL"):
                await service.generate_scene_video("https://cdn.example.com/a.png", "p")
        finally:
            await media_store.close()

    async def test_remote_failure_is_wrapped(self, media_store, make_fal_client):
        client = make_fal_client(error=RuntimeError("queue exploded"))
        service = VideoGenService(media_store, api_key="key", client=client)
        try:
            with pytest.raises(RemoteCallError, match="queue exploded"):
                await service.generate_scene_video("https://cdn.example.com/a.png", "p")
        finally:
            await media_store.close()

    async def test_queue_updates_are_logged(self, media_store, fake_fal_client, caplog):
        service = VideoGenService(media_store, api_key="key", client=fake_fal_client)
        try:
            await service.generate_scene_video("https://cdn.example.com/a.png", "p")
            callback = fake_fal_client.subscriptions[0]["on_queue_update"]

            with caplog.at_level("INFO", logger="services.video_gen_service"):
                callback(fal_client.InProgress(logs=[{"message": "rendering 40%"}]))

            assert "rendering 40%" in caplog.text
        finally:
            await media_store.close()
