"""Video generation service - image-to-video models on fal.ai."""

import asyncio
import logging
import math
import mimetypes
import os
import re
import time
from typing import Any, Optional

import fal_client

from models.video import GenerationJob, VideoModel
from services.media_store import MediaStore, is_local_reference, is_remote_url
from utils.errors import (
    ConfigurationError,
    ContinuityPipelineError,
    RemoteCallError,
    UnsupportedReferenceError,
)

logger = logging.getLogger(__name__)

MIN_DURATION_SECONDS = 5
MAX_DURATION_SECONDS = 10
DEFAULT_DURATION_SECONDS = 5

DEFAULT_MODEL_KEY = "seedance"


def _model_registry() -> dict[str, VideoModel]:
    """Known models; ids can be overridden per deployment via env vars."""
    return {
        "seedance": VideoModel(
            key="seedance",
            label="Seedance",
            model_id=(
                os.getenv("FAL_VIDEO_MODEL_SEEDANCE")
                or os.getenv("FAL_VIDEO_MODEL")
                or "fal-ai/bytedance/seedance/v1/lite/image-to-video"
            ),
        ),
        "kling": VideoModel(
            key="kling",
            label="Kling",
            model_id=os.getenv(
                "FAL_VIDEO_MODEL_KLING", "fal-ai/kling-video/o3/pro/image-to-video"
            ),
            prompt_char_limit=2500,
        ),
        "veo3": VideoModel(
            key="veo3",
            label="Veo 3",
            model_id=os.getenv("FAL_VIDEO_MODEL_VEO3", ""),
        ),
    }


def resolve_video_model(key: Optional[str] = None) -> VideoModel:
    """Look up a model by key, falling back to Seedance for unknown keys.

    Raises:
        ConfigurationError: The resolved model has no model id configured
    """
    registry = _model_registry()
    normalized = str(key or DEFAULT_MODEL_KEY).strip().lower()
    model = registry.get(normalized) or registry[DEFAULT_MODEL_KEY]
    if not model.model_id:
        raise ConfigurationError(f"{model.label} model is not configured on server")
    return model


def clamp_duration(seconds: Any) -> int:
    """Clamp a requested clip length to the range the models accept."""
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        return DEFAULT_DURATION_SECONDS
    if math.isnan(value):
        return DEFAULT_DURATION_SECONDS
    # Clamp before rounding; round() rejects infinities
    return int(round(max(MIN_DURATION_SECONDS, min(MAX_DURATION_SECONDS, value))))


def normalize_prompt(prompt: str) -> str:
    """Collapse newlines and runs of whitespace into single spaces."""
    return re.sub(r"\s+", " ", str(prompt or "")).strip()


def extract_video_url(result: Any) -> str:
    """Pull the video URL out of a completed job payload.

    Checks, in order: video.url, videos[0].url, data.video.url,
    data.videos[0].url, video_url.
    Returns an empty string when none match.
    """
    if not isinstance(result, dict):
        return ""

    video = result.get("video")
    if isinstance(video, dict) and video.get("url"):
        return str(video["url"])

    videos = result.get("videos")
    if isinstance(videos, list) and videos and isinstance(videos[0], dict):
        if videos[0].get("url"):
            return str(videos[0]["url"])

    data = result.get("data")
    if isinstance(data, dict):
        nested = data.get("video")
        if isinstance(nested, dict) and nested.get("url"):
            return str(nested["url"])
        nested_videos = data.get("videos")
        if isinstance(nested_videos, list) and nested_videos and isinstance(nested_videos[0], dict):
            if nested_videos[0].get("url"):
                return str(nested_videos[0]["url"])

    if result.get("video_url"):
        return str(result["video_url"])

    return ""


class VideoGenService:
    """Generates scene clips from an anchor image on fal.ai.

    Local anchors (``/uploads/...``) are uploaded to fal storage first;
    remote anchors are passed through untouched. No internal retries: a
    failed call raises and the caller decides whether to resubmit.
    """

    def __init__(
        self,
        media_store: MediaStore,
        api_key: Optional[str] = None,
        model: Optional[VideoModel] = None,
        client: Any = None,
    ) -> None:
        self.media_store = media_store
        self.api_key = (
            api_key
            if api_key is not None
            else os.getenv("FAL_KEY") or os.getenv("FAL_API_KEY") or ""
        )
        self.model = model
        self._client = client

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _require_configured(self) -> None:
        if not self.is_configured():
            raise ConfigurationError(
                "Video generation not configured. Set FAL_KEY in your .env file."
            )

    @property
    def client(self):
        if self._client is None:
            self._client = fal_client.AsyncClient(key=self.api_key)
        return self._client

    # ------------------------------------------------------------------
    # Source image resolution
    # ------------------------------------------------------------------

    async def resolve_source_image(self, source_image_url: str) -> str:
        """Turn an anchor reference into a URL the remote service can fetch.

        Raises:
            ConfigurationError: No credential configured
            NotFoundError: Local anchor file is missing
            UnsupportedReferenceError: Empty or unrecognized reference
        """
        source = str(source_image_url or "").strip()
        if not source:
            raise UnsupportedReferenceError("source image URL is missing")

        if is_remote_url(source):
            return source

        if not is_local_reference(source):
            raise UnsupportedReferenceError(
                f"unsupported source image URL format: {source}"
            )

        self._require_configured()
        local_path = self.media_store.require_local_file(source)
        data = await asyncio.to_thread(local_path.read_bytes)
        content_type, _ = mimetypes.guess_type(local_path.name)

        try:
            uploaded = await self.client.upload(
                data, content_type or "image/jpeg", file_name=local_path.name
            )
        except Exception as e:
            raise RemoteCallError(f"failed to upload source image: {e}") from e

        logger.info(f"Uploaded anchor {local_path.name} to remote storage")
        return str(uploaded)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    @staticmethod
    def _on_queue_update(update: Any) -> None:
        """Forward in-progress log lines to the logger."""
        if not isinstance(update, fal_client.InProgress):
            return
        messages = [
            str(log.get("message", "")).strip()
            for log in (update.logs or [])
            if isinstance(log, dict)
        ]
        messages = [m for m in messages if m]
        if messages:
            logger.info(f"[video] {' | '.join(messages)}")

    async def generate_scene_video(
        self,
        source_image_url: str,
        prompt: str,
        duration_seconds: Any = DEFAULT_DURATION_SECONDS,
    ) -> str:
        """Generate one clip and return its remote URL.

        Args:
            source_image_url: Anchor image (remote URL or /uploads/ reference)
            prompt: Merged scene prompt
            duration_seconds: Requested length, clamped to [5, 10]

        Returns:
            Remote URL of the generated video

        Raises:
            ConfigurationError: Missing credential or unconfigured model
            RemoteCallError: Remote failure or no video URL in the response
        """
        self._require_configured()
        model = self.model or resolve_video_model()

        image_url = await self.resolve_source_image(source_image_url)
        job = GenerationJob(
            model=model,
            image_url=image_url,
            prompt=normalize_prompt(prompt),
            duration_seconds=clamp_duration(duration_seconds),
        )

        logger.info(
            f"Generating scene video with {model.label} ({model.model_id}, "
            f"{model.resolution}, {job.duration_seconds}s)"
        )
        start_time = time.time()

        try:
            result = await self.client.subscribe(
                model.model_id,
                arguments=job.to_arguments(),
                with_logs=True,
                on_queue_update=self._on_queue_update,
            )
        except ContinuityPipelineError:
            raise
        except Exception as e:
            logger.error(f"{model.label} generation failed: {e}")
            raise RemoteCallError(f"{model.label} generation failed: {e}") from e

        video_url = extract_video_url(result)
        if not video_url:
            raise RemoteCallError(f"{model.label} generation returned no video URL")

        generation_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"{model.label} generated video in {generation_time_ms}ms")
        return video_url
