"""Video generation data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class VideoModel:
    """An image-to-video model hosted on the remote generation service."""

    key: str
    label: str
    model_id: str
    resolution: str = "720p"
    prompt_char_limit: int = 2000


@dataclass
class GenerationJob:
    """One remote image-to-video request.

    Lives only for the duration of a single remote call.
    """

    model: VideoModel
    image_url: str
    prompt: str
    duration_seconds: int

    def to_arguments(self) -> dict:
        """Build the argument payload for the remote service."""
        return {
            "image_url": self.image_url,
            "prompt": self.prompt,
            "resolution": self.model.resolution,
            "duration": str(self.duration_seconds),
        }


@dataclass(frozen=True)
class RenderedShot:
    """Outputs of rendering a single planned shot."""

    beat_id: str
    remote_video_url: str
    video_path: str  # /uploads/<name>
    last_frame_path: str  # /uploads/<name>, feeds the next shot's anchor

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "beat_id": self.beat_id,
            "remote_video_url": self.remote_video_url,
            "video_path": self.video_path,
            "last_frame_path": self.last_frame_path,
        }
