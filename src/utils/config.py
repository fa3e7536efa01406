"""Configuration loading and validation for the continuity pipeline."""

import math
import os
from pathlib import Path

from dotenv import load_dotenv

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_CONTINUITY_THRESHOLD = 0.75


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_config() -> dict:
    """Load configuration from environment variables."""

    def resolve_path(path: str | None, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # Shared storage root; local media references resolve here
        "storage_root": resolve_path(os.getenv("UPLOADS_DIR"), "uploads"),
        # Remote generation service credential
        "fal_key": os.getenv("FAL_KEY") or os.getenv("FAL_API_KEY") or "",
        "video_model": os.getenv("VIDEO_MODEL", "seedance"),
        # External transcoder
        "ffmpeg_binary": os.getenv("FFMPEG_BINARY", "ffmpeg"),
        # Continuity scoring
        "continuity_threshold": _env_float(
            "CONTINUITY_THRESHOLD", DEFAULT_CONTINUITY_THRESHOLD
        ),
        # Network
        "http_timeout_seconds": _env_float("HTTP_TIMEOUT_SECONDS", 300.0),
        # Logging
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": os.getenv("LOG_JSON", "false").lower() == "true",
    }

    return config


def validate_config(config: dict, require_fal_key: bool = True) -> list[str]:
    """Validate configuration and return list of errors.

    Args:
        config: Output of load_config()
        require_fal_key: Report a missing FAL_KEY; only commands that call
            the remote video service need it
    """
    errors = []

    if require_fal_key and not config.get("fal_key"):
        errors.append("FAL_KEY is required for scene video generation")

    storage_root = config.get("storage_root")
    if not storage_root:
        errors.append("UPLOADS_DIR must point at the shared storage root")
    else:
        try:
            Path(storage_root).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Cannot create storage root: {e}")

    threshold = config.get("continuity_threshold")
    if not isinstance(threshold, (int, float)) or not math.isfinite(threshold):
        errors.append("CONTINUITY_THRESHOLD must be a number")
    elif not 0.0 <= threshold <= 1.0:
        errors.append("CONTINUITY_THRESHOLD must be between 0 and 1")

    return errors
