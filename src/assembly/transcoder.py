"""External transcoder interface and FFmpeg argument builders.

Pipeline code only talks to a ``Transcoder``; ``FFmpegTranscoder`` is the
production implementation. Tests substitute a fake that returns canned
results without spawning processes.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from utils.errors import ProcessFailureError

logger = logging.getLogger(__name__)

# Target encoding for every clip that goes into a final film
TARGET_WIDTH = 1280
TARGET_HEIGHT = 720
TARGET_FPS = 30
TARGET_CODEC = "libx264"
TARGET_PRESET = "veryfast"
TARGET_CRF = 22

LETTERBOX_FILTER = (
    f"scale={TARGET_WIDTH}:{TARGET_HEIGHT}:force_original_aspect_ratio=decrease,"
    f"pad={TARGET_WIDTH}:{TARGET_HEIGHT}:(ow-iw)/2:(oh-ih)/2,"
    "format=yuv420p"
)


@dataclass(frozen=True)
class TranscodeResult:
    """Exit status and captured stderr of one transcoder run."""

    exit_code: int
    stderr_text: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class Transcoder(Protocol):
    async def run(
        self, args: list[str], stdin: Optional[bytes] = None
    ) -> TranscodeResult: ...


class FFmpegTranscoder:
    """Runs ffmpeg as an asyncio subprocess and captures stderr."""

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary

    async def run(
        self, args: list[str], stdin: Optional[bytes] = None
    ) -> TranscodeResult:
        cmd = [self.binary, *args]
        logger.debug(f"Command: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ProcessFailureError(
                f"transcoder not found: {self.binary}", exit_code=127, stderr_text=str(e)
            ) from e

        try:
            _, stderr = await proc.communicate(input=stdin)
        except asyncio.CancelledError:
            if proc.returncode is None:
                logger.warning(f"Cancelled, killing {self.binary} (pid {proc.pid})")
                proc.kill()
            await proc.wait()
            raise
        return TranscodeResult(
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stderr_text=(stderr or b"").decode("utf-8", errors="replace"),
        )


# ----------------------------------------------------------------------
# Argument builders (binary name excluded)
# ----------------------------------------------------------------------


def faststart_remux_args(source: Path, output: Path) -> list[str]:
    """Copy streams unchanged, moving the moov atom to the front."""
    return [
        "-y", "-loglevel", "error",
        "-i", str(source),
        "-c", "copy",
        "-movflags", "+faststart",
        str(output),
    ]


def normalize_clip_args(source: Path, output: Path) -> list[str]:
    """Re-encode a clip to the shared film encoding, dropping audio."""
    return [
        "-y", "-loglevel", "error",
        "-i", str(source),
        "-an",
        "-vf", f"fps={TARGET_FPS},{LETTERBOX_FILTER}",
        "-c:v", TARGET_CODEC,
        "-preset", TARGET_PRESET,
        "-crf", str(TARGET_CRF),
        "-movflags", "+faststart",
        str(output),
    ]


def concat_args(manifest: Path, output: Path) -> list[str]:
    """Join normalized clips listed in a concat-demuxer manifest without re-encoding."""
    return [
        "-y", "-loglevel", "error",
        "-f", "concat",
        "-safe", "0",
        "-i", str(manifest),
        "-c", "copy",
        "-movflags", "+faststart",
        str(output),
    ]


def last_frame_args(source: str, output: Path) -> list[str]:
    """Grab the final frame of a video as a letterboxed still."""
    return [
        "-y", "-loglevel", "error",
        "-sseof", "-0.05",
        "-i", source,
        "-frames:v", "1",
        "-vf", LETTERBOX_FILTER,
        str(output),
    ]


def concat_manifest_line(path: Path) -> str:
    """One concat-demuxer entry; embedded single quotes are escaped."""
    escaped = str(path).replace("'", "'\\''")
    return f"file '{escaped}'"
