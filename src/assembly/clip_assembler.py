"""FFmpeg-based clip caching and final-film assembly.

Generated scene clips arrive as remote URLs or local uploads with whatever
encoding the model produced. Final assembly normalizes every clip to one
encoding (1280x720, 30 fps, H.264, no audio) and joins them with the concat
demuxer, so the join itself is a stream copy.

All intermediate files of a build live in a uniquely named workspace under
the storage root; the workspace is removed on every exit path.
"""

import asyncio
import logging
import shutil
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from assembly.transcoder import (
    FFmpegTranscoder,
    Transcoder,
    concat_args,
    concat_manifest_line,
    faststart_remux_args,
    last_frame_args,
    normalize_clip_args,
)
from services.media_store import MediaStore, is_local_reference, is_remote_url
from utils.errors import (
    EmptyInputError,
    ProcessFailureError,
    UnsupportedReferenceError,
)
from utils.logging import build_context

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = ".tmp-final-"
MANIFEST_NAME = "concat-list.txt"


@contextmanager
def assembly_workspace(storage_root: Path) -> Iterator[Path]:
    """Create a uniquely named build directory and always remove it."""
    name = f"{WORKSPACE_PREFIX}{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
    workspace = storage_root / name
    workspace.mkdir(parents=True)
    logger.debug(f"Created workspace: {workspace}")
    try:
        yield workspace
    finally:
        shutil.rmtree(workspace, ignore_errors=True)
        if workspace.exists():
            logger.warning(f"Failed to clean up workspace: {workspace}")
        else:
            logger.debug(f"Cleaned up workspace: {workspace}")


class ClipAssembler:
    """Caches generated clips and assembles them into one film."""

    def __init__(
        self,
        media_store: MediaStore,
        transcoder: Optional[Transcoder] = None,
    ):
        self.media_store = media_store
        self.transcoder = transcoder or FFmpegTranscoder()

    # ------------------------------------------------------------------
    # Single clip caching
    # ------------------------------------------------------------------

    async def cache_remote_video(
        self, remote_video_url: str, output_filename: str
    ) -> str:
        """Download a generated clip and store it with fast-start metadata.

        If the remux fails the downloaded bytes are written unchanged.

        Returns:
            /uploads/<output_filename>

        Raises:
            RemoteCallError: Download failed
        """
        data = await self.media_store.fetch_bytes(remote_video_url, "remote video")

        temp_path = self.media_store.output_path(f"{output_filename}.tmp.mp4")
        output_path = self.media_store.output_path(output_filename)

        try:
            await asyncio.to_thread(temp_path.write_bytes, data)
            try:
                result = await self.transcoder.run(
                    faststart_remux_args(temp_path, output_path)
                )
                stderr_text = result.stderr_text
                remuxed = result.ok
            except ProcessFailureError as e:
                stderr_text = e.stderr_text or str(e)
                remuxed = False

            if not remuxed:
                await asyncio.to_thread(output_path.write_bytes, data)
                logger.warning(
                    f"[video] faststart remux failed, using direct copy: {stderr_text.strip()}"
                )
        finally:
            temp_path.unlink(missing_ok=True)

        return self.media_store.public_path(output_filename)

    # ------------------------------------------------------------------
    # Final film assembly
    # ------------------------------------------------------------------

    async def create_final_film(
        self, clip_urls: list[str], output_filename: str
    ) -> str:
        """Normalize and concatenate clips into one film.

        Steps:
        1. Materialize each clip into the workspace
        2. Normalize each clip to the shared encoding
        3. Write the concat manifest
        4. Stream-copy concat into the storage root

        Args:
            clip_urls: Clip references in playback order (/uploads/... or http(s))
            output_filename: Final film filename under the storage root

        Returns:
            /uploads/<output_filename>

        Raises:
            EmptyInputError: No clips given
            ProcessFailureError: Normalization (with clip index) or concat failed
        """
        clips = [str(url).strip() for url in (clip_urls or []) if str(url or "").strip()]
        if not clips:
            raise EmptyInputError("no clips available to build final film")

        output_path = self.media_store.output_path(output_filename)

        with assembly_workspace(self.media_store.storage_root) as workspace:
            with build_context(workspace.name, clips=len(clips)):
                logger.info(f"Assembling final film from {len(clips)} clips")

                normalized: list[Path] = []
                for index, clip_url in enumerate(clips):
                    logger.info(f"Normalizing clip {index + 1}/{len(clips)}")
                    normalized.append(
                        await self._normalize_clip(workspace, clip_url, index)
                    )

                manifest = workspace / MANIFEST_NAME
                await asyncio.to_thread(
                    manifest.write_text,
                    "\n".join(concat_manifest_line(path) for path in normalized),
                )

                result = await self.transcoder.run(concat_args(manifest, output_path))
                if not result.ok:
                    output_path.unlink(missing_ok=True)
                    logger.error(f"FFmpeg stderr: {result.stderr_text[-1000:]}")
                    raise ProcessFailureError(
                        f"failed to concatenate clips: {result.stderr_text.strip()}",
                        exit_code=result.exit_code,
                        stderr_text=result.stderr_text,
                    )

                logger.info(f"Final film complete: {output_path}")

        return self.media_store.public_path(output_filename)

    async def _normalize_clip(
        self, workspace: Path, clip_url: str, index: int
    ) -> Path:
        clip_name = f"clip-{index + 1:03d}"
        source_path = workspace / f"{clip_name}-source.mp4"
        normalized_path = workspace / f"{clip_name}.mp4"

        if not (is_local_reference(clip_url) or is_remote_url(clip_url)):
            raise UnsupportedReferenceError(
                f"unsupported clip URL at index {index}: {clip_url}"
            )
        await self.media_store.copy_reference_to(
            clip_url, source_path, label=f"clip at index {index}"
        )

        result = await self.transcoder.run(
            normalize_clip_args(source_path, normalized_path)
        )
        if not result.ok:
            logger.error(f"FFmpeg stderr: {result.stderr_text[-1000:]}")
            raise ProcessFailureError(
                f"failed to normalize clip at index {index}: {result.stderr_text.strip()}",
                exit_code=result.exit_code,
                stderr_text=result.stderr_text,
                index=index,
            )

        return normalized_path

    # ------------------------------------------------------------------
    # Last frame extraction
    # ------------------------------------------------------------------

    async def extract_last_frame(self, video_url: str, output_filename: str) -> str:
        """Save the final frame of a clip as a still for the next shot's anchor.

        Returns:
            /uploads/<output_filename>

        Raises:
            UnsupportedReferenceError: Empty or unrecognized reference
            NotFoundError: Local video is missing
            ProcessFailureError: Extraction failed
        """
        source = str(video_url or "").strip()
        if not source:
            raise UnsupportedReferenceError("video URL is required for last-frame extraction")

        if is_local_reference(source):
            input_source = str(self.media_store.require_local_file(source))
        elif is_remote_url(source):
            input_source = source
        else:
            raise UnsupportedReferenceError(f"unsupported video URL: {source}")

        output_path = self.media_store.output_path(output_filename)
        result = await self.transcoder.run(last_frame_args(input_source, output_path))
        if not result.ok:
            raise ProcessFailureError(
                f"failed to extract last frame: {result.stderr_text.strip()}",
                exit_code=result.exit_code,
                stderr_text=result.stderr_text,
            )

        return self.media_store.public_path(output_filename)
