"""Media reference resolution against the shared storage root.

A media reference is either an absolute remote URL (``http://``/``https://``)
or a local upload path (``/uploads/<filename>``). Local references resolve to
``<storage_root>/<basename>`` with any query string dropped.
"""

import asyncio
import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import Optional

import httpx

from utils.errors import NotFoundError, RemoteCallError, UnsupportedReferenceError

logger = logging.getLogger(__name__)

LOCAL_PREFIX = "/uploads/"
REMOTE_PREFIXES = ("http://", "https://")


def is_remote_url(reference: str) -> bool:
    return str(reference or "").strip().startswith(REMOTE_PREFIXES)


def is_local_reference(reference: str) -> bool:
    return str(reference or "").strip().startswith(LOCAL_PREFIX)


def reference_basename(reference: str) -> str:
    """Filename part of a local reference, ignoring any query string."""
    path_part = str(reference or "").strip().split("?", 1)[0]
    return PurePosixPath(path_part).name


class MediaStore:
    """Reads and writes media under one storage root.

    Remote fetches share a single httpx.AsyncClient. Pass ``http_client`` to
    inject one (tests use ``httpx.MockTransport``); otherwise the store owns
    its client and closes it in ``close()``.
    """

    def __init__(
        self,
        storage_root: str | Path,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 300.0,
    ):
        self.storage_root = Path(storage_root)
        self.storage_root.mkdir(parents=True, exist_ok=True)
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=timeout, follow_redirects=True
        )

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def local_path(self, reference: str) -> Path:
        """Where a local reference lives under the storage root."""
        return self.storage_root / reference_basename(reference)

    def require_local_file(self, reference: str) -> Path:
        """Resolve a local reference, failing if the file is absent."""
        path = self.local_path(reference)
        if not path.is_file():
            raise NotFoundError(f"media file not found: {path}")
        return path

    def output_path(self, filename: str) -> Path:
        return self.storage_root / filename

    @staticmethod
    def public_path(filename: str) -> str:
        """Root-relative path handed back to callers."""
        return f"{LOCAL_PREFIX}{filename}"

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------

    async def fetch_bytes(self, url: str, label: str = "media") -> bytes:
        """Download a remote URL into memory.

        Raises:
            RemoteCallError: On transport failure or non-success status
        """
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise RemoteCallError(f"failed to download {label}: {e}") from e

        if not response.is_success:
            raise RemoteCallError(
                f"failed to download {label}: {response.status_code}"
            )
        return response.content

    async def copy_reference_to(
        self, reference: str, destination: Path, label: str = "media"
    ) -> Path:
        """Materialize a local or remote reference at ``destination``.

        Raises:
            NotFoundError: Local reference with no file behind it
            RemoteCallError: Remote fetch failed
            UnsupportedReferenceError: Neither local nor remote
        """
        source = str(reference or "").strip()
        if is_local_reference(source):
            local = self.require_local_file(source)
            await asyncio.to_thread(shutil.copyfile, local, destination)
        elif is_remote_url(source):
            data = await self.fetch_bytes(source, label)
            await asyncio.to_thread(destination.write_bytes, data)
        else:
            raise UnsupportedReferenceError(f"unsupported {label} URL: {source}")

        logger.debug(f"Materialized {label} {source} -> {destination.name}")
        return destination

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
