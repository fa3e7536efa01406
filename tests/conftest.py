"""Shared pytest fixtures for continuity pipeline tests."""

import sys
import tempfile
from pathlib import Path
from typing import Dict, Generator, Optional

import httpx
import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from assembly.transcoder import TranscodeResult  # noqa: E402
from models.storyboard import Scene, ScenesBible, StyleBible  # noqa: E402


class FakeTranscoder:
    """Records transcoder calls and writes a marker file for the output path.

    ``fail_on`` maps a call number (0-based) to the result to return for it.
    ``outputs`` controls whether the last argument is created as a file, so
    later steps in a pipeline can find it.
    """

    def __init__(
        self,
        fail_on: Optional[Dict[int, TranscodeResult]] = None,
        outputs: bool = True,
    ):
        self.calls: list[list[str]] = []
        self.fail_on = fail_on or {}
        self.outputs = outputs

    async def run(self, args, stdin=None) -> TranscodeResult:
        call_number = len(self.calls)
        self.calls.append(list(args))
        if call_number in self.fail_on:
            return self.fail_on[call_number]

        if self.outputs:
            output = Path(args[-1])
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_bytes(b"transcoded:" + str(call_number).encode())
        return TranscodeResult(exit_code=0)


class FakeFalClient:
    """Stands in for fal_client.AsyncClient."""

    def __init__(self, result=None, upload_url="https://fal.media/files/anchor.png", error=None):
        self.result = result if result is not None else {
            "video": {"url": "https://fal.media/files/clip.mp4"}
        }
        self.upload_url = upload_url
        self.error = error
        self.uploads: list[tuple] = []
        self.subscriptions: list[dict] = []

    async def upload(self, data, content_type, file_name=None):
        self.uploads.append((data, content_type, file_name))
        return self.upload_url

    async def subscribe(self, application, arguments=None, with_logs=False, on_queue_update=None):
        self.subscriptions.append(
            {
                "application": application,
                "arguments": arguments,
                "with_logs": with_logs,
                "on_queue_update": on_queue_update,
            }
        )
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage_root(temp_dir) -> Path:
    """Shared storage root that /uploads/ references resolve against."""
    root = temp_dir / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def make_transcoder():
    """Transcoder fake class, for tests that script failures or subclass it."""
    return FakeTranscoder


@pytest.fixture
def fake_fal_client() -> FakeFalClient:
    return FakeFalClient()


@pytest.fixture
def make_fal_client():
    """Factory for fal client fakes with a custom result or error."""
    return FakeFalClient


@pytest.fixture
def remote_media() -> Dict[str, bytes]:
    """URL -> bytes served by the mock HTTP transport; unknown URLs 404."""
    return {}


@pytest.fixture
def mock_http_client(remote_media) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        body = remote_media.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def sample_config(storage_root) -> Dict:
    """Sample configuration for testing."""
    return {
        "storage_root": str(storage_root),
        "fal_key": "test_fal_key",
        "video_model": "seedance",
        "ffmpeg_binary": "ffmpeg",
        "continuity_threshold": 0.75,
        "http_timeout_seconds": 30.0,
        "log_level": "INFO",
        "log_json": False,
    }


@pytest.fixture
def sample_scene() -> Scene:
    return Scene(
        beat_id="beat-2",
        scene_number=2,
        slugline="INT. LIGHTHOUSE - NIGHT",
        visual_direction="Mara climbs the spiral stairs holding a lantern",
        camera="Low angle tracking shot following her ascent",
        audio="Wind howling, distant surf",
        voiceover="Every night, the same climb.",
        on_screen_text="",
        transition="cut",
        duration_seconds=6,
        image_url="/uploads/beat-2.png",
    )


@pytest.fixture
def previous_scene() -> Scene:
    return Scene(
        beat_id="beat-1",
        scene_number=1,
        slugline="EXT. LIGHTHOUSE - DUSK",
        visual_direction="Mara crosses the rocks toward the lighthouse door",
        duration_seconds=5,
        image_url="/uploads/beat-1.png",
    )


@pytest.fixture
def sample_scenes_bible() -> ScenesBible:
    return ScenesBible(
        overview="A keeper's last winter at a remote lighthouse.",
        character_canon="Mara, 60s, grey braid, yellow oilskin coat",
        location_canon="Basalt island, white lighthouse with red lantern room",
        palette_and_texture="Cold blues, sodium amber practicals, film grain",
        cinematic_language="Patient handheld, long takes",
        continuity_invariants=[
            "Mara always wears the yellow oilskin",
            "Lantern light is warm amber",
            "Storm intensifies scene over scene",
            "Lighthouse beam sweeps clockwise",
        ],
    )


@pytest.fixture
def sample_style_bible() -> StyleBible:
    return StyleBible.default()
