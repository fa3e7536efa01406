"""Models for storyboard scenes and the bibles that constrain them."""

from dataclasses import dataclass, field
from typing import Any, Optional


def _pick(data: dict, *keys: str, default: Any = "") -> Any:
    """Return the first present, non-None value among snake_case/camelCase keys."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _text(value: Any) -> str:
    return str(value if value is not None else "").strip()


def _text_list(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [_text(item) for item in value if _text(item)]


@dataclass
class Scene:
    """A single storyboard scene that becomes one generated shot."""

    beat_id: str
    scene_number: int = 0
    slugline: str = ""
    visual_direction: str = ""
    camera: str = ""
    audio: str = ""
    voiceover: str = ""
    on_screen_text: str = ""
    transition: str = ""
    duration_seconds: Optional[float] = None
    image_url: str = ""
    image_prompt: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Scene":
        """Build a scene from a storyboard payload (snake_case or camelCase)."""
        duration = _pick(data, "duration_seconds", "durationSeconds", default=None)
        try:
            duration = float(duration) if duration is not None else None
        except (TypeError, ValueError):
            duration = None
        try:
            scene_number = int(_pick(data, "scene_number", "sceneNumber", default=0) or 0)
        except (TypeError, ValueError):
            scene_number = 0

        return cls(
            beat_id=_text(_pick(data, "beat_id", "beatId")),
            scene_number=scene_number,
            slugline=_text(_pick(data, "slugline")),
            visual_direction=_text(_pick(data, "visual_direction", "visualDirection")),
            camera=_text(_pick(data, "camera")),
            audio=_text(_pick(data, "audio")),
            voiceover=_text(_pick(data, "voiceover")),
            on_screen_text=_text(_pick(data, "on_screen_text", "onScreenText")),
            transition=_text(_pick(data, "transition")),
            duration_seconds=duration,
            image_url=_text(_pick(data, "image_url", "imageUrl")),
            image_prompt=_text(_pick(data, "image_prompt", "imagePrompt")),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "beat_id": self.beat_id,
            "scene_number": self.scene_number,
            "slugline": self.slugline,
            "visual_direction": self.visual_direction,
            "camera": self.camera,
            "audio": self.audio,
            "voiceover": self.voiceover,
            "on_screen_text": self.on_screen_text,
            "transition": self.transition,
            "duration_seconds": self.duration_seconds,
            "image_url": self.image_url,
            "image_prompt": self.image_prompt,
        }


@dataclass
class StyleBible:
    """Project-wide look and camera rules."""

    visual_style: str = ""
    camera_grammar: str = ""
    do_list: list[str] = field(default_factory=list)
    dont_list: list[str] = field(default_factory=list)

    @classmethod
    def default(cls) -> "StyleBible":
        """Style bible new projects start with."""
        return cls(
            visual_style=(
                "Grounded cinematic realism with expressive close-ups "
                "and motivated camera movement."
            ),
            camera_grammar=(
                "Use intentional composition, practical coverage, "
                "and transitions that preserve orientation."
            ),
            do_list=[
                "Keep emotional clarity",
                "Show cause-and-effect",
                "Use specific sensory detail",
            ],
            dont_list=[
                "Avoid generic inspirational cliches",
                "Avoid timeline jumps without transition cards",
            ],
        )

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "StyleBible":
        data = data or {}
        return cls(
            visual_style=_text(_pick(data, "visual_style", "visualStyle")),
            camera_grammar=_text(_pick(data, "camera_grammar", "cameraGrammar")),
            do_list=_text_list(_pick(data, "do_list", "doList", default=[])),
            dont_list=_text_list(_pick(data, "dont_list", "dontList", default=[])),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "visual_style": self.visual_style,
            "camera_grammar": self.camera_grammar,
            "do_list": list(self.do_list),
            "dont_list": list(self.dont_list),
        }


@dataclass
class ScenesBible:
    """Continuity canon shared by every scene of a film."""

    overview: str = ""
    character_canon: str = ""
    location_canon: str = ""
    palette_and_texture: str = ""
    cinematic_language: str = ""
    continuity_invariants: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ScenesBible":
        data = data or {}
        return cls(
            overview=_text(_pick(data, "overview")),
            character_canon=_text(_pick(data, "character_canon", "characterCanon")),
            location_canon=_text(_pick(data, "location_canon", "locationCanon")),
            palette_and_texture=_text(
                _pick(data, "palette_and_texture", "paletteAndTexture")
            ),
            cinematic_language=_text(
                _pick(data, "cinematic_language", "cinematicLanguage")
            ),
            continuity_invariants=_text_list(
                _pick(data, "continuity_invariants", "continuityInvariants", default=[])
            ),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "overview": self.overview,
            "character_canon": self.character_canon,
            "location_canon": self.location_canon,
            "palette_and_texture": self.palette_and_texture,
            "cinematic_language": self.cinematic_language,
            "continuity_invariants": list(self.continuity_invariants),
        }
