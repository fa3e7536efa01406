"""Models for shot-to-shot continuity decisions."""

from dataclasses import dataclass
from enum import Enum


class ContinuationMode(str, Enum):
    """How strongly a new shot is tied to the shots before it."""

    OFF = "off"
    STRICT = "strict"
    BALANCED = "balanced"
    LOOSE = "loose"

    @classmethod
    def parse(cls, value: "ContinuationMode | str | None") -> "ContinuationMode":
        """Coerce a user-supplied mode, defaulting to STRICT for unknown values."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        try:
            return cls(text)
        except ValueError:
            return cls.STRICT


class AnchorSource(str, Enum):
    """Provenance of the image a shot is generated from."""

    CONTINUATION_OFF = "continuation-off-current-scene-frame"
    MANUAL_ANCHOR = "manual-anchor-scene"
    PREVIOUS_CLIP_LAST_FRAME = "previous-clip-last-frame"
    PREVIOUS_SCENE_FRAME = "previous-scene-storyboard-frame"
    CURRENT_SCENE_FRAME = "current-scene-frame"


@dataclass(frozen=True)
class AnchorDecision:
    """Source image chosen for the next shot and where it came from."""

    anchor_beat_id: str
    source_image_url: str
    anchor_source: AnchorSource

    @property
    def has_anchor(self) -> bool:
        return bool(self.anchor_beat_id)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "anchor_beat_id": self.anchor_beat_id,
            "source_image_url": self.source_image_url,
            "anchor_source": self.anchor_source.value,
        }


@dataclass(frozen=True)
class ContinuityEvaluation:
    """Heuristic continuity score and regeneration advice for one shot."""

    score: float
    recommend_regenerate: bool
    reason: str

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "score": self.score,
            "recommend_regenerate": self.recommend_regenerate,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ScenePromptBundle:
    """The three prompt layers built for one generation attempt."""

    director_prompt: str
    cinematographer_prompt: str
    merged_prompt: str

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "director_prompt": self.director_prompt,
            "cinematographer_prompt": self.cinematographer_prompt,
            "merged_prompt": self.merged_prompt,
        }
