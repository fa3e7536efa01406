"""Plan and render one storyboard shot with continuity to its neighbours.

Planning is pure: it picks the anchor image, builds the layered prompts and
scores continuity. Rendering performs the remote generation, caches the clip
locally and extracts the last frame that anchors the following shot.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from continuity.anchor import resolve_anchor
from continuity.evaluator import evaluate_continuity, normalize_threshold
from continuity.prompt_composer import (
    build_director_override,
    compile_scene_video_prompt,
    compose_scene_prompts,
)
from models.continuity import (
    AnchorDecision,
    ContinuationMode,
    ContinuityEvaluation,
    ScenePromptBundle,
)
from models.storyboard import Scene, ScenesBible, StyleBible
from models.video import RenderedShot, VideoModel
from services.video_gen_service import VideoGenService, clamp_duration
from utils.logging import build_context

logger = logging.getLogger(__name__)


@dataclass
class ShotRequest:
    """Everything needed to plan one shot."""

    project_title: str
    synopsis: str
    scene: Scene
    continuation_mode: ContinuationMode | str = ContinuationMode.STRICT
    style_bible: Optional[StyleBible] = None
    scenes_bible: Optional[ScenesBible] = None
    film_type: str = ""
    user_prompt: str = ""
    director_layer: str = ""
    cinematographer_layer: str = ""
    auto_regenerate_threshold: Optional[float] = None

    # Neighbour context
    previous_scene: Optional[Scene] = None
    previous_clip_last_frame_url: str = ""
    manual_anchor_beat_id: str = ""
    manual_anchor_image_url: str = ""


@dataclass
class ShotPlan:
    """A shot ready to submit for generation."""

    beat_id: str
    decision: AnchorDecision
    prompts: ScenePromptBundle
    evaluation: ContinuityEvaluation
    duration_seconds: int
    video_prompt: str
    threshold: float = 0.75
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "beat_id": self.beat_id,
            "anchor": self.decision.to_dict(),
            "prompts": self.prompts.to_dict(),
            "continuity": self.evaluation.to_dict(),
            "duration_seconds": self.duration_seconds,
            "video_prompt": self.video_prompt,
            "threshold": self.threshold,
            "notes": list(self.notes),
        }


def plan_shot(request: ShotRequest, model: Optional[VideoModel] = None) -> ShotPlan:
    """Resolve the anchor, compose prompts and score continuity for one shot.

    Args:
        request: Scene and neighbour context
        model: Target model; when its prompt limit is smaller than the merged
            prompt, a compact single-line prompt is submitted instead

    Returns:
        ShotPlan
    """
    scene = request.scene
    mode = ContinuationMode.parse(request.continuation_mode)
    threshold = normalize_threshold(request.auto_regenerate_threshold)
    previous = request.previous_scene

    decision = resolve_anchor(
        mode,
        current_scene_image_url=scene.image_url,
        previous_scene_beat_id=previous.beat_id if previous else None,
        previous_scene_image_url=previous.image_url if previous else None,
        previous_clip_last_frame_url=request.previous_clip_last_frame_url,
        manual_anchor_beat_id=request.manual_anchor_beat_id,
        manual_anchor_image_url=request.manual_anchor_image_url,
    )

    director_override = build_director_override(
        mode,
        threshold,
        film_type=request.film_type,
        anchor_beat_id=decision.anchor_beat_id,
        director_layer=request.director_layer,
    )
    prompts = compose_scene_prompts(
        request.project_title,
        request.synopsis,
        scene,
        style_bible=request.style_bible,
        scenes_bible=request.scenes_bible,
        director_override=director_override,
        cinematographer_layer=request.cinematographer_layer,
    )

    evaluation = evaluate_continuity(
        mode,
        has_anchor=decision.has_anchor,
        director_layer=request.director_layer,
        cinematographer_layer=request.cinematographer_layer,
        threshold=threshold,
    )

    notes: list[str] = []
    video_prompt = prompts.merged_prompt
    if model is not None and len(video_prompt) > model.prompt_char_limit:
        video_prompt = compile_scene_video_prompt(
            scene,
            model.prompt_char_limit,
            style_bible=request.style_bible,
            scenes_bible=request.scenes_bible,
            film_type=request.film_type,
            user_prompt=request.user_prompt,
            director_layer=request.director_layer,
            cinematographer_layer=request.cinematographer_layer,
        )
        notes.append(
            f"Merged prompt exceeds {model.label} limit of {model.prompt_char_limit} "
            "characters; submitting compact prompt"
        )

    if not decision.source_image_url:
        notes.append("No source image available for this shot")

    logger.info(
        f"Planned shot {scene.beat_id}: anchor={decision.anchor_source.value} "
        f"score={evaluation.score} regenerate={evaluation.recommend_regenerate}"
    )

    return ShotPlan(
        beat_id=scene.beat_id,
        decision=decision,
        prompts=prompts,
        evaluation=evaluation,
        duration_seconds=clamp_duration(scene.duration_seconds),
        video_prompt=video_prompt,
        threshold=threshold,
        notes=notes,
    )


class ShotRenderer:
    """Runs a planned shot through generation, caching and frame extraction."""

    def __init__(self, video_service: VideoGenService, assembler):
        self.video_service = video_service
        self.assembler = assembler

    async def render(self, plan: ShotPlan, output_filename: str) -> RenderedShot:
        """Generate the clip for ``plan`` and store it as ``output_filename``.

        The last frame is written next to the clip as
        ``<stem>-last-frame.jpg``.
        """
        with build_context(f"shot-{plan.beat_id}", beat_id=plan.beat_id):
            remote_video_url = await self.video_service.generate_scene_video(
                plan.decision.source_image_url,
                plan.video_prompt,
                plan.duration_seconds,
            )
            video_path = await self.assembler.cache_remote_video(
                remote_video_url, output_filename
            )
            frame_filename = f"{Path(output_filename).stem}-last-frame.jpg"
            last_frame_path = await self.assembler.extract_last_frame(
                video_path, frame_filename
            )
            logger.info(f"Rendered shot {plan.beat_id} -> {video_path}")

        return RenderedShot(
            beat_id=plan.beat_id,
            remote_video_url=remote_video_url,
            video_path=video_path,
            last_frame_path=last_frame_path,
        )
