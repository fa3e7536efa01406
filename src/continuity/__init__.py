"""Shot-to-shot continuity: anchor selection, prompts and scoring."""

from continuity.anchor import resolve_anchor
from continuity.evaluator import evaluate_continuity, normalize_threshold
from continuity.prompt_composer import (
    build_cinematographer_prompt,
    build_director_override,
    build_director_prompt,
    build_merged_prompt,
    compile_scene_video_prompt,
    compose_scene_prompts,
)
from continuity.shot_planner import ShotPlan, ShotRenderer, ShotRequest, plan_shot

__all__ = [
    "resolve_anchor",
    "evaluate_continuity",
    "normalize_threshold",
    "build_cinematographer_prompt",
    "build_director_override",
    "build_director_prompt",
    "build_merged_prompt",
    "compile_scene_video_prompt",
    "compose_scene_prompts",
    "ShotPlan",
    "ShotRenderer",
    "ShotRequest",
    "plan_shot",
]
