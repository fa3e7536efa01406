"""Prompt layers for scene video generation.

Three artifacts are built per generation attempt:

- director prompt: performance, story and style intent
- cinematographer prompt: camera and look constraints
- merged prompt: everything above, ordered by precedence

The merged prompt always lists hard continuity constraints first, camera
rules second and performance last. Every labeled line is emitted even when
its value is empty so the prompt shape stays stable.
"""

import math
import re
from dataclasses import dataclass
from typing import Optional

from models.continuity import ContinuationMode, ScenePromptBundle
from models.storyboard import Scene, ScenesBible, StyleBible

LOCATION_CANON_MAX_CHARS = 600

DIRECTOR_OBJECTIVE = (
    "Objective: deliver one coherent, legible cinematic shot whose action "
    "reads clearly from first frame to last."
)
DIRECTOR_EXCLUSIONS = (
    "Aesthetic exclusions: no artifacts, no stray text overlays, no watermarks."
)
TECHNICAL_CONSTRAINTS = (
    "Technical constraints: keep screen-direction axis consistent, "
    "no jumpy lens changes, keep subject scale continuous across the shot."
)
CINEMATOGRAPHER_HEADING = "## Cinematographer constraints"
DIRECTOR_HEADING = "## Director intent"


def _text(value) -> str:
    return str(value if value is not None else "").strip()


def _format_duration(seconds: Optional[float]) -> str:
    if seconds is None or not math.isfinite(float(seconds)):
        return ""
    if float(seconds).is_integer():
        return f"{int(seconds)}s"
    return f"{seconds}s"


def build_director_override(
    continuation_mode: ContinuationMode | str,
    auto_regenerate_threshold: float,
    film_type: str = "",
    anchor_beat_id: str = "",
    director_layer: str = "",
) -> str:
    """Join the per-request director settings into one override block."""
    mode = ContinuationMode.parse(continuation_mode)
    anchor = _text(anchor_beat_id)
    lines = [
        f"Film type: {_text(film_type)}" if _text(film_type) else "",
        f"Continuation mode: {mode.value}",
        f"Anchor beat: {anchor}" if anchor else "Anchor beat: current scene frame",
        f"Auto-regenerate threshold: {auto_regenerate_threshold}",
        _text(director_layer),
    ]
    return "\n".join(line for line in lines if line)


def build_director_prompt(
    project_title: str,
    synopsis: str,
    scene: Scene,
    style_bible: Optional[StyleBible] = None,
    director_override: str = "",
) -> str:
    """Director layer: story, performance and style intent for one scene."""
    style = style_bible or StyleBible()
    lines = [
        f"Project: {_text(project_title)}",
        f"Scene: {scene.slugline}",
        f"Visual direction: {scene.visual_direction}",
        f"Camera language: {scene.camera}",
        f"Audio mood: {scene.audio}",
        f"Voiceover intent: {scene.voiceover}",
        f"On-screen text: {scene.on_screen_text}",
        f"Duration: {_format_duration(scene.duration_seconds)}",
        f"Reference synopsis: {_text(synopsis)}",
        f"Visual style: {style.visual_style}",
        f"Camera grammar: {style.camera_grammar}",
        f"Do: {'; '.join(style.do_list)}",
        f"Don't: {'; '.join(style.dont_list)}",
        f"Director override: {_text(director_override)}",
        DIRECTOR_OBJECTIVE,
        DIRECTOR_EXCLUSIONS,
    ]
    return "\n".join(lines)


def build_cinematographer_prompt(
    scene: Scene,
    style_bible: Optional[StyleBible] = None,
    scenes_bible: Optional[ScenesBible] = None,
) -> str:
    """Cinematographer layer: camera, look and continuity locks."""
    style = style_bible or StyleBible()
    canon = scenes_bible or ScenesBible()
    lines = [
        f"Scene heading: {scene.slugline}",
        f"Shot design: {scene.camera}",
        f"Visual direction: {scene.visual_direction}",
        f"Location canon: {canon.location_canon[:LOCATION_CANON_MAX_CHARS]}",
        f"Camera grammar lock: {style.camera_grammar}",
        f"Palette and texture lock: {canon.palette_and_texture}",
        f"Cinematic language lock: {canon.cinematic_language}",
        f"Continuity invariants: {' | '.join(canon.continuity_invariants)}",
        TECHNICAL_CONSTRAINTS,
    ]
    return "\n".join(lines)


def build_merged_prompt(
    director_prompt: str,
    cinematographer_prompt: str,
    scenes_bible: Optional[ScenesBible] = None,
) -> str:
    """Merge the layers: hard constraints, then camera, then performance."""
    canon = scenes_bible or ScenesBible()
    invariants = "\n".join(f"- {item}" for item in canon.continuity_invariants)
    lines = [
        f"Scenes bible overview: {canon.overview}",
        f"Character canon: {canon.character_canon}",
        f"Location canon: {canon.location_canon}",
        "Continuity invariants:",
        invariants,
        "",
        CINEMATOGRAPHER_HEADING,
        cinematographer_prompt,
        "",
        DIRECTOR_HEADING,
        director_prompt,
    ]
    return "\n".join(lines)


def compose_scene_prompts(
    project_title: str,
    synopsis: str,
    scene: Scene,
    style_bible: Optional[StyleBible] = None,
    scenes_bible: Optional[ScenesBible] = None,
    director_override: str = "",
    cinematographer_layer: str = "",
) -> ScenePromptBundle:
    """Build all three prompt layers for one generation attempt.

    A non-empty ``cinematographer_layer`` replaces the generated
    cinematographer prompt.
    """
    director_prompt = build_director_prompt(
        project_title, synopsis, scene, style_bible, director_override
    )
    cinematographer_prompt = _text(cinematographer_layer) or build_cinematographer_prompt(
        scene, style_bible, scenes_bible
    )
    merged_prompt = build_merged_prompt(
        director_prompt, cinematographer_prompt, scenes_bible
    )
    return ScenePromptBundle(
        director_prompt=director_prompt,
        cinematographer_prompt=cinematographer_prompt,
        merged_prompt=merged_prompt,
    )


# ---------------------------------------------------------------------------
# Compact single-line prompt for models with a character budget
# ---------------------------------------------------------------------------


@dataclass
class _PromptField:
    line: str
    priority: int  # lower = more important


def _truncate(value, max_chars: int) -> str:
    text = re.sub(r"\s+", " ", str(value or "")).strip()
    if not text:
        return ""
    return text if len(text) <= max_chars else f"{text[:max_chars]}..."


def compile_scene_video_prompt(
    scene: Scene,
    char_limit: int,
    style_bible: Optional[StyleBible] = None,
    scenes_bible: Optional[ScenesBible] = None,
    film_type: str = "",
    user_prompt: str = "",
    director_layer: str = "",
    cinematographer_layer: str = "",
) -> str:
    """Compile a single-line prompt that fits within ``char_limit``.

    Lowest-priority fields are dropped first (last one added wins the drop
    among equals) until the prompt fits; a hard cut is applied as a last resort.
    """
    style = style_bible or StyleBible()
    canon = scenes_bible or ScenesBible()

    try:
        raw_duration = float(scene.duration_seconds or 5)
    except (TypeError, ValueError):
        raw_duration = 5.0
    duration = round(max(4.0, min(10.0, raw_duration)))

    camera_parts = [part for part in (scene.camera, style.camera_grammar) if part]
    camera = ". ".join(camera_parts)
    look = ". ".join(part for part in (_text(film_type), style.visual_style) if part)
    invariants = [_truncate(item, 80) for item in canon.continuity_invariants[:3]]

    fields: list[_PromptField] = []

    def add(label: str, value: str, max_chars: int, priority: int) -> None:
        text = _truncate(value, max_chars)
        if text:
            fields.append(_PromptField(f"{label}: {text}", priority))

    fields.append(_PromptField("One coherent cinematic shot from the reference image.", 0))
    add("Scene", scene.slugline, 180, 0)
    add("Action", scene.visual_direction, 260, 0)
    add("Camera", camera, 220, 1)
    add("Look", look, 160, 1)
    add("Mood", scene.audio, 140, 2)
    fields.append(_PromptField(f"Duration: {duration}s", 0))
    add("Setting", canon.location_canon, 180, 3)
    add("Character", canon.character_canon, 180, 3)
    add("Palette", canon.palette_and_texture, 140, 4)
    if invariants:
        fields.append(_PromptField(f"Invariants: {' | '.join(invariants)}", 4))
    add("Intent", user_prompt, 300, 1)
    add("Director", director_layer, 300, 5)
    add("Cinematography", cinematographer_layer, 300, 5)
    fields.append(
        _PromptField(
            "No text overlays. No watermarks. "
            "Preserve subject identity and lighting continuity.",
            6,
        )
    )

    # Stable sort keeps insertion order among equal priorities
    fields.sort(key=lambda f: f.priority)

    result = " ".join(f.line for f in fields)
    while len(result) > char_limit and len(fields) > 1:
        worst = max(f.priority for f in fields)
        for i in range(len(fields) - 1, -1, -1):
            if fields[i].priority == worst:
                del fields[i]
                break
        result = " ".join(f.line for f in fields)

    return result if len(result) <= char_limit else result[:char_limit]
