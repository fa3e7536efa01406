"""Unit tests for the director / cinematographer / merged prompt layers."""

import pytest

from continuity.prompt_composer import (
    CINEMATOGRAPHER_HEADING,
    DIRECTOR_HEADING,
    LOCATION_CANON_MAX_CHARS,
    build_cinematographer_prompt,
    build_director_override,
    build_director_prompt,
    compile_scene_video_prompt,
    compose_scene_prompts,
)
from models.storyboard import Scene, ScenesBible, StyleBible


@pytest.mark.unit
class TestDirectorPrompt:
    def test_contains_scene_fields_and_override(self, sample_scene, sample_style_bible):
        prompt = build_director_prompt(
            "The Keeper",
            "A lighthouse keeper's last winter.",
            sample_scene,
            sample_style_bible,
            director_override="Continuation mode: strict",
        )

        assert "Project: The Keeper" in prompt
        assert "Scene: INT. LIGHTHOUSE - NIGHT" in prompt
        assert "Duration: 6s" in prompt
        assert "Do: Keep emotional clarity; Show cause-and-effect" in prompt
        assert "Director override: Continuation mode: strict" in prompt

    def test_empty_fields_keep_their_labels(self):
        prompt = build_director_prompt("", "", Scene(beat_id="b"))

        for label in ("Project:", "Visual direction:", "On-screen text:", "Duration:"):
            assert label in prompt
        assert "Aesthetic exclusions:" in prompt


@pytest.mark.unit
class TestDirectorOverride:
    def test_lists_mode_anchor_and_threshold(self):
        override = build_director_override(
            "balanced", 0.8, film_type="Drama", anchor_beat_id="beat-1",
            director_layer="Let the silence play",
        )

        assert override.splitlines() == [
            "Film type: Drama",
            "Continuation mode: balanced",
            "Anchor beat: beat-1",
            "Auto-regenerate threshold: 0.8",
            "Let the silence play",
        ]

    def test_without_anchor_mentions_current_frame(self):
        override = build_director_override("strict", 0.75)

        assert "Anchor beat: current scene frame" in override
        assert "Film type" not in override


@pytest.mark.unit
class TestCinematographerPrompt:
    def test_truncates_location_canon(self, sample_scene):
        canon = ScenesBible(location_canon="L" * (LOCATION_CANON_MAX_CHARS + 50))

        prompt = build_cinematographer_prompt(sample_scene, StyleBible(), canon)

        line = next(l for l in prompt.splitlines() if l.startswith("Location canon:"))
        assert line == "Location canon: " + "L" * LOCATION_CANON_MAX_CHARS

    def test_invariants_joined_with_pipes(self, sample_scene, sample_scenes_bible):
        prompt = build_cinematographer_prompt(sample_scene, None, sample_scenes_bible)

        assert (
            "Continuity invariants: Mara always wears the yellow oilskin | "
            "Lantern light is warm amber" in prompt
        )
        assert "Technical constraints:" in prompt


@pytest.mark.unit
class TestComposeScenePrompts:
    def test_merged_prompt_orders_constraints_camera_then_director(
        self, sample_scene, sample_style_bible, sample_scenes_bible
    ):
        bundle = compose_scene_prompts(
            "The Keeper", "Synopsis", sample_scene, sample_style_bible, sample_scenes_bible
        )
        merged = bundle.merged_prompt

        invariants_at = merged.index("Continuity invariants:")
        camera_at = merged.index(CINEMATOGRAPHER_HEADING)
        director_at = merged.index(DIRECTOR_HEADING)
        assert invariants_at < camera_at < director_at
        assert "- Mara always wears the yellow oilskin" in merged
        assert merged.index(bundle.cinematographer_prompt) > camera_at
        assert merged.index(bundle.director_prompt) > director_at

    def test_cinematographer_layer_replaces_generated_prompt(self, sample_scene):
        bundle = compose_scene_prompts(
            "T", "S", sample_scene, cinematographer_layer="  Anamorphic, 2.39:1  "
        )

        assert bundle.cinematographer_prompt == "Anamorphic, 2.39:1"
        assert "Shot design:" not in bundle.merged_prompt

    def test_missing_bibles_still_produce_all_layers(self):
        bundle = compose_scene_prompts("T", "S", Scene(beat_id="b"))

        assert bundle.director_prompt
        assert bundle.cinematographer_prompt
        assert "Scenes bible overview:" in bundle.merged_prompt


@pytest.mark.unit
class TestCompileSceneVideoPrompt:
    def test_fits_generous_limit_with_all_fields(
        self, sample_scene, sample_style_bible, sample_scenes_bible
    ):
        prompt = compile_scene_video_prompt(
            sample_scene,
            5000,
            style_bible=sample_style_bible,
            scenes_bible=sample_scenes_bible,
            director_layer="Let the silence play",
        )

        assert "\n" not in prompt
        assert prompt.startswith("One coherent cinematic shot from the reference image.")
        assert "Duration: 6s" in prompt
        assert "Director: Let the silence play" in prompt
        assert "No watermarks." in prompt
        # Only the first three invariants are carried
        assert "Storm intensifies" in prompt
        assert "beam sweeps clockwise" not in prompt

    def test_drops_lowest_priority_fields_first(
        self, sample_scene, sample_style_bible, sample_scenes_bible
    ):
        full = compile_scene_video_prompt(
            sample_scene, 5000, sample_style_bible, sample_scenes_bible
        )
        limit = len(full) - 10

        prompt = compile_scene_video_prompt(
            sample_scene, limit, sample_style_bible, sample_scenes_bible
        )

        assert len(prompt) <= limit
        assert "No text overlays" not in prompt
        assert "Scene: INT. LIGHTHOUSE - NIGHT" in prompt

    def test_hard_limit_is_enforced(self, sample_scene):
        prompt = compile_scene_video_prompt(sample_scene, 20)

        assert len(prompt) == 20

    def test_duration_clamped_to_four_through_ten(self):
        short = compile_scene_video_prompt(Scene(beat_id="b", duration_seconds=2), 5000)
        long = compile_scene_video_prompt(Scene(beat_id="b", duration_seconds=30), 5000)

        assert "Duration: 4s" in short
        assert "Duration: 10s" in long
