"""Anchor image selection for the next generated shot.

The anchor is the still image a shot is generated from. Precedence, first
match wins:

1. continuation off -> the scene's own frame
2. manual override (beat id and image both given)
3. previous clip's last frame (needs the previous beat id)
4. strict mode only: the previous scene's storyboard frame
5. the scene's own frame
"""

from typing import Optional

from models.continuity import AnchorDecision, AnchorSource, ContinuationMode


def _clean(value: Optional[str]) -> str:
    return str(value or "").strip()


def resolve_anchor(
    continuation_mode: ContinuationMode | str,
    current_scene_image_url: str,
    previous_scene_beat_id: Optional[str] = None,
    previous_scene_image_url: Optional[str] = None,
    previous_clip_last_frame_url: Optional[str] = None,
    manual_anchor_beat_id: Optional[str] = None,
    manual_anchor_image_url: Optional[str] = None,
) -> AnchorDecision:
    """Pick the source image for a shot.

    Never raises. An empty current scene image comes back as an empty
    ``source_image_url``; the generation service rejects it before submission.
    """
    mode = ContinuationMode.parse(continuation_mode)
    current = _clean(current_scene_image_url)
    previous_beat = _clean(previous_scene_beat_id)
    previous_image = _clean(previous_scene_image_url)
    last_frame = _clean(previous_clip_last_frame_url)
    manual_beat = _clean(manual_anchor_beat_id)
    manual_image = _clean(manual_anchor_image_url)

    if mode is ContinuationMode.OFF:
        return AnchorDecision(
            anchor_beat_id="",
            source_image_url=current,
            anchor_source=AnchorSource.CONTINUATION_OFF,
        )

    if manual_beat and manual_image:
        return AnchorDecision(
            anchor_beat_id=manual_beat,
            source_image_url=manual_image,
            anchor_source=AnchorSource.MANUAL_ANCHOR,
        )

    if previous_beat and last_frame:
        return AnchorDecision(
            anchor_beat_id=previous_beat,
            source_image_url=last_frame,
            anchor_source=AnchorSource.PREVIOUS_CLIP_LAST_FRAME,
        )

    if mode is ContinuationMode.STRICT and previous_beat and previous_image:
        return AnchorDecision(
            anchor_beat_id=previous_beat,
            source_image_url=previous_image,
            anchor_source=AnchorSource.PREVIOUS_SCENE_FRAME,
        )

    return AnchorDecision(
        anchor_beat_id="",
        source_image_url=current,
        anchor_source=AnchorSource.CURRENT_SCENE_FRAME,
    )
