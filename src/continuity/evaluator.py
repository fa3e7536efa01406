"""Heuristic continuity scoring for a planned shot."""

import math
from typing import Optional

from models.continuity import ContinuationMode, ContinuityEvaluation
from utils.config import DEFAULT_CONTINUITY_THRESHOLD

BASE_SCORES = {
    ContinuationMode.STRICT: 0.62,
    ContinuationMode.BALANCED: 0.72,
    ContinuationMode.LOOSE: 0.80,
}

ANCHOR_BONUS = 0.18
DIRECTOR_LAYER_BONUS = 0.05
CINEMATOGRAPHER_LAYER_BONUS = 0.07
STRICT_MISSING_ANCHOR_PENALTY = 0.08

# Prompt layers longer than this count as "rich"
RICH_LAYER_MIN_CHARS = 24


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def normalize_threshold(threshold: Optional[float]) -> float:
    """Clamp a caller threshold to [0, 1], defaulting on missing/invalid input."""
    try:
        value = float(threshold) if threshold is not None else DEFAULT_CONTINUITY_THRESHOLD
    except (TypeError, ValueError):
        return DEFAULT_CONTINUITY_THRESHOLD
    if not math.isfinite(value):
        return DEFAULT_CONTINUITY_THRESHOLD
    return _clamp(value)


def evaluate_continuity(
    continuation_mode: ContinuationMode | str,
    has_anchor: bool,
    director_layer: Optional[str] = "",
    cinematographer_layer: Optional[str] = "",
    threshold: Optional[float] = None,
) -> ContinuityEvaluation:
    """Score how likely a shot is to stay continuous with its neighbours.

    Args:
        continuation_mode: Mode the shot is generated under
        has_anchor: Whether an anchor frame from another beat was obtained
        director_layer: Director prompt layer text
        cinematographer_layer: Cinematographer prompt layer text
        threshold: Minimum acceptable score (clamped to [0, 1], default 0.75)

    Returns:
        ContinuityEvaluation; recommend_regenerate is True iff score < threshold
    """
    mode = ContinuationMode.parse(continuation_mode)
    if mode is ContinuationMode.OFF:
        return ContinuityEvaluation(
            score=1.0,
            recommend_regenerate=False,
            reason="Continuation mode is off. Regeneration is user-directed.",
        )

    score = BASE_SCORES[mode]
    if has_anchor:
        score += ANCHOR_BONUS
    if len(str(director_layer or "").strip()) > RICH_LAYER_MIN_CHARS:
        score += DIRECTOR_LAYER_BONUS
    if len(str(cinematographer_layer or "").strip()) > RICH_LAYER_MIN_CHARS:
        score += CINEMATOGRAPHER_LAYER_BONUS
    if mode is ContinuationMode.STRICT and not has_anchor:
        score -= STRICT_MISSING_ANCHOR_PENALTY
    # Scores carry four decimals
    score = round(_clamp(score), 4)

    limit = normalize_threshold(threshold)
    recommend_regenerate = score < limit

    if not recommend_regenerate:
        reason = f"Continuation score {score:.2f} meets threshold {limit:.2f}."
    elif has_anchor:
        reason = (
            f"Continuation score {score:.2f} is below threshold {limit:.2f}. "
            "Consider tightening cinematic constraints and resubmitting."
        )
    else:
        reason = (
            f"Continuation score {score:.2f} is below threshold {limit:.2f}. "
            "Add an anchor scene frame for stronger continuity."
        )

    return ContinuityEvaluation(
        score=score,
        recommend_regenerate=recommend_regenerate,
        reason=reason,
    )
