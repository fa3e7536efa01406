# Data models for the continuity pipeline
from .continuity import (
    AnchorDecision,
    AnchorSource,
    ContinuationMode,
    ContinuityEvaluation,
    ScenePromptBundle,
)
from .storyboard import Scene, ScenesBible, StyleBible
from .video import GenerationJob, RenderedShot, VideoModel

__all__ = [
    # Continuity decisions
    "AnchorDecision",
    "AnchorSource",
    "ContinuationMode",
    "ContinuityEvaluation",
    "ScenePromptBundle",
    # Storyboard inputs
    "Scene",
    "ScenesBible",
    "StyleBible",
    # Generation
    "GenerationJob",
    "RenderedShot",
    "VideoModel",
]
