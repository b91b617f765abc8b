"""Text cleanup and narration planning components.

This package provides deterministic markup cleanup and the narration unit
planner used before the synthesis stage.
"""

from .cleaners import (
    CollapseWhitespace,
    RemoveReferenceMarkers,
    ReplaceTermMarkers,
    StripEmphasisTags,
    TextCleaner,
)
from .planner import DEFAULT_PAUSE_POLICY, NarrationPlanner, PausePolicy

__all__ = [
    "TextCleaner",
    "NarrationPlanner",
    "PausePolicy",
    "DEFAULT_PAUSE_POLICY",
    "ReplaceTermMarkers",
    "RemoveReferenceMarkers",
    "StripEmphasisTags",
    "CollapseWhitespace",
]
