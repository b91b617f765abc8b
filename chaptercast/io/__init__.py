"""Input/output components for chaptercast.

This package contains chapter document loading, deterministic artifact
layout, and staged artifact storage used by the pipeline.
"""

from .chapter_loader import ChapterLoader
from .layout import ChapterLayout
from .storage import ArtifactStore

__all__ = ["ChapterLoader", "ChapterLayout", "ArtifactStore"]
