"""chaptercast pipeline package.

This package contains stage orchestration and narration manifest persistence.
"""

from .manifesting import ManifestRepository, manifest_from_payload, manifest_payload
from .orchestrator import ChapterAudioPipeline, ChapterBuildResult

__all__ = [
    "ChapterAudioPipeline",
    "ChapterBuildResult",
    "ManifestRepository",
    "manifest_from_payload",
    "manifest_payload",
]
