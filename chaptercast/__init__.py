"""Top-level package for chaptercast.

This package turns structured book chapters into narrated MP3 files: it plans
narration units, synthesizes them through a text-to-speech provider, and
losslessly joins the clips with silences. The main orchestration entry point is
`ChapterAudioPipeline`.
"""

from .pipeline import ChapterAudioPipeline

__all__ = ["ChapterAudioPipeline", "__version__"]

__version__ = "0.1.0"
