"""Deterministic filesystem layout for chapter audio artifacts.

Layout under the audio root::

    silences/silence-<d>s.mp3          shared by every chapter and language
    <lang>/ch<N>/chunks.json           narration manifest
    <lang>/ch<N>/chunks/<unit id>.mp3  synthesized clips
    <lang>/ch<N>/ch<N>-<lang>.mp3      final chapter artifact
    <lang>/book-<lang>.mp3             optional full-book artifact
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..parsing import format_seconds_label


SILENCES_DIRNAME = "silences"
MANIFEST_FILENAME = "chunks.json"
CLIPS_DIRNAME = "chunks"


def silences_dir(audio_root: Path) -> Path:
    """Return the shared silence asset directory."""

    return audio_root / SILENCES_DIRNAME


def silence_filename(duration: float) -> str:
    """Return the deterministic filename for one silence bucket."""

    return f"silence-{format_seconds_label(duration)}s.mp3"


def chapter_source_path(content_root: Path, lang: str, chapter: int) -> Path:
    """Return the structured chapter document path for one language."""

    return content_root / lang / "chapters" / f"ch{chapter}.json"


def book_artifact_path(audio_root: Path, lang: str) -> Path:
    """Return the full-book artifact path for one language."""

    return audio_root / lang / f"book-{lang}.mp3"


@dataclass(frozen=True, slots=True)
class ChapterLayout:
    """Resolved artifact locations for one (language, chapter) pair."""

    audio_root: Path
    lang: str
    chapter: int

    @property
    def chapter_dir(self) -> Path:
        return self.audio_root / self.lang / f"ch{self.chapter}"

    @property
    def manifest_path(self) -> Path:
        return self.chapter_dir / MANIFEST_FILENAME

    @property
    def clips_dir(self) -> Path:
        return self.chapter_dir / CLIPS_DIRNAME

    @property
    def final_artifact_path(self) -> Path:
        return self.chapter_dir / f"ch{self.chapter}-{self.lang}.mp3"

    @property
    def concat_list_path(self) -> Path:
        return self.chapter_dir / "concat-list.txt"

    def clip_path(self, unit_id: str) -> Path:
        """Return the clip location for one narration unit."""

        return self.clips_dir / f"{unit_id}.mp3"

    def silence_path(self, duration: float) -> Path:
        """Return the shared silence asset location for one pause duration."""

        return silences_dir(self.audio_root) / silence_filename(duration)
