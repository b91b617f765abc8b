"""Core datatypes shared across chaptercast modules.

Responsibilities:
- Represent immutable records exchanged between pipeline stages.
- Provide explicit typing for reproducibility and serialization.

Key types:
- `ContentBlock`, `Section`, `ChapterDocument`, `NarrationUnit`,
  `NarrationManifest`, `PlanSummary`, `SynthesisReport`, `AssemblyResult`,
  `ChapterOutcome`, and `BatchReport`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


UNIT_KIND_INTRO = "intro"
UNIT_KIND_PARAGRAPH = "paragraph"
UNIT_KIND_QUOTE = "quote"


@dataclass(frozen=True, slots=True)
class ContentBlock:
    """One narratable block of a chapter section.

    Attributes:
        kind: Block type as authored (`paragraph` or `quote`).
        text: Raw block text, possibly carrying markers and emphasis tags.
    """

    kind: str
    text: str


@dataclass(frozen=True, slots=True)
class Section:
    """An ordered group of content blocks."""

    blocks: tuple[ContentBlock, ...]


@dataclass(frozen=True, slots=True)
class ChapterDocument:
    """Structured chapter source document.

    Attributes:
        chapter: 1-based chapter number.
        number_text: Ordinal label spoken before the title (for example `Chapter One`).
        title: Chapter title.
        sections: Ordered sections.
    """

    chapter: int
    number_text: str
    title: str
    sections: tuple[Section, ...]


@dataclass(frozen=True, slots=True)
class NarrationUnit:
    """One span of text synthesized as a single audio clip.

    Attributes:
        unit_id: Stable ordinal identifier (`ch<N>-chunk-<NNN>`).
        kind: `intro`, `paragraph`, or `quote`.
        text: Cleaned narration text.
        pause_after: Seconds of silence following this unit's clip.
    """

    unit_id: str
    kind: str
    text: str
    pause_after: float


@dataclass(frozen=True, slots=True)
class NarrationManifest:
    """Durable ordered record of all narration units for one chapter and language."""

    chapter: int
    title: str
    lang: str
    units: tuple[NarrationUnit, ...]

    @property
    def total_units(self) -> int:
        """Return the number of narration units."""

        return len(self.units)


@dataclass(frozen=True, slots=True)
class PlanSummary:
    """Planner output plus operator-facing size estimates."""

    manifest: NarrationManifest
    manifest_path: Path
    total_characters: int
    estimated_minutes: int


@dataclass(slots=True)
class SynthesisReport:
    """Per-chapter synthesis tally.

    Attributes:
        total: Units in the manifest.
        synthesized: Unit ids synthesized during this run.
        skipped: Unit ids whose clips already existed.
        failed: Mapping of failed unit id to a short error message.
        throttle_retries: Number of backoff retries performed.
    """

    chapter: int
    lang: str
    total: int
    synthesized: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    throttle_retries: int = 0

    @property
    def succeeded(self) -> int:
        """Return units available on disk after the run."""

        return len(self.synthesized) + len(self.skipped)

    @property
    def ok(self) -> bool:
        """Return whether every unit has a clip."""

        return not self.failed


@dataclass(frozen=True, slots=True)
class AssemblyResult:
    """Final artifact metadata reported after concatenation."""

    output_path: Path
    entry_count: int
    size_bytes: int
    duration_seconds: float | None = None


@dataclass(frozen=True, slots=True)
class ChapterOutcome:
    """Result of one chapter inside a batch run."""

    chapter: int
    ok: bool
    detail: str = ""


@dataclass(slots=True)
class BatchReport:
    """Aggregated success/failure tally across chapters."""

    lang: str
    outcomes: list[ChapterOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    @property
    def ok(self) -> bool:
        return self.failed == 0
