"""Narration unit planning.

Responsibilities:
- Turn a structured chapter document into ordered narration units.
- Assign stable ordinal ids only to blocks that survive cleaning.
- Apply the pause policy: chapter end > section boundary > block kind.

Key types:
- `PausePolicy`: the enumerated pause durations in seconds.
- `NarrationPlanner`: pure document-to-manifest transformation.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models.datatypes import (
    UNIT_KIND_INTRO,
    UNIT_KIND_PARAGRAPH,
    UNIT_KIND_QUOTE,
    ChapterDocument,
    ContentBlock,
    NarrationManifest,
    NarrationUnit,
)
from .cleaners import TextCleaner


@dataclass(frozen=True, slots=True)
class PausePolicy:
    """Pause durations in seconds keyed by unit position and kind."""

    after_title: float = 2.0
    after_paragraph: float = 0.8
    after_quote: float = 1.5
    after_section: float = 2.5
    end_chapter: float = 3.0

    def durations(self) -> tuple[float, ...]:
        """Return the distinct pause buckets in ascending order."""

        return tuple(
            sorted(
                {
                    self.after_title,
                    self.after_paragraph,
                    self.after_quote,
                    self.after_section,
                    self.end_chapter,
                }
            )
        )


DEFAULT_PAUSE_POLICY = PausePolicy()


def unit_id(chapter: int, ordinal: int) -> str:
    """Return the stable id for the `ordinal`-th unit of a chapter."""

    return f"ch{chapter}-chunk-{ordinal:03d}"


class NarrationPlanner:
    """Plan narration units for one chapter document."""

    def __init__(
        self,
        cleaner: TextCleaner | None = None,
        pause_policy: PausePolicy = DEFAULT_PAUSE_POLICY,
    ) -> None:
        self.cleaner = cleaner or TextCleaner()
        self.pause_policy = pause_policy

    def plan(self, document: ChapterDocument, lang: str) -> NarrationManifest:
        """Build the ordered narration manifest for a chapter document."""

        units = [
            NarrationUnit(
                unit_id=unit_id(document.chapter, 0),
                kind=UNIT_KIND_INTRO,
                text=f"{document.number_text}. {document.title}",
                pause_after=self.pause_policy.after_title,
            )
        ]

        ordinal = 1
        last_section_index = len(document.sections) - 1
        for section_index, section in enumerate(document.sections):
            last_block_index = len(section.blocks) - 1
            for block_index, block in enumerate(section.blocks):
                cleaned = self.cleaner.clean(block.text)
                if not cleaned:
                    continue
                units.append(
                    NarrationUnit(
                        unit_id=unit_id(document.chapter, ordinal),
                        kind=UNIT_KIND_QUOTE if block.kind == UNIT_KIND_QUOTE else UNIT_KIND_PARAGRAPH,
                        text=cleaned,
                        pause_after=self._pause_for(
                            block,
                            is_last_block=block_index == last_block_index,
                            is_last_section=section_index == last_section_index,
                        ),
                    )
                )
                ordinal += 1

        return NarrationManifest(
            chapter=document.chapter,
            title=document.title,
            lang=lang,
            units=tuple(units),
        )

    def _pause_for(self, block: ContentBlock, *, is_last_block: bool, is_last_section: bool) -> float:
        """Resolve the pause after one content block."""

        if is_last_block and is_last_section:
            return self.pause_policy.end_chapter
        if is_last_block:
            return self.pause_policy.after_section
        if block.kind == UNIT_KIND_QUOTE:
            return self.pause_policy.after_quote
        return self.pause_policy.after_paragraph


def estimate_minutes(total_characters: int) -> int:
    """Rough narration length estimate: 0.8 minutes per 1000 characters, rounded up."""

    if total_characters <= 0:
        return 0
    whole, remainder = divmod(total_characters * 8, 10_000)
    return whole + (1 if remainder else 0)

