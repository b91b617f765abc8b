"""Structured chapter document loading.

Responsibilities:
- Read one `ch<N>.json` chapter document from the content tree.
- Validate its shape and map it into typed `ChapterDocument` records.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from ..errors import ChapterSourceMissingError
from ..models.datatypes import ChapterDocument, ContentBlock, Section
from .layout import chapter_source_path


class ChapterLoader:
    """Load chapter documents from `<content_root>/<lang>/chapters/`."""

    def __init__(self, content_root: Path) -> None:
        self.content_root = content_root

    def load(self, chapter: int, lang: str) -> ChapterDocument:
        """Load and validate one chapter document."""

        path = chapter_source_path(self.content_root, lang, chapter)
        if not path.is_file():
            raise ChapterSourceMissingError(
                f"Chapter file not found: `{path}`.",
                hint="Verify `--content-root` and that the chapter exists for this language.",
            )
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ChapterSourceMissingError(
                f"Chapter file `{path}` is not valid UTF-8 JSON: {exc}",
                hint="Fix the chapter JSON and rerun `chaptercast plan`.",
            ) from exc
        except OSError as exc:
            raise ChapterSourceMissingError(
                f"Chapter file `{path}` could not be read: {exc}",
                hint="Verify the chapter file is readable.",
            ) from exc
        return self.parse(payload, chapter=chapter, source_label=str(path))

    @staticmethod
    def parse(payload: Any, *, chapter: int, source_label: str = "chapter") -> ChapterDocument:
        """Map a decoded chapter payload into a `ChapterDocument`."""

        if not isinstance(payload, Mapping):
            raise ChapterSourceMissingError(
                f"Chapter `{source_label}` must contain a top-level object."
            )
        raw_sections = payload.get("sections") or []
        if not isinstance(raw_sections, list):
            raise ChapterSourceMissingError(
                f"Chapter `{source_label}` field `sections` must be a list."
            )

        sections: list[Section] = []
        for section_index, raw_section in enumerate(raw_sections):
            if not isinstance(raw_section, Mapping):
                raise ChapterSourceMissingError(
                    f"Chapter `{source_label}` section {section_index} must be an object."
                )
            raw_blocks = raw_section.get("content") or []
            if not isinstance(raw_blocks, list):
                raise ChapterSourceMissingError(
                    f"Chapter `{source_label}` section {section_index} `content` must be a list."
                )
            blocks = tuple(ChapterLoader._parse_block(raw_block) for raw_block in raw_blocks)
            sections.append(Section(blocks=blocks))

        return ChapterDocument(
            chapter=chapter,
            number_text=str(payload.get("numberText") or "").strip(),
            title=str(payload.get("title") or "").strip(),
            sections=tuple(sections),
        )

    @staticmethod
    def _parse_block(raw_block: Any) -> ContentBlock:
        """Parse one content block, tolerating missing text."""

        if not isinstance(raw_block, Mapping):
            return ContentBlock(kind="paragraph", text="")
        kind = str(raw_block.get("type") or "paragraph")
        text = raw_block.get("text")
        return ContentBlock(kind=kind, text=text if isinstance(text, str) else "")
