"""Deterministic narration text cleaning rules.

Responsibilities:
- Strip site markup (term/reference markers, emphasis tags) from chapter blocks.
- Keep preprocessing predictable so re-planning yields identical manifests.
"""

from __future__ import annotations

import re
from typing import Protocol


class CleanerRule(Protocol):
    """Protocol for text cleaning rules."""

    def apply(self, text: str) -> str:
        """Apply a single cleaning transformation."""


class ReplaceTermMarkers:
    """Replace `{term:id}` / `{term:id|display}` markers with their spoken text."""

    _TERM_RE = re.compile(r"\{term:([^}|]+)(?:\|([^}]+))?\}")

    def apply(self, text: str) -> str:
        """Use the custom display text when given, else the raw term identifier."""

        return self._TERM_RE.sub(lambda match: match.group(2) or match.group(1), text)


class RemoveReferenceMarkers:
    """Remove inline `{ref:id}` cross-reference markers."""

    def apply(self, text: str) -> str:
        """Apply reference-marker cleanup rule."""

        return re.sub(r"\{ref:[^}]+\}", "", text)


class StripEmphasisTags:
    """Drop `<em>` and `<strong>` tags while keeping their content."""

    def apply(self, text: str) -> str:
        """Apply emphasis-tag cleanup rule."""

        return re.sub(r"</?(?:em|strong)>", "", text)


class CollapseWhitespace:
    """Collapse all whitespace runs into single spaces and trim."""

    def apply(self, text: str) -> str:
        return re.sub(r"\s+", " ", text).strip()


class TextCleaner:
    """Apply a sequence of deterministic cleaner rules."""

    def __init__(self, rules: list[CleanerRule] | None = None) -> None:
        """Initialize with custom rules or default rule sequence."""

        self.rules = rules or [
            ReplaceTermMarkers(),
            RemoveReferenceMarkers(),
            StripEmphasisTags(),
            CollapseWhitespace(),
        ]

    def clean(self, text: str | None) -> str:
        """Apply all configured rules in order; `None` cleans to an empty string."""

        if not text:
            return ""
        current = text
        for rule in self.rules:
            current = rule.apply(current)
        return current
