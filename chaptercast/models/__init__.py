"""Shared typed data models for chaptercast.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    AssemblyResult,
    BatchReport,
    ChapterDocument,
    ChapterOutcome,
    ContentBlock,
    NarrationManifest,
    NarrationUnit,
    PlanSummary,
    Section,
    SynthesisReport,
)

__all__ = [
    "AssemblyResult",
    "BatchReport",
    "ChapterDocument",
    "ChapterOutcome",
    "ContentBlock",
    "NarrationManifest",
    "NarrationUnit",
    "PlanSummary",
    "Section",
    "SynthesisReport",
]
