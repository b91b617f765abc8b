"""Narration manifest serialization and persistence.

Responsibilities:
- Map `NarrationManifest` records to and from the `chunks.json` contract.
- Persist the manifest to its deterministic (language, chapter) location.
- Map absent or malformed manifests to stage-aware errors.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from ..errors import ManifestMissingError, PipelineStageError
from ..io.layout import ChapterLayout
from ..io.storage import ArtifactStore
from ..models.datatypes import NarrationManifest, NarrationUnit


def manifest_payload(manifest: NarrationManifest) -> dict[str, Any]:
    """Serialize a manifest into its stable JSON payload."""

    return {
        "chapter": manifest.chapter,
        "title": manifest.title,
        "lang": manifest.lang,
        "totalChunks": manifest.total_units,
        "chunks": [
            {
                "id": unit.unit_id,
                "type": unit.kind,
                "text": unit.text,
                "pauseAfter": unit.pause_after,
            }
            for unit in manifest.units
        ],
    }


def manifest_from_payload(payload: Mapping[str, Any]) -> NarrationManifest:
    """Parse a manifest payload, raising `ValueError` for malformed content."""

    if not isinstance(payload, Mapping):
        raise ValueError("manifest must be a JSON object")
    raw_units = payload.get("chunks")
    if not isinstance(raw_units, list):
        raise ValueError("manifest field `chunks` must be a list")

    units: list[NarrationUnit] = []
    for index, raw_unit in enumerate(raw_units):
        if not isinstance(raw_unit, Mapping):
            raise ValueError(f"manifest chunk {index} must be an object")
        try:
            units.append(
                NarrationUnit(
                    unit_id=str(raw_unit["id"]),
                    kind=str(raw_unit["type"]),
                    text=str(raw_unit["text"]),
                    pause_after=float(raw_unit.get("pauseAfter", 0.0)),
                )
            )
        except KeyError as exc:
            raise ValueError(f"manifest chunk {index} is missing `{exc.args[0]}`") from exc

    total = payload.get("totalChunks", len(units))
    if total != len(units):
        raise ValueError(
            f"manifest `totalChunks` is {total} but {len(units)} chunk(s) are listed"
        )

    return NarrationManifest(
        chapter=int(payload["chapter"]),
        title=str(payload.get("title", "")),
        lang=str(payload["lang"]),
        units=tuple(units),
    )


class ManifestRepository:
    """Read and write narration manifests under the audio root."""

    def __init__(self, audio_root: Path) -> None:
        self.audio_root = audio_root
        self.store = ArtifactStore(audio_root)

    def _relative_path(self, chapter: int, lang: str) -> Path:
        layout = ChapterLayout(self.audio_root, lang, chapter)
        return layout.manifest_path.relative_to(self.audio_root)

    def write(self, manifest: NarrationManifest) -> Path:
        """Persist a manifest and return its path."""

        try:
            return self.store.save_json(
                self._relative_path(manifest.chapter, manifest.lang),
                manifest_payload(manifest),
            )
        except OSError as exc:
            raise PipelineStageError(
                stage="plan",
                detail=f"Failed to write manifest: {exc}",
                hint="Verify the audio root directory is writable.",
            ) from exc

    def load(self, chapter: int, lang: str, *, stage: str) -> NarrationManifest:
        """Load a previously planned manifest for a downstream stage."""

        relative = self._relative_path(chapter, lang)
        path = self.store.path_for(relative)
        if not path.is_file():
            raise ManifestMissingError(stage=stage, chapter=chapter, lang=lang, path=str(path))
        try:
            return manifest_from_payload(self.store.load_json(relative))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise PipelineStageError(
                stage=stage,
                detail=f"Manifest `{path}` is malformed: {exc}",
                hint=f"Re-plan the chapter with `chaptercast plan {chapter} {lang}`.",
            ) from exc
