"""Lossless chapter and book assembly.

Responsibilities:
- Validate that every clip and every required silence exists before assembling.
- Build the concat sequence strictly in manifest order:
  clip(u1), silence(p1), clip(u2), silence(p2), ...
- Join with the ffmpeg concat demuxer in stream-copy mode (no re-encoding),
  writing to a staging file that replaces the final artifact only on success.
"""

from __future__ import annotations

import os
from pathlib import Path

from ..errors import (
    ChapterArtifactMissingError,
    ClipMissingError,
    ConcatenationToolError,
    PipelineStageError,
    SilenceMissingError,
)
from ..io.layout import ChapterLayout, book_artifact_path
from ..io.storage import ArtifactStore
from ..models.datatypes import AssemblyResult, NarrationManifest
from ..runtime_tools import resolve_executable, run_tool
from ..telemetry.logger import RunLogger


def escape_concat_path(path: Path) -> str:
    """Escape one file path for the ffmpeg concat list format."""

    return str(path).replace("'", "'\\''")


def _has_content(path: Path) -> bool:
    return path.is_file() and path.stat().st_size > 0


def expected_entry_count(manifest: NarrationManifest) -> int:
    """Return `2 x units` minus the units whose pause is zero."""

    zero_pause = sum(1 for unit in manifest.units if unit.pause_after <= 0)
    return 2 * manifest.total_units - zero_pause


class ConcatRunner:
    """Shared ffmpeg concat-demuxer invocation with staged output."""

    def __init__(
        self,
        ffmpeg: str | None = None,
        ffprobe: str | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.ffmpeg = resolve_executable("ffmpeg", ffmpeg)
        self.ffprobe = resolve_executable("ffprobe", ffprobe)
        self.run_logger = run_logger

    def concat(
        self,
        entries: list[Path],
        output_path: Path,
        list_path: Path,
        *,
        stage: str,
    ) -> AssemblyResult:
        """Concatenate `entries` into `output_path` without re-encoding."""

        listing = "".join(f"file '{escape_concat_path(entry.resolve())}'\n" for entry in entries)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            list_path.write_text(listing, encoding="utf-8")
            staging = ArtifactStore.reserve_staging_path(output_path)
        except OSError as exc:
            if list_path.is_file():
                list_path.unlink()
            raise ConcatenationToolError(
                f"Failed to prepare concat inputs for `{output_path.name}`: {exc}",
                hint="Check the output directory is writable, then rerun.",
                stage=stage,
            ) from exc
        command = [
            self.ffmpeg,
            "-y",
            "-hide_banner",
            "-loglevel",
            "error",
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            str(list_path),
            "-c",
            "copy",
            "-f",
            "mp3",
            str(staging),
        ]
        try:
            run_tool(command, stage=stage, action=f"concatenating `{output_path.name}`")
            if not staging.is_file() or staging.stat().st_size == 0:
                raise ConcatenationToolError(
                    f"ffmpeg produced no output for `{output_path.name}`.",
                    hint="Verify the clip files are valid MP3 audio.",
                    stage=stage,
                )
            os.replace(staging, output_path)
        except OSError as exc:
            raise ConcatenationToolError(
                f"Failed to store `{output_path.name}`: {exc}",
                hint="Check the output directory is writable, then rerun.",
                stage=stage,
            ) from exc
        finally:
            if staging.exists():
                staging.unlink()
            if list_path.exists():
                list_path.unlink()

        return AssemblyResult(
            output_path=output_path,
            entry_count=len(entries),
            size_bytes=output_path.stat().st_size,
            duration_seconds=self.probe_duration(output_path, stage=stage),
        )

    def probe_duration(self, path: Path, *, stage: str) -> float | None:
        """Return media duration in seconds, or `None` when ffprobe cannot report it."""

        command = [
            self.ffprobe,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(path),
        ]
        try:
            completed = run_tool(command, stage=stage, action=f"probing `{path.name}`")
            return float(completed.stdout.strip())
        except (ConcatenationToolError, ValueError) as exc:
            if self.run_logger is not None:
                self.run_logger.log_stage_failure(
                    stage, type(exc).__name__, probe=path.name
                )
            return None


class ChapterAssembler:
    """Assemble one chapter's final artifact from its manifest."""

    def __init__(self, audio_root: Path, concat_runner: ConcatRunner | None = None) -> None:
        self.audio_root = audio_root
        self.concat_runner = concat_runner or ConcatRunner()

    def concat_entries(self, manifest: NarrationManifest) -> list[Path]:
        """Return the validated, ordered concat inputs for a manifest."""

        layout = ChapterLayout(self.audio_root, manifest.lang, manifest.chapter)
        missing_ids = [
            unit.unit_id
            for unit in manifest.units
            if not _has_content(layout.clip_path(unit.unit_id))
        ]
        if missing_ids:
            raise ClipMissingError(
                chapter=manifest.chapter,
                lang=manifest.lang,
                missing_ids=missing_ids,
            )

        entries: list[Path] = []
        for unit in manifest.units:
            entries.append(layout.clip_path(unit.unit_id))
            if unit.pause_after > 0:
                silence = layout.silence_path(unit.pause_after)
                if not _has_content(silence):
                    raise SilenceMissingError(duration=unit.pause_after, path=str(silence))
                entries.append(silence)

        expected = expected_entry_count(manifest)
        if len(entries) != expected:
            raise PipelineStageError(
                stage="assemble",
                detail=f"Concat list has {len(entries)} entries, expected {expected}.",
            )
        return entries

    def assemble(self, manifest: NarrationManifest) -> AssemblyResult:
        """Validate inputs and write the chapter's final artifact."""

        layout = ChapterLayout(self.audio_root, manifest.lang, manifest.chapter)
        entries = self.concat_entries(manifest)
        return self.concat_runner.concat(
            entries,
            layout.final_artifact_path,
            layout.concat_list_path,
            stage="assemble",
        )


class BookAssembler:
    """Join chapter artifacts of one language into a full-book file."""

    def __init__(self, audio_root: Path, concat_runner: ConcatRunner | None = None) -> None:
        self.audio_root = audio_root
        self.concat_runner = concat_runner or ConcatRunner()

    def assemble(self, lang: str, chapters: list[int]) -> AssemblyResult:
        """Concatenate chapter artifacts in ascending chapter order."""

        ordered = sorted(set(chapters))
        paths = [
            ChapterLayout(self.audio_root, lang, chapter).final_artifact_path
            for chapter in ordered
        ]
        missing = [chapter for chapter, path in zip(ordered, paths) if not path.is_file()]
        if missing:
            raise ChapterArtifactMissingError(lang=lang, missing_chapters=missing)

        output_path = book_artifact_path(self.audio_root, lang)
        return self.concat_runner.concat(
            paths,
            output_path,
            output_path.with_name(f"book-{lang}-concat-list.txt"),
            stage="book",
        )
