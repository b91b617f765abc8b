"""Unit tests for lossless chapter and book assembly."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from chaptercast.audio.assembler import (
    BookAssembler,
    ChapterAssembler,
    ConcatRunner,
    escape_concat_path,
    expected_entry_count,
)
from chaptercast.audio.silence import SilenceLibrary
from chaptercast.errors import (
    ChapterArtifactMissingError,
    ClipMissingError,
    ConcatenationToolError,
    SilenceMissingError,
)
from chaptercast.io.layout import ChapterLayout
from chaptercast.models.datatypes import NarrationManifest, NarrationUnit


def _manifest(pauses: list[float]) -> NarrationManifest:
    return NarrationManifest(
        chapter=1,
        title="Origins",
        lang="en",
        units=tuple(
            NarrationUnit(f"ch1-chunk-{index:03d}", "paragraph", f"Text {index}.", pause)
            for index, pause in enumerate(pauses)
        ),
    )


def _write_clips(
    audio_root: Path, manifest: NarrationManifest, skip: tuple[str, ...] = ()
) -> None:
    layout = ChapterLayout(audio_root, manifest.lang, manifest.chapter)
    for unit in manifest.units:
        if unit.unit_id in skip:
            continue
        path = layout.clip_path(unit.unit_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"mp3")


def test_concat_list_interleaves_clips_and_silences_in_manifest_order(
    fake_audio_tools: Any, audio_root: Path
) -> None:
    """Entry k is clip(u_k) followed by the silence for its pause."""

    manifest = _manifest([2.0, 0.8, 2.5, 3.0])
    _write_clips(audio_root, manifest)
    SilenceLibrary(audio_root).ensure_all()

    result = ChapterAssembler(audio_root, ConcatRunner()).assemble(manifest)

    layout = ChapterLayout(audio_root, "en", 1)
    expected_names = [
        "ch1-chunk-000.mp3",
        "silence-2s.mp3",
        "ch1-chunk-001.mp3",
        "silence-0.8s.mp3",
        "ch1-chunk-002.mp3",
        "silence-2.5s.mp3",
        "ch1-chunk-003.mp3",
        "silence-3s.mp3",
    ]
    [concat_lines] = fake_audio_tools.concat_lists
    assert [Path(line[len("file '") : -1]).name for line in concat_lines] == expected_names
    assert result.output_path == layout.final_artifact_path
    assert result.output_path.read_bytes() == b"ID3fake-mp3"
    assert result.entry_count == 8
    assert result.duration_seconds == 12.5
    assert not layout.concat_list_path.exists()


def test_concat_uses_stream_copy(fake_audio_tools: Any, audio_root: Path) -> None:
    """Assembly must join without re-encoding."""

    manifest = _manifest([2.0])
    _write_clips(audio_root, manifest)
    SilenceLibrary(audio_root).ensure(2.0)

    ChapterAssembler(audio_root, ConcatRunner()).assemble(manifest)

    concat_command = next(command for command in fake_audio_tools.commands if "concat" in command)
    assert concat_command[concat_command.index("-c") + 1] == "copy"
    assert concat_command[concat_command.index("-safe") + 1] == "0"


def test_missing_clips_are_all_named_and_no_artifact_is_written(
    fake_audio_tools: Any, audio_root: Path
) -> None:
    """Assembly refuses to run and lists every missing unit id."""

    manifest = _manifest([2.0, 0.8, 0.8, 3.0])
    _write_clips(audio_root, manifest, skip=("ch1-chunk-001", "ch1-chunk-003"))
    SilenceLibrary(audio_root).ensure_all()
    command_count = len(fake_audio_tools.commands)

    with pytest.raises(ClipMissingError) as exc_info:
        ChapterAssembler(audio_root, ConcatRunner()).assemble(manifest)

    assert exc_info.value.missing_ids == ["ch1-chunk-001", "ch1-chunk-003"]
    assert "ch1-chunk-001, ch1-chunk-003" in exc_info.value.detail
    assert len(fake_audio_tools.commands) == command_count
    assert not ChapterLayout(audio_root, "en", 1).final_artifact_path.exists()


def test_missing_silence_is_reported(fake_audio_tools: Any, audio_root: Path) -> None:
    """A pause without its silence asset fails before the tool runs."""

    _ = fake_audio_tools
    manifest = _manifest([1.5])
    _write_clips(audio_root, manifest)

    with pytest.raises(SilenceMissingError, match="silence-1.5s.mp3"):
        ChapterAssembler(audio_root, ConcatRunner()).assemble(manifest)


def test_zero_byte_silence_counts_as_missing(fake_audio_tools: Any, audio_root: Path) -> None:
    """An empty silence file left by an interrupted render never reaches the concat list."""

    manifest = _manifest([2.0])
    _write_clips(audio_root, manifest)
    silence = audio_root / "silences" / "silence-2s.mp3"
    silence.parent.mkdir(parents=True, exist_ok=True)
    silence.write_bytes(b"")

    with pytest.raises(SilenceMissingError, match="silence-2s.mp3"):
        ChapterAssembler(audio_root, ConcatRunner()).assemble(manifest)

    assert fake_audio_tools.concat_lists == []


def test_unwritable_concat_list_is_a_stage_error(fake_audio_tools: Any, tmp_path: Path) -> None:
    """Filesystem errors while preparing the concat list map to the calling stage."""

    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"not a directory")
    clip = tmp_path / "clip.mp3"
    clip.write_bytes(b"mp3")

    with pytest.raises(ConcatenationToolError, match="concat inputs") as exc_info:
        ConcatRunner().concat(
            [clip], tmp_path / "out.mp3", blocker / "list.txt", stage="book"
        )

    assert exc_info.value.stage == "book"
    assert exc_info.value.hint == "Check the output directory is writable, then rerun."
    assert fake_audio_tools.commands == []
    assert not (tmp_path / "out.mp3").exists()


def test_zero_pause_units_contribute_only_their_clip(audio_root: Path) -> None:
    """Units with no pause add one entry instead of two."""

    manifest = _manifest([2.0, 0.0, 3.0])
    _write_clips(audio_root, manifest)
    for name in ("silence-2s.mp3", "silence-3s.mp3"):
        path = audio_root / "silences" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"mp3")

    entries = ChapterAssembler(audio_root, ConcatRunner()).concat_entries(manifest)

    assert expected_entry_count(manifest) == 5
    assert [entry.name for entry in entries] == [
        "ch1-chunk-000.mp3",
        "silence-2s.mp3",
        "ch1-chunk-001.mp3",
        "ch1-chunk-002.mp3",
        "silence-3s.mp3",
    ]


def test_tool_failure_keeps_previous_artifact_untouched(
    fake_audio_tools: Any, audio_root: Path
) -> None:
    """A failing concat never replaces an existing final artifact."""

    manifest = _manifest([2.0])
    _write_clips(audio_root, manifest)
    SilenceLibrary(audio_root).ensure(2.0)
    final_path = ChapterLayout(audio_root, "en", 1).final_artifact_path
    final_path.write_bytes(b"previous")
    fake_audio_tools.fail_ffmpeg = True

    with pytest.raises(ConcatenationToolError, match="Invalid data"):
        ChapterAssembler(audio_root, ConcatRunner()).assemble(manifest)

    assert final_path.read_bytes() == b"previous"


def test_escape_concat_path_quotes_single_quotes() -> None:
    """Single quotes in paths must be escaped for the concat list."""

    assert escape_concat_path(Path("/tmp/it's.mp3")) == "/tmp/it'\\''s.mp3"


def test_book_assembler_joins_chapters_in_ascending_order(
    fake_audio_tools: Any, audio_root: Path
) -> None:
    """Book assembly orders chapter artifacts by chapter number."""

    for chapter in (2, 1, 10):
        path = ChapterLayout(audio_root, "es", chapter).final_artifact_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"mp3")

    result = BookAssembler(audio_root, ConcatRunner()).assemble("es", [10, 2, 1])

    [concat_lines] = fake_audio_tools.concat_lists
    assert [Path(line[len("file '") : -1]).name for line in concat_lines] == [
        "ch1-es.mp3",
        "ch2-es.mp3",
        "ch10-es.mp3",
    ]
    assert result.output_path == audio_root / "es" / "book-es.mp3"


def test_book_assembler_reports_missing_chapters(audio_root: Path) -> None:
    """Book assembly fails when any selected chapter lacks its artifact."""

    with pytest.raises(ChapterArtifactMissingError) as exc_info:
        BookAssembler(audio_root, ConcatRunner()).assemble("en", [1, 2])

    assert exc_info.value.missing_chapters == [1, 2]
