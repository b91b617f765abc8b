"""Shared pytest fixtures for the chaptercast test suite."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import json
from pathlib import Path
import subprocess
from typing import Any

import pytest

from chaptercast import runtime_tools


ChapterWriter = Callable[..., Path]


@dataclass
class FakeAudioTools:
    """Stand-in for `ffmpeg`/`ffprobe` subprocess calls.

    Every ffmpeg invocation writes placeholder bytes to its output argument;
    concat invocations also capture the concat list lines before the list file
    is cleaned up.
    """

    commands: list[list[str]] = field(default_factory=list)
    concat_lists: list[list[str]] = field(default_factory=list)
    probe_output: str = "12.5\n"
    fail_ffmpeg: bool = False

    def __call__(self, command: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        _ = kwargs
        self.commands.append(list(command))
        tool = Path(command[0]).name
        if tool.startswith("ffprobe"):
            return subprocess.CompletedProcess(command, 0, stdout=self.probe_output, stderr="")
        if self.fail_ffmpeg:
            raise subprocess.CalledProcessError(
                1, command, output="", stderr="Invalid data found when processing input"
            )
        if "concat" in command:
            list_path = Path(command[command.index("-i") + 1])
            self.concat_lists.append(list_path.read_text(encoding="utf-8").splitlines())
        output = Path(command[-1])
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(b"ID3fake-mp3")
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

    @property
    def silence_renders(self) -> list[list[str]]:
        return [command for command in self.commands if "lavfi" in command]


@pytest.fixture
def fake_audio_tools(monkeypatch: pytest.MonkeyPatch) -> FakeAudioTools:
    """Route external audio tool invocations to an in-process fake."""

    tools = FakeAudioTools()
    monkeypatch.setattr(runtime_tools.subprocess, "run", tools)
    return tools


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """Provide an empty chapter content tree."""

    root = tmp_path / "i18n"
    root.mkdir()
    return root


@pytest.fixture
def audio_root(tmp_path: Path) -> Path:
    """Provide an empty audio output root."""

    return tmp_path / "audio"


@pytest.fixture
def write_chapter(content_root: Path) -> ChapterWriter:
    """Write one structured chapter document and return its path."""

    def _write(
        chapter: int,
        lang: str = "en",
        *,
        number_text: str = "Chapter One",
        title: str = "The Beginning",
        sections: list[list[dict[str, str]]] | None = None,
    ) -> Path:
        if sections is None:
            sections = [
                [
                    {"type": "paragraph", "text": "First paragraph."},
                    {"type": "paragraph", "text": "Second paragraph."},
                ],
                [{"type": "quote", "text": "A closing quote."}],
            ]
        payload = {
            "numberText": number_text,
            "title": title,
            "sections": [{"content": blocks} for blocks in sections],
        }
        path = content_root / lang / "chapters" / f"ch{chapter}.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        return path

    return _write
