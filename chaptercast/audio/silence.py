"""Silence asset library.

Responsibilities:
- Render fixed-duration silent MP3 clips used between narration units.
- Create each duration at most once and reuse it across chapters and languages.
- Treat any rendering failure as fatal for the chapter build.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from ..errors import ConcatenationToolError, SilenceProvisioningError
from ..io.layout import silence_filename, silences_dir
from ..io.storage import ArtifactStore
from ..runtime_tools import resolve_executable, run_tool
from ..telemetry.logger import RunLogger
from ..text.planner import DEFAULT_PAUSE_POLICY


def _has_content(path: Path) -> bool:
    return path.is_file() and path.stat().st_size > 0


class SilenceLibrary:
    """Duration-keyed cache of pre-rendered silence clips."""

    SAMPLE_RATE = 44100
    CHANNEL_LAYOUT = "stereo"

    def __init__(
        self,
        audio_root: Path,
        durations: Iterable[float] = DEFAULT_PAUSE_POLICY.durations(),
        ffmpeg: str | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.directory = silences_dir(audio_root)
        self.durations = tuple(sorted(set(durations)))
        self.ffmpeg = resolve_executable("ffmpeg", ffmpeg)
        self.run_logger = run_logger

    def path_for(self, duration: float) -> Path:
        """Return the deterministic path of one silence clip."""

        return self.directory / silence_filename(duration)

    def ensure(self, duration: float) -> Path:
        """Render the silence clip for `duration` unless it already exists.

        Concurrent calls for one duration are safe: each renders into its own
        staging file, and a caller whose rename fails accepts the file already in place.
        """

        if duration <= 0:
            raise SilenceProvisioningError(
                f"Silence duration must be positive, got {duration}.",
            )
        path = self.path_for(duration)
        if _has_content(path):
            return path

        try:
            staging = ArtifactStore.reserve_staging_path(path)
        except OSError as exc:
            raise SilenceProvisioningError(
                f"Failed to prepare silence asset `{path.name}`: {exc}",
                hint="Verify the audio root directory is writable.",
            ) from exc
        command = [
            self.ffmpeg,
            "-y",
            "-hide_banner",
            "-loglevel",
            "error",
            "-f",
            "lavfi",
            "-i",
            f"anullsrc=r={self.SAMPLE_RATE}:cl={self.CHANNEL_LAYOUT}",
            "-t",
            str(duration),
            "-q:a",
            "9",
            "-acodec",
            "libmp3lame",
            "-f",
            "mp3",
            str(staging),
        ]
        try:
            run_tool(command, stage="silence", action=f"rendering {duration}s of silence")
            os.replace(staging, path)
        except ConcatenationToolError as exc:
            raise SilenceProvisioningError(
                f"Failed to create silence asset `{path.name}`: {exc.detail}",
                hint=exc.hint,
            ) from exc
        except OSError as exc:
            if _has_content(path):
                return path
            raise SilenceProvisioningError(
                f"Failed to store silence asset `{path.name}`: {exc}",
                hint="Verify the audio root directory is writable.",
            ) from exc
        finally:
            if staging.exists():
                staging.unlink()

        if self.run_logger is not None:
            self.run_logger.log_unit("silence", "created", path.name, seconds=duration)
        return path

    def ensure_all(self) -> list[Path]:
        """Provision every known duration bucket."""

        return [self.ensure(duration) for duration in self.durations]

