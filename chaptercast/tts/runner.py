"""Synthesis runner.

Responsibilities:
- Produce one clip per narration unit, strictly in manifest order.
- Skip units whose clip already exists, so reruns only pay for missing clips.
- Pace successful requests and back off exponentially on throttling, retrying
  the same unit up to a bounded number of times.
- Count other per-unit failures and continue with the next unit.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable

from ..audio.silence import SilenceLibrary
from ..config import SynthesisSettings
from ..errors import PipelineStageError, ThrottledError
from ..io.layout import ChapterLayout
from ..io.storage import ArtifactStore
from ..models.datatypes import NarrationManifest, NarrationUnit, SynthesisReport
from ..telemetry.logger import RunLogger
from .fish_client import SynthesisProviderError
from .synthesizer import FishTTSSynthesizer, TTSSynthesizer


UnitProgressCallback = Callable[[int, int, str, str], None]


class SynthesisRunner:
    """Synthesize every narration unit of a manifest into clip files."""

    def __init__(
        self,
        audio_root: Path,
        settings: SynthesisSettings,
        synthesizer: TTSSynthesizer | None = None,
        silence_library: SilenceLibrary | None = None,
        sleeper: Callable[[float], None] = time.sleep,
        run_logger: RunLogger | None = None,
        unit_progress_callback: UnitProgressCallback | None = None,
    ) -> None:
        self.audio_root = audio_root
        self.settings = settings
        self.synthesizer = synthesizer or FishTTSSynthesizer(settings)
        self.silence_library = silence_library or SilenceLibrary(audio_root, run_logger=run_logger)
        self.sleeper = sleeper
        self.run_logger = run_logger
        self.unit_progress_callback = unit_progress_callback

    def run(self, manifest: NarrationManifest, voice_id: str | None = None) -> SynthesisReport:
        """Synthesize missing clips and return the per-unit tally.

        Raises:
            SilenceProvisioningError: If the silence library cannot be provisioned.
            ThrottledError: If one unit stays throttled past the retry budget.
        """

        voice = voice_id or self.settings.voice_id
        self.silence_library.ensure_all()

        layout = ChapterLayout(self.audio_root, manifest.lang, manifest.chapter)
        store = ArtifactStore(layout.chapter_dir)
        report = SynthesisReport(
            chapter=manifest.chapter,
            lang=manifest.lang,
            total=manifest.total_units,
        )
        last_index = manifest.total_units - 1

        for index, unit in enumerate(manifest.units):
            relative_clip = layout.clip_path(unit.unit_id).relative_to(layout.chapter_dir)
            if store.exists(relative_clip):
                report.skipped.append(unit.unit_id)
                self._unit_event(index, report.total, unit.unit_id, "unit_skip")
                continue

            try:
                audio = self._synthesize_with_backoff(unit, voice, report)
            except SynthesisProviderError as exc:
                report.failed[unit.unit_id] = str(exc)
                self._unit_event(
                    index,
                    report.total,
                    unit.unit_id,
                    "unit_failed",
                    failure_kind=exc.failure_kind,
                    status_code=exc.status_code or "none",
                    provider_code=exc.provider_code or "none",
                )
                continue

            try:
                store.save_audio(relative_clip, audio)
            except OSError as exc:
                raise PipelineStageError(
                    stage="synthesize",
                    detail=f"Failed to write clip `{unit.unit_id}`: {exc}",
                    hint="Check the audio root directory is writable, then rerun.",
                ) from exc
            report.synthesized.append(unit.unit_id)
            self._unit_event(index, report.total, unit.unit_id, "unit_done", bytes=len(audio))

            if index < last_index and self.settings.request_delay_seconds > 0:
                self.sleeper(self.settings.request_delay_seconds)

        return report

    def _synthesize_with_backoff(
        self, unit: NarrationUnit, voice_id: str, report: SynthesisReport
    ) -> bytes:
        """Call the synthesizer for one unit, retrying the same unit while throttled."""

        attempt = 0
        while True:
            try:
                return self.synthesizer.synthesize(unit.text, voice_id)
            except SynthesisProviderError as exc:
                if not exc.is_throttled:
                    raise
                if attempt >= self.settings.max_throttle_retries:
                    raise ThrottledError(unit_id=unit.unit_id, attempts=attempt + 1) from exc
                wait_seconds = self.settings.backoff_for(attempt)
                if self.run_logger is not None:
                    self.run_logger.log_unit(
                        "synthesize",
                        "throttled",
                        unit.unit_id,
                        attempt=attempt + 1,
                        wait_seconds=wait_seconds,
                    )
                self.sleeper(wait_seconds)
                report.throttle_retries += 1
                attempt += 1

    def _unit_event(
        self, index: int, total: int, unit_id: str, event: str, **context: object
    ) -> None:
        """Forward one per-unit event to the logger and progress callback."""

        if self.run_logger is not None:
            self.run_logger.log_unit("synthesize", event, unit_id, **context)
        if self.unit_progress_callback is not None:
            self.unit_progress_callback(index + 1, total, unit_id, event)
