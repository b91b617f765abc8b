"""Pipeline orchestration for chaptercast.

Responsibilities:
- Run the plan, synthesize, and assemble stages for one (chapter, language).
- Chain the three stages for a combined build and drive sequential batches
  in which one chapter's failure does not stop the others.
- Emit stage-level logs and progress transitions.

Key types:
- `ChapterAudioPipeline`: orchestration facade.
- `ChapterBuildResult`: outputs of one combined chapter build.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import time
from typing import TypeVar

from ..audio.assembler import BookAssembler, ChapterAssembler, ConcatRunner
from ..audio.silence import SilenceLibrary
from ..config import ChaptercastConfig, SynthesisSettings
from ..errors import PipelineStageError
from ..io.chapter_loader import ChapterLoader
from ..io.layout import ChapterLayout
from ..models.datatypes import (
    AssemblyResult,
    BatchReport,
    ChapterOutcome,
    PlanSummary,
    SynthesisReport,
)
from ..telemetry.logger import RunLogger
from ..text.planner import NarrationPlanner, estimate_minutes
from ..tts.runner import SynthesisRunner, UnitProgressCallback
from ..tts.synthesizer import FishTTSSynthesizer, TTSSynthesizer
from .manifesting import ManifestRepository


StageProgressCallback = Callable[[str, int, int], None]
SynthesizerFactory = Callable[[SynthesisSettings], TTSSynthesizer]

_BUILD_STAGES = ("plan", "synthesize", "assemble")

_T = TypeVar("_T")


@dataclass(frozen=True, slots=True)
class ChapterBuildResult:
    """Outputs of one combined plan/synthesize/assemble chapter build."""

    plan: PlanSummary | None
    synthesis: SynthesisReport
    assembly: AssemblyResult


class ChapterAudioPipeline:
    """Orchestrates chapter narration stages from planning to final artifact."""

    def __init__(
        self,
        config: ChaptercastConfig,
        run_logger: RunLogger | None = None,
        stage_progress_callback: StageProgressCallback | None = None,
        unit_progress_callback: UnitProgressCallback | None = None,
        synthesizer_factory: SynthesizerFactory = FishTTSSynthesizer,
        concat_runner: ConcatRunner | None = None,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize pipeline collaborators."""

        self.config = config
        self._run_logger = run_logger
        self._stage_progress_callback = stage_progress_callback
        self._unit_progress_callback = unit_progress_callback
        self._synthesizer_factory = synthesizer_factory
        self._sleeper = sleeper
        self.manifests = ManifestRepository(config.audio_root)
        self.planner = NarrationPlanner()
        self.loader = ChapterLoader(config.content_root)
        self.concat_runner = concat_runner or ConcatRunner(
            ffmpeg=config.ffmpeg,
            ffprobe=config.ffprobe,
            run_logger=run_logger,
        )
        self.silence_library = SilenceLibrary(
            config.audio_root,
            durations=self.planner.pause_policy.durations(),
            ffmpeg=config.ffmpeg,
            run_logger=run_logger,
        )

    def plan(self, chapter: int, lang: str) -> PlanSummary:
        """Plan narration units for one chapter and persist the manifest."""

        self._validate_target(chapter, lang)

        def _plan() -> PlanSummary:
            document = self.loader.load(chapter, lang)
            manifest = self.planner.plan(document, lang)
            path = self.manifests.write(manifest)
            total_characters = sum(len(unit.text) for unit in manifest.units)
            return PlanSummary(
                manifest=manifest,
                manifest_path=path,
                total_characters=total_characters,
                estimated_minutes=estimate_minutes(total_characters),
            )

        return self._run_stage("plan", _plan, chapter=chapter, lang=lang)

    def synthesize(
        self,
        chapter: int,
        lang: str,
        voice_id: str | None = None,
        settings: SynthesisSettings | None = None,
    ) -> SynthesisReport:
        """Synthesize missing clips for a planned chapter."""

        self._validate_target(chapter, lang)
        resolved_settings = settings or self.config.resolved_synthesis_settings()

        def _synthesize() -> SynthesisReport:
            manifest = self.manifests.load(chapter, lang, stage="synthesize")
            runner = SynthesisRunner(
                self.config.audio_root,
                resolved_settings,
                synthesizer=self._synthesizer_factory(resolved_settings),
                silence_library=self.silence_library,
                sleeper=self._sleeper,
                run_logger=self._run_logger,
                unit_progress_callback=self._unit_progress_callback,
            )
            return runner.run(manifest, voice_id=voice_id)

        return self._run_stage("synthesize", _synthesize, chapter=chapter, lang=lang)

    def assemble(self, chapter: int, lang: str) -> AssemblyResult:
        """Assemble the final artifact for a fully synthesized chapter."""

        self._validate_target(chapter, lang)

        def _assemble() -> AssemblyResult:
            manifest = self.manifests.load(chapter, lang, stage="assemble")
            assembler = ChapterAssembler(self.config.audio_root, self.concat_runner)
            return assembler.assemble(manifest)

        return self._run_stage("assemble", _assemble, chapter=chapter, lang=lang)

    def build(
        self,
        chapter: int,
        lang: str,
        voice_id: str | None = None,
        settings: SynthesisSettings | None = None,
        replan: bool = False,
    ) -> ChapterBuildResult:
        """Run plan (when needed), synthesize, and assemble for one chapter.

        An existing manifest is reused unless `replan` is set, so a build never
        silently reorders units behind already-synthesized clips.
        """

        self._validate_target(chapter, lang)
        resolved_settings = settings or self.config.resolved_synthesis_settings()
        total = len(_BUILD_STAGES)

        self._notify_stage("plan", 1, total)
        layout = ChapterLayout(self.config.audio_root, lang, chapter)
        manifest_exists = layout.manifest_path.is_file()
        plan_summary = self.plan(chapter, lang) if replan or not manifest_exists else None

        self._notify_stage("synthesize", 2, total)
        report = self.synthesize(chapter, lang, voice_id=voice_id, settings=resolved_settings)
        if not report.ok:
            raise PipelineStageError(
                stage="synthesize",
                detail=(
                    f"{len(report.failed)} of {report.total} unit(s) failed: "
                    f"{', '.join(report.failed)}."
                ),
                hint=f"Rerun `chaptercast synthesize {chapter} {lang}`; finished clips are kept.",
            )

        self._notify_stage("assemble", 3, total)
        assembly = self.assemble(chapter, lang)
        return ChapterBuildResult(plan=plan_summary, synthesis=report, assembly=assembly)

    def run_batch(
        self,
        chapters: list[int],
        lang: str,
        step: Callable[[int], bool],
        on_chapter_done: Callable[[ChapterOutcome], None] | None = None,
    ) -> BatchReport:
        """Run `step` for each chapter sequentially, tallying failures without stopping.

        `step` returns whether the chapter fully succeeded; stage errors are
        recorded as a failed chapter and the batch moves on.
        """

        self.config.validate_language(lang)
        report = BatchReport(lang=lang)
        for chapter in chapters:
            try:
                ok = step(chapter)
                outcome = ChapterOutcome(chapter=chapter, ok=ok, detail="" if ok else "incomplete")
            except PipelineStageError as exc:
                outcome = ChapterOutcome(
                    chapter=chapter,
                    ok=False,
                    detail=f"{exc.stage}: {exc.detail}",
                )
            report.outcomes.append(outcome)
            if on_chapter_done is not None:
                on_chapter_done(outcome)
        return report

    def assemble_book(self, lang: str, chapters: list[int] | None = None) -> AssemblyResult:
        """Join chapter artifacts of one language into a single full-book file."""

        self.config.validate_language(lang)
        selected = chapters or list(range(1, self.config.chapter_count + 1))

        def _assemble_book() -> AssemblyResult:
            return BookAssembler(self.config.audio_root, self.concat_runner).assemble(
                lang, selected
            )

        return self._run_stage("book", _assemble_book, lang=lang)

    def _validate_target(self, chapter: int, lang: str) -> None:
        """Validate chapter range and language before any stage work."""

        self.config.validate_chapter(chapter)
        self.config.validate_language(lang)

    def _notify_stage(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        """Publish one stage-start transition to the progress callback."""

        if self._stage_progress_callback is not None:
            self._stage_progress_callback(stage_name, stage_index, stage_total)

    def _run_stage(self, stage: str, action: Callable[[], _T], **context: object) -> _T:
        """Run one stage with start/complete/failure logging."""

        if self._run_logger is not None:
            self._run_logger.log_stage_start(stage, **context)
        try:
            result = action()
        except Exception as exc:
            if self._run_logger is not None:
                self._run_logger.log_stage_failure(stage, type(exc).__name__, **context)
            raise
        if self._run_logger is not None:
            self._run_logger.log_stage_complete(stage, **context)
        return result
