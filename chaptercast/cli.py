"""Command-line interface for chaptercast.

Responsibilities:
- Expose `plan`, `synthesize`, `assemble`, `build`, and `book` commands.
- Resolve the effective configuration from YAML, environment, and CLI values.
- Drive single-chapter runs and sequential `all` batches with a final tally.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Annotated

from dotenv import find_dotenv, load_dotenv
import typer

from .cli_rendering import (
    echo_assembly_summary,
    echo_batch_summary,
    echo_chapter_outcome,
    echo_plan_summary,
    echo_synthesis_summary,
    echo_unit_progress,
    exit_with_command_error,
)
from .config import ChaptercastConfig, ConfigLoader, RuntimeConfigSources
from .errors import ConfigurationError, PipelineStageError
from .models.datatypes import BatchReport
from .parsing import normalize_optional_string
from .pipeline import ChapterAudioPipeline
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="chaptercast",
    no_args_is_help=True,
    help="Turn structured book chapters into narrated MP3 audio.",
)

ChapterArgument = Annotated[
    str,
    typer.Argument(help="Chapter number, or `all` for every chapter in order."),
]
LangArgument = Annotated[str, typer.Argument(help="Language code, for example `en`.")]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file with command defaults."),
]
ContentRootOption = Annotated[
    Path | None,
    typer.Option("--content-root", help="Root directory of chapter documents."),
]
AudioRootOption = Annotated[
    Path | None,
    typer.Option("--audio-root", help="Root directory for manifests, clips, and audio."),
]
VoiceOption = Annotated[
    str | None,
    typer.Option("--voice", help="Voice id override (defaults to `FISH_VOICE_ID`)."),
]
StartOption = Annotated[
    int,
    typer.Option("--start", min=1, help="First chapter to process when using `all`."),
]


class BuildProgressIndicator:
    """Render deterministic per-stage progress lines for long-running commands."""

    _SPINNER_FRAMES = "|/-\\"

    def __init__(self, command_name: str) -> None:
        """Initialize progress indicator metadata for a command invocation."""

        self._command_name = command_name

    def on_stage_start(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        """Print one progress line for a stage start transition."""

        spinner = self._SPINNER_FRAMES[(stage_index - 1) % len(self._SPINNER_FRAMES)]
        typer.echo(
            f"[progress] command={self._command_name} "
            f"{spinner} {stage_index}/{stage_total} stage={stage_name}"
        )


def _load_yaml_config(config_path: Path | None) -> ChaptercastConfig | None:
    """Load a YAML config file when requested and map failures to stage errors."""

    if config_path is None:
        return None

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc
    except Exception as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Failed to load config file `{config_path}`: {exc}",
            hint="Verify YAML syntax and file permissions.",
        ) from exc


def _resolve_config(
    config_file: Path | None,
    content_root: Path | None,
    audio_root: Path | None,
    voice: str | None = None,
) -> ChaptercastConfig:
    """Resolve effective config: YAML defaults, then env overrides, then CLI values."""

    load_dotenv(find_dotenv(usecwd=True))
    base = _load_yaml_config(config_file)
    try:
        config = ConfigLoader.from_env(base=base)
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid environment configuration: {exc}",
            hint="Check `CHAPTERCAST_*` environment variables.",
        ) from exc

    cli_values: dict[str, str] = {}
    voice_id = normalize_optional_string(voice)
    if voice_id is not None:
        cli_values["voice_id"] = voice_id
    overrides: dict[str, Path] = {}
    if content_root is not None:
        overrides["content_root"] = content_root
    if audio_root is not None:
        overrides["audio_root"] = audio_root
    return replace(
        config,
        runtime_sources=RuntimeConfigSources(cli=cli_values, env=config.runtime_sources.env),
        **overrides,
    )


def _parse_chapter_target(raw: str) -> int | None:
    """Parse a chapter argument: `all` yields `None`, otherwise a chapter number."""

    text = raw.strip().lower()
    if text == "all":
        return None
    try:
        return int(text)
    except ValueError as exc:
        raise ConfigurationError(
            f"Chapter must be a number or `all`, got `{raw}`.",
        ) from exc


def _batch_chapters(config: ChaptercastConfig, start: int) -> list[int]:
    """Return chapters `start..chapter_count` for an `all` batch."""

    config.validate_chapter(start)
    return list(range(start, config.chapter_count + 1))


def _finish_batch(report: BatchReport) -> None:
    """Print the batch tally and exit non-zero when any chapter failed."""

    echo_batch_summary(report)
    if not report.ok:
        raise typer.Exit(code=1)


def _create_pipeline(config: ChaptercastConfig, command_name: str) -> ChapterAudioPipeline:
    """Create a pipeline wired to CLI progress and logging."""

    progress = BuildProgressIndicator(command_name=command_name)
    return ChapterAudioPipeline(
        config,
        run_logger=RunLogger(),
        stage_progress_callback=progress.on_stage_start,
        unit_progress_callback=echo_unit_progress,
    )


@app.command("plan")
def plan_command(
    chapter: ChapterArgument,
    lang: LangArgument,
    config_file: ConfigOption = None,
    content_root: ContentRootOption = None,
    audio_root: AudioRootOption = None,
    start: StartOption = 1,
) -> None:
    """Split chapters into narration units and write their manifests."""

    try:
        config = _resolve_config(config_file, content_root, audio_root)
        target = _parse_chapter_target(chapter)
        pipeline = _create_pipeline(config, "plan")
        if target is None:
            chapters = _batch_chapters(config, start)
        else:
            summary = pipeline.plan(target, lang)
    except Exception as exc:
        exit_with_command_error("plan", exc)

    if target is not None:
        echo_plan_summary(summary)
        return

    def _plan_one(number: int) -> bool:
        echo_plan_summary(pipeline.plan(number, lang))
        return True

    try:
        report = pipeline.run_batch(chapters, lang, _plan_one, echo_chapter_outcome)
    except Exception as exc:
        exit_with_command_error("plan", exc)
    _finish_batch(report)


@app.command("synthesize")
def synthesize_command(
    chapter: ChapterArgument,
    lang: LangArgument,
    config_file: ConfigOption = None,
    content_root: ContentRootOption = None,
    audio_root: AudioRootOption = None,
    voice: VoiceOption = None,
    start: StartOption = 1,
) -> None:
    """Synthesize missing narration clips for planned chapters."""

    try:
        config = _resolve_config(config_file, content_root, audio_root, voice)
        target = _parse_chapter_target(chapter)
        settings = config.resolved_synthesis_settings()
        pipeline = _create_pipeline(config, "synthesize")
        if target is None:
            chapters = _batch_chapters(config, start)
        else:
            report = pipeline.synthesize(target, lang, settings=settings)
    except Exception as exc:
        exit_with_command_error("synthesize", exc)

    if target is not None:
        echo_synthesis_summary(report)
        if not report.ok:
            typer.echo(f"Next step: rerun `chaptercast synthesize {target} {lang}`.")
            raise typer.Exit(code=1)
        typer.echo(f"Next step: `chaptercast assemble {target} {lang}`.")
        return

    def _synthesize_one(number: int) -> bool:
        chapter_report = pipeline.synthesize(number, lang, settings=settings)
        echo_synthesis_summary(chapter_report)
        return chapter_report.ok

    try:
        batch = pipeline.run_batch(chapters, lang, _synthesize_one, echo_chapter_outcome)
    except Exception as exc:
        exit_with_command_error("synthesize", exc)
    _finish_batch(batch)


@app.command("assemble")
def assemble_command(
    chapter: ChapterArgument,
    lang: LangArgument,
    config_file: ConfigOption = None,
    content_root: ContentRootOption = None,
    audio_root: AudioRootOption = None,
    start: StartOption = 1,
) -> None:
    """Join clips and silences into each chapter's final audio file."""

    try:
        config = _resolve_config(config_file, content_root, audio_root)
        target = _parse_chapter_target(chapter)
        pipeline = _create_pipeline(config, "assemble")
        if target is None:
            chapters = _batch_chapters(config, start)
        else:
            result = pipeline.assemble(target, lang)
    except Exception as exc:
        exit_with_command_error("assemble", exc)

    if target is not None:
        echo_assembly_summary(result)
        return

    def _assemble_one(number: int) -> bool:
        echo_assembly_summary(pipeline.assemble(number, lang))
        return True

    try:
        report = pipeline.run_batch(chapters, lang, _assemble_one, echo_chapter_outcome)
    except Exception as exc:
        exit_with_command_error("assemble", exc)
    _finish_batch(report)


@app.command("build")
def build_command(
    chapter: ChapterArgument,
    lang: LangArgument,
    config_file: ConfigOption = None,
    content_root: ContentRootOption = None,
    audio_root: AudioRootOption = None,
    voice: VoiceOption = None,
    start: StartOption = 1,
    replan: Annotated[
        bool,
        typer.Option("--replan", help="Re-plan even when a manifest already exists."),
    ] = False,
) -> None:
    """Plan (when needed), synthesize, and assemble chapters end to end."""

    try:
        config = _resolve_config(config_file, content_root, audio_root, voice)
        target = _parse_chapter_target(chapter)
        settings = config.resolved_synthesis_settings()
        pipeline = _create_pipeline(config, "build")
        if target is None:
            chapters = _batch_chapters(config, start)
        else:
            result = pipeline.build(target, lang, settings=settings, replan=replan)
    except Exception as exc:
        exit_with_command_error("build", exc)

    if target is not None:
        if result.plan is not None:
            echo_plan_summary(result.plan)
        echo_synthesis_summary(result.synthesis)
        echo_assembly_summary(result.assembly)
        return

    def _build_one(number: int) -> bool:
        chapter_result = pipeline.build(number, lang, settings=settings, replan=replan)
        echo_assembly_summary(chapter_result.assembly)
        return True

    try:
        report = pipeline.run_batch(chapters, lang, _build_one, echo_chapter_outcome)
    except Exception as exc:
        exit_with_command_error("build", exc)
    _finish_batch(report)


@app.command("book")
def book_command(
    lang: LangArgument,
    config_file: ConfigOption = None,
    audio_root: AudioRootOption = None,
) -> None:
    """Join every assembled chapter of one language into a full-book file."""

    try:
        config = _resolve_config(config_file, None, audio_root)
        pipeline = _create_pipeline(config, "book")
        result = pipeline.assemble_book(lang)
    except Exception as exc:
        exit_with_command_error("book", exc)

    echo_assembly_summary(result)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
