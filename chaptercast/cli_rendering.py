"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
per-unit progress, and stage/batch summaries.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import (
    AssemblyResult,
    BatchReport,
    ChapterOutcome,
    PlanSummary,
    SynthesisReport,
)

_RULE = "-" * 40

_UNIT_EVENT_LABELS = {
    "unit_skip": "skipped (exists)",
    "unit_done": "generated",
    "unit_failed": "FAILED",
}


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_unit_progress(position: int, total: int, unit_id: str, event: str) -> None:
    """Print one per-unit synthesis progress line."""

    label = _UNIT_EVENT_LABELS.get(event, event)
    typer.echo(f"[{position}/{total}] {label}: {unit_id}")


def echo_plan_summary(summary: PlanSummary) -> None:
    """Print planner results with size estimates."""

    manifest = summary.manifest
    typer.echo(f"Chapter {manifest.chapter} ({manifest.lang}): {manifest.title}")
    typer.echo(f"Units: {manifest.total_units}")
    typer.echo(f"Total characters: {summary.total_characters:,}")
    typer.echo(f"Estimated duration: ~{summary.estimated_minutes} minutes")
    typer.echo(f"Manifest: {summary.manifest_path}")


def echo_synthesis_summary(report: SynthesisReport) -> None:
    """Print the per-chapter synthesis tally."""

    typer.echo(_RULE)
    typer.echo(f"Success: {report.succeeded}/{report.total}")
    typer.echo(f"Generated: {len(report.synthesized)}, skipped: {len(report.skipped)}")
    if report.throttle_retries:
        typer.echo(f"Throttle retries: {report.throttle_retries}")
    if report.failed:
        typer.secho(f"Errors: {len(report.failed)}", fg=typer.colors.RED)
        for unit_id, message in report.failed.items():
            typer.secho(f"  - {unit_id}: {message}", fg=typer.colors.RED)
    typer.echo(_RULE)


def format_duration(seconds: float) -> str:
    """Format seconds as `Hh Mm Ss (N.N min)`."""

    whole = int(seconds)
    hours, remainder = divmod(whole, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}h {minutes}m {secs}s ({seconds / 60:.1f} min)"


def echo_assembly_summary(result: AssemblyResult) -> None:
    """Print final artifact location, duration, and size."""

    typer.echo(f"Final audio: {result.output_path}")
    typer.echo(f"Concat entries: {result.entry_count}")
    if result.duration_seconds is not None:
        typer.echo(f"Duration: {format_duration(result.duration_seconds)}")
    typer.echo(f"File size: {result.size_bytes / 1024 / 1024:.2f} MB")


def echo_chapter_outcome(outcome: ChapterOutcome) -> None:
    """Print one chapter's batch outcome."""

    if outcome.ok:
        typer.echo(f"Chapter {outcome.chapter}: ok")
    else:
        typer.secho(f"Chapter {outcome.chapter}: failed ({outcome.detail})", fg=typer.colors.RED)


def echo_batch_summary(report: BatchReport) -> None:
    """Print aggregate success/failure tally across chapters."""

    typer.echo(_RULE)
    typer.echo(
        f"Batch ({report.lang}): {report.succeeded} succeeded, {report.failed} failed"
    )
    failed = [str(outcome.chapter) for outcome in report.outcomes if not outcome.ok]
    if failed:
        typer.secho(f"Failed chapters: {', '.join(failed)}", fg=typer.colors.RED)
    typer.echo(_RULE)
