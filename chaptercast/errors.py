"""Domain exceptions for pipeline and CLI diagnostics."""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class ConfigurationError(PipelineStageError):
    """Raised when required runtime configuration is missing or invalid."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="config", detail=detail, hint=hint)


class ChapterSourceMissingError(PipelineStageError):
    """Raised when the structured chapter document cannot be found or parsed."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="plan", detail=detail, hint=hint)


class ManifestMissingError(PipelineStageError):
    """Raised when a downstream stage runs before the chapter was planned."""

    def __init__(self, *, stage: str, chapter: int, lang: str, path: str) -> None:
        super().__init__(
            stage=stage,
            detail=f"Manifest not found: `{path}`.",
            hint=f"Run `chaptercast plan {chapter} {lang}` first.",
        )
        self.chapter = chapter
        self.lang = lang
        self.path = path


class ClipMissingError(PipelineStageError):
    """Raised by the assembler when synthesized clips are missing.

    Attributes:
        missing_ids: Every missing unit id, in manifest order.
    """

    def __init__(self, *, chapter: int, lang: str, missing_ids: list[str]) -> None:
        listed = ", ".join(missing_ids)
        super().__init__(
            stage="assemble",
            detail=f"Missing {len(missing_ids)} audio clip(s): {listed}.",
            hint=f"Run `chaptercast synthesize {chapter} {lang}` to generate them.",
        )
        self.missing_ids = list(missing_ids)


class SilenceMissingError(PipelineStageError):
    """Raised when a silence asset required by a pause is absent."""

    def __init__(self, *, duration: float, path: str) -> None:
        super().__init__(
            stage="assemble",
            detail=f"Silence asset for {duration}s not found: `{path}`.",
            hint="Silences are provisioned by `chaptercast synthesize`; rerun it.",
        )
        self.duration = duration
        self.path = path


class SilenceProvisioningError(PipelineStageError):
    """Raised when a silence asset cannot be rendered."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="silence", detail=detail, hint=hint)


class ThrottledError(PipelineStageError):
    """Raised when throttling on one unit outlasts the retry budget."""

    def __init__(self, *, unit_id: str, attempts: int) -> None:
        super().__init__(
            stage="synthesize",
            detail=(
                f"Synthesis for `{unit_id}` was still throttled after {attempts} attempt(s)."
            ),
            hint="Wait for the provider rate limit to reset, then rerun; finished clips are kept.",
        )
        self.unit_id = unit_id
        self.attempts = attempts


class ConcatenationToolError(PipelineStageError):
    """Raised when the external concatenation tool is missing or fails."""

    def __init__(self, detail: str, hint: str | None = None, *, stage: str = "assemble") -> None:
        super().__init__(stage=stage, detail=detail, hint=hint)


class ChapterArtifactMissingError(PipelineStageError):
    """Raised when book assembly finds chapters without a final artifact."""

    def __init__(self, *, lang: str, missing_chapters: list[int]) -> None:
        listed = ", ".join(str(chapter) for chapter in missing_chapters)
        super().__init__(
            stage="book",
            detail=f"Missing chapter audio for chapter(s): {listed}.",
            hint=f"Run `chaptercast build all {lang}` to produce them.",
        )
        self.missing_chapters = list(missing_chapters)
