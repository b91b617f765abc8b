"""Configuration model and loaders for chaptercast.

Responsibilities:
- Define runtime configuration as typed dataclasses.
- Resolve synthesis credentials with deterministic source precedence into an
  explicit `SynthesisSettings` object handed to the synthesis runner.
- Provide loader entry points for YAML- and environment-based configuration.

Key types:
- `ChaptercastConfig`: normalized settings for a pipeline run.
- `SynthesisSettings`: resolved provider credentials, pacing, and backoff policy.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `ChaptercastConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError
from .parsing import (
    normalize_optional_string,
    parse_non_negative_float,
    parse_permissive_boolean,
    parse_positive_int,
)


API_KEY_ENV = "FISH_API_KEY"
VOICE_ID_ENV = "FISH_VOICE_ID"

_DEFAULT_LANGUAGES = ("en", "es")
_DEFAULT_CHAPTER_COUNT = 11
_DEFAULT_TTS_BASE_URL = "https://api.fish.audio"


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SynthesisSettings:
    """Resolved synthesis provider settings for one run.

    Attributes:
        api_key: Provider API key (never persisted or logged).
        voice_id: Provider voice/reference identifier.
        model: Optional provider model header value.
        base_url: Provider REST base URL.
        timeout_seconds: Transport timeout for each request.
        request_delay_seconds: Pause between consecutive successful requests.
        throttle_backoff_seconds: First wait after a throttled request.
        throttle_backoff_max_seconds: Upper bound for one backoff wait.
        max_throttle_retries: Throttled retries allowed per unit before failing.
        normalize: Whether the provider should normalize text (numbers, dates).
    """

    api_key: str
    voice_id: str
    model: str | None = None
    base_url: str = _DEFAULT_TTS_BASE_URL
    timeout_seconds: float = 60.0
    request_delay_seconds: float = 0.5
    throttle_backoff_seconds: float = 5.0
    throttle_backoff_max_seconds: float = 60.0
    max_throttle_retries: int = 5
    normalize: bool = True

    def backoff_for(self, attempt: int) -> float:
        """Return the wait before retry number `attempt` (0-based), doubling up to the cap."""

        return min(
            self.throttle_backoff_seconds * (2 ** max(0, attempt)),
            self.throttle_backoff_max_seconds,
        )


@dataclass(slots=True)
class ChaptercastConfig:
    """Runtime configuration for one pipeline run.

    Attributes:
        content_root: Root of `<lang>/chapters/ch<N>.json` chapter documents.
        audio_root: Root of manifests, clips, silences, and final artifacts.
        languages: Accepted language codes.
        chapter_count: Highest valid chapter number (chapters are 1-based).
        voice_id: Default voice identifier when neither CLI nor env supplies one.
        api_key: Optional API key fallback (prefer the environment).
        tts_model: Optional provider model header value.
        tts_base_url: Provider REST base URL.
        tts_timeout_seconds: Transport timeout per synthesis request.
        tts_normalize: Provider-side text normalization toggle.
        request_delay_seconds: Pacing delay between successful requests.
        throttle_backoff_seconds: First throttle backoff wait.
        throttle_backoff_max_seconds: Throttle backoff cap.
        max_throttle_retries: Throttled retries per unit before a fatal error.
        ffmpeg: Optional explicit ffmpeg executable.
        ffprobe: Optional explicit ffprobe executable.
        runtime_sources: Runtime source overrides injected by CLI.
    """

    content_root: Path = Path("i18n")
    audio_root: Path = Path("audio")
    languages: tuple[str, ...] = _DEFAULT_LANGUAGES
    chapter_count: int = _DEFAULT_CHAPTER_COUNT
    voice_id: str | None = None
    api_key: str | None = None
    tts_model: str | None = None
    tts_base_url: str = _DEFAULT_TTS_BASE_URL
    tts_timeout_seconds: float = 60.0
    tts_normalize: bool = True
    request_delay_seconds: float = 0.5
    throttle_backoff_seconds: float = 5.0
    throttle_backoff_max_seconds: float = 60.0
    max_throttle_retries: int = 5
    ffmpeg: str | None = None
    ffprobe: str | None = None
    runtime_sources: RuntimeConfigSources = field(default_factory=RuntimeConfigSources)

    def validate(self) -> None:
        """Validate configuration values before pipeline execution."""

        if not self.languages:
            raise ValueError("`languages` must list at least one language code.")
        if self.chapter_count <= 0:
            raise ValueError("`chapter_count` must be a positive integer.")
        if self.tts_timeout_seconds <= 0:
            raise ValueError("`tts_timeout_seconds` must be positive.")
        if self.throttle_backoff_max_seconds < self.throttle_backoff_seconds:
            raise ValueError(
                "`throttle_backoff_max_seconds` must be >= `throttle_backoff_seconds`."
            )
        if self.max_throttle_retries < 0:
            raise ValueError("`max_throttle_retries` must not be negative.")

    def validate_chapter(self, chapter: int) -> None:
        """Validate a chapter number against the known chapter range."""

        if chapter < 1 or chapter > self.chapter_count:
            raise ConfigurationError(
                f"Chapter number must be between 1 and {self.chapter_count}, got {chapter}.",
            )

    def validate_language(self, lang: str) -> None:
        """Validate a language code against the configured set."""

        if lang not in self.languages:
            supported = ", ".join(f'"{code}"' for code in self.languages)
            raise ConfigurationError(
                f"Language must be one of {supported}, got `{lang}`.",
            )

    def resolved_synthesis_settings(
        self, sources: RuntimeConfigSources | None = None
    ) -> SynthesisSettings:
        """Resolve synthesis settings with `cli` > `env` > config precedence.

        Raises:
            ConfigurationError: If the API key or voice id cannot be resolved.
        """

        resolved_sources = sources if sources is not None else self.runtime_sources
        api_key = self._resolve(resolved_sources, "api_key", API_KEY_ENV, self.api_key)
        voice_id = self._resolve(resolved_sources, "voice_id", VOICE_ID_ENV, self.voice_id)
        if api_key is None:
            raise ConfigurationError(
                f"`{API_KEY_ENV}` environment variable is required for synthesis.",
                hint=f"Export `{API_KEY_ENV}` or add it to a `.env` file.",
            )
        if voice_id is None:
            raise ConfigurationError(
                f"`{VOICE_ID_ENV}` environment variable is required for synthesis.",
                hint=f"Export `{VOICE_ID_ENV}` or pass `--voice <id>`.",
            )
        return SynthesisSettings(
            api_key=api_key,
            voice_id=voice_id,
            model=self.tts_model,
            base_url=self.tts_base_url,
            timeout_seconds=self.tts_timeout_seconds,
            request_delay_seconds=self.request_delay_seconds,
            throttle_backoff_seconds=self.throttle_backoff_seconds,
            throttle_backoff_max_seconds=self.throttle_backoff_max_seconds,
            max_throttle_retries=self.max_throttle_retries,
            normalize=self.tts_normalize,
        )

    @staticmethod
    def _resolve(
        sources: RuntimeConfigSources,
        key: str,
        env_key: str,
        default_value: str | None,
    ) -> str | None:
        """Resolve one optional value from sources in deterministic precedence order."""

        cli_value = normalize_optional_string(sources.cli.get(key))
        if cli_value is not None:
            return cli_value
        env_value = normalize_optional_string(sources.env.get(env_key))
        if env_value is not None:
            return env_value
        return normalize_optional_string(default_value)


class ConfigLoader:
    """Factory methods for creating `ChaptercastConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(
        {
            "content_root",
            "audio_root",
            "languages",
            "chapter_count",
            "voice_id",
            "api_key",
            "tts_model",
            "tts_base_url",
            "tts_timeout_seconds",
            "tts_normalize",
            "request_delay_seconds",
            "throttle_backoff_seconds",
            "throttle_backoff_max_seconds",
            "max_throttle_retries",
            "ffmpeg",
            "ffprobe",
        }
    )
    _PATH_ENV_KEYS = {
        "content_root": "CHAPTERCAST_CONTENT_ROOT",
        "audio_root": "CHAPTERCAST_AUDIO_ROOT",
    }
    _STRING_ENV_KEYS = {
        "tts_model": "CHAPTERCAST_TTS_MODEL",
        "tts_base_url": "CHAPTERCAST_TTS_BASE_URL",
    }

    @staticmethod
    def from_yaml(path: Path) -> ChaptercastConfig:
        """Create a validated config from a YAML file."""

        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping.")
        return ConfigLoader.from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_mapping(payload: Mapping[str, Any], source_label: str) -> ChaptercastConfig:
        """Build a validated config from a decoded mapping payload."""

        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")

        defaults = ChaptercastConfig()
        values: dict[str, Any] = {}
        for key in ("content_root", "audio_root"):
            text = normalize_optional_string(payload.get(key))
            if text is not None:
                values[key] = Path(text)
        for key in ("voice_id", "api_key", "tts_model", "tts_base_url", "ffmpeg", "ffprobe"):
            text = normalize_optional_string(payload.get(key))
            if text is not None:
                values[key] = text
        for key in (
            "tts_timeout_seconds",
            "request_delay_seconds",
            "throttle_backoff_seconds",
            "throttle_backoff_max_seconds",
        ):
            if payload.get(key) is not None:
                values[key] = parse_non_negative_float(payload[key], key)
        if payload.get("chapter_count") is not None:
            values["chapter_count"] = parse_positive_int(payload["chapter_count"], "chapter_count")
        if payload.get("max_throttle_retries") is not None:
            values["max_throttle_retries"] = parse_positive_int(
                payload["max_throttle_retries"], "max_throttle_retries", minimum=0
            )
        if "tts_normalize" in payload:
            parsed = parse_permissive_boolean(payload["tts_normalize"])
            if parsed is None:
                raise ValueError(
                    f"{source_label} field `tts_normalize` must be a boolean value "
                    "(`true`/`false`, `1`/`0`, `yes`/`no`)."
                )
            values["tts_normalize"] = parsed
        if "languages" in payload:
            values["languages"] = ConfigLoader._parse_languages(payload["languages"], source_label)

        config = replace(defaults, **values)
        config.validate()
        return config

    @staticmethod
    def from_env(
        env: Mapping[str, str] | None = None,
        base: ChaptercastConfig | None = None,
    ) -> ChaptercastConfig:
        """Apply `CHAPTERCAST_*` overrides and attach env as a runtime source."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        config = base if base is not None else ChaptercastConfig()
        values: dict[str, Any] = {}
        for field_name, env_key in ConfigLoader._PATH_ENV_KEYS.items():
            text = normalize_optional_string(env_map.get(env_key))
            if text is not None:
                values[field_name] = Path(text)
        for field_name, env_key in ConfigLoader._STRING_ENV_KEYS.items():
            text = normalize_optional_string(env_map.get(env_key))
            if text is not None:
                values[field_name] = text

        runtime_env = {
            key: value
            for key, value in env_map.items()
            if key in {API_KEY_ENV, VOICE_ID_ENV}
            and normalize_optional_string(value) is not None
        }
        resolved = replace(
            config,
            runtime_sources=RuntimeConfigSources(
                cli=config.runtime_sources.cli,
                env=runtime_env,
            ),
            **values,
        )
        resolved.validate()
        return resolved

    @staticmethod
    def _parse_languages(raw: Any, source_label: str) -> tuple[str, ...]:
        """Parse a list (or comma-separated string) of language codes."""

        if isinstance(raw, str):
            items: list[Any] = raw.split(",")
        elif isinstance(raw, list | tuple):
            items = list(raw)
        else:
            raise ValueError(f"{source_label} field `languages` must be a list.")
        languages = tuple(
            code.lower()
            for code in (normalize_optional_string(item) for item in items)
            if code is not None
        )
        if not languages:
            raise ValueError(f"{source_label} field `languages` must not be empty.")
        return languages
