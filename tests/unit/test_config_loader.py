"""Unit tests for config loading and synthesis settings resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from chaptercast.config import (
    ChaptercastConfig,
    ConfigLoader,
    RuntimeConfigSources,
    SynthesisSettings,
)
from chaptercast.errors import ConfigurationError


def test_from_yaml_parses_supported_keys(tmp_path: Path) -> None:
    """YAML config should map values onto typed config fields."""

    config_path = tmp_path / "chaptercast.yaml"
    config_path.write_text(
        "\n".join(
            [
                "content_root: content",
                "audio_root: out/audio",
                "languages: [EN, es, fr]",
                "chapter_count: 4",
                "request_delay_seconds: '1.25'",
                "max_throttle_retries: 0",
                "tts_normalize: 'no'",
            ]
        ),
        encoding="utf-8",
    )

    config = ConfigLoader.from_yaml(config_path)

    assert config.content_root == Path("content")
    assert config.audio_root == Path("out/audio")
    assert config.languages == ("en", "es", "fr")
    assert config.chapter_count == 4
    assert config.request_delay_seconds == 1.25
    assert config.max_throttle_retries == 0
    assert config.tts_normalize is False


def test_from_yaml_rejects_unknown_keys(tmp_path: Path) -> None:
    """Unsupported keys should fail loudly."""

    config_path = tmp_path / "chaptercast.yaml"
    config_path.write_text("voice: abc\n", encoding="utf-8")

    with pytest.raises(ValueError, match="unsupported key"):
        ConfigLoader.from_yaml(config_path)


def test_from_env_applies_overrides_and_attaches_credentials() -> None:
    """Env roots override config and Fish credentials become a runtime source."""

    env = {
        "CHAPTERCAST_AUDIO_ROOT": "/data/audio",
        "FISH_API_KEY": "env-key",
        "FISH_VOICE_ID": "env-voice",
        "UNRELATED": "ignored",
    }

    config = ConfigLoader.from_env(env=env)

    assert config.audio_root == Path("/data/audio")
    assert config.content_root == Path("i18n")
    assert dict(config.runtime_sources.env) == {
        "FISH_API_KEY": "env-key",
        "FISH_VOICE_ID": "env-voice",
    }


def test_resolved_settings_prefer_cli_over_env_over_config() -> None:
    """Voice id precedence should be cli > env > config."""

    config = ChaptercastConfig(
        voice_id="config-voice",
        api_key="config-key",
        runtime_sources=RuntimeConfigSources(
            cli={"voice_id": "cli-voice"},
            env={"FISH_VOICE_ID": "env-voice", "FISH_API_KEY": "env-key"},
        ),
    )

    settings = config.resolved_synthesis_settings()

    assert settings.voice_id == "cli-voice"
    assert settings.api_key == "env-key"
    assert settings.request_delay_seconds == 0.5


def test_missing_api_key_is_a_configuration_error() -> None:
    """Synthesis without a key should fail with a config-stage error."""

    config = ChaptercastConfig(runtime_sources=RuntimeConfigSources(env={"FISH_VOICE_ID": "v"}))

    with pytest.raises(ConfigurationError) as exc_info:
        config.resolved_synthesis_settings()

    assert exc_info.value.stage == "config"
    assert "FISH_API_KEY" in exc_info.value.detail


def test_missing_voice_id_is_a_configuration_error() -> None:
    """Synthesis without a voice should point at `--voice`."""

    config = ChaptercastConfig(runtime_sources=RuntimeConfigSources(env={"FISH_API_KEY": "k"}))

    with pytest.raises(ConfigurationError) as exc_info:
        config.resolved_synthesis_settings()

    assert "--voice" in (exc_info.value.hint or "")


@pytest.mark.parametrize("chapter", [0, 12])
def test_validate_chapter_rejects_out_of_range(chapter: int) -> None:
    """Chapters outside 1..chapter_count are rejected."""

    with pytest.raises(ConfigurationError, match="between 1 and 11"):
        ChaptercastConfig().validate_chapter(chapter)


def test_validate_language_rejects_unknown_code() -> None:
    """Languages outside the configured set are rejected."""

    with pytest.raises(ConfigurationError, match='"en", "es"'):
        ChaptercastConfig().validate_language("fr")


def test_backoff_doubles_until_cap() -> None:
    """Backoff waits double per attempt and stop at the cap."""

    settings = SynthesisSettings(api_key="k", voice_id="v")

    assert [settings.backoff_for(attempt) for attempt in range(6)] == [
        5.0,
        10.0,
        20.0,
        40.0,
        60.0,
        60.0,
    ]
