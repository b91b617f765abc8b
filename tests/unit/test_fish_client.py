"""Unit tests for Fish Audio request shaping and failure classification."""

from __future__ import annotations

from typing import Any

import pytest
import requests

from chaptercast.config import SynthesisSettings
from chaptercast.tts import fish_client
from chaptercast.tts.fish_client import FishSpeechClient, SynthesisProviderError
from chaptercast.tts.synthesizer import FishTTSSynthesizer


def _response(status_code: int, content: bytes) -> requests.Response:
    """Build a detached `requests.Response` with fixed status and body."""

    response = requests.Response()
    response.status_code = status_code
    response._content = content
    response.url = "https://api.fish.audio/v1/tts"
    return response


def _install_post(
    monkeypatch: pytest.MonkeyPatch, response: requests.Response | Exception
) -> list[dict[str, Any]]:
    """Replace `requests.post` and record each call's keyword arguments."""

    calls: list[dict[str, Any]] = []

    def _fake_post(url: str, **kwargs: Any) -> requests.Response:
        calls.append({"url": url, **kwargs})
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(fish_client.requests, "post", _fake_post)
    return calls


def test_synthesize_speech_posts_expected_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    """Requests should carry bearer auth, voice reference, and MP3 settings."""

    calls = _install_post(monkeypatch, _response(200, b"ID3audio"))
    client = FishSpeechClient(api_key="fish-secret", timeout_seconds=30.0, model="s1")

    audio = client.synthesize_speech(text="Hello.", reference_id="voice-1")

    assert audio == b"ID3audio"
    [call] = calls
    assert call["url"] == "https://api.fish.audio/v1/tts"
    assert call["headers"]["Authorization"] == "Bearer fish-secret"
    assert call["headers"]["model"] == "s1"
    assert call["timeout"] == 30.0
    assert call["json"] == {
        "text": "Hello.",
        "reference_id": "voice-1",
        "format": "mp3",
        "mp3_bitrate": 128,
        "chunk_length": 200,
        "latency": "normal",
        "normalize": True,
    }


def test_http_429_is_classified_as_throttled(monkeypatch: pytest.MonkeyPatch) -> None:
    """Rate-limit responses must surface as throttled failures."""

    _install_post(monkeypatch, _response(429, b'{"message": "Too Many Requests"}'))
    client = FishSpeechClient(api_key="fish-secret")

    with pytest.raises(SynthesisProviderError) as exc_info:
        client.synthesize_speech(text="Hello.", reference_id="voice-1")

    assert exc_info.value.is_throttled
    assert exc_info.value.status_code == 429


@pytest.mark.parametrize(
    ("status_code", "failure_kind"),
    [(401, "invalid_api_key"), (402, "insufficient_quota"), (504, "timeout"), (500, "http_error")],
)
def test_http_failures_are_classified(
    monkeypatch: pytest.MonkeyPatch, status_code: int, failure_kind: str
) -> None:
    """Non-throttle HTTP failures map to deterministic kinds."""

    _install_post(monkeypatch, _response(status_code, b""))
    client = FishSpeechClient(api_key="fish-secret")

    with pytest.raises(SynthesisProviderError) as exc_info:
        client.synthesize_speech(text="Hello.", reference_id="voice-1")

    assert exc_info.value.failure_kind == failure_kind
    assert not exc_info.value.is_throttled


def test_error_bodies_redact_bearer_tokens(monkeypatch: pytest.MonkeyPatch) -> None:
    """Echoed credentials must not reach error messages."""

    body = b'{"message": "bad header Bearer abcdefghijklmnop1234"}'
    _install_post(monkeypatch, _response(400, body))
    client = FishSpeechClient(api_key="abcdefghijklmnop1234")

    with pytest.raises(SynthesisProviderError) as exc_info:
        client.synthesize_speech(text="Hello.", reference_id="voice-1")

    assert "abcdefghijklmnop1234" not in str(exc_info.value)
    assert "[redacted-token]" in str(exc_info.value)


def test_transport_timeout_is_classified(monkeypatch: pytest.MonkeyPatch) -> None:
    """Transport timeouts should map to the `timeout` kind."""

    _install_post(monkeypatch, requests.Timeout("read timed out"))
    client = FishSpeechClient(api_key="fish-secret")

    with pytest.raises(SynthesisProviderError) as exc_info:
        client.synthesize_speech(text="Hello.", reference_id="voice-1")

    assert exc_info.value.failure_kind == "timeout"


def test_empty_audio_response_is_an_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """An empty 200 body never becomes a clip."""

    _install_post(monkeypatch, _response(200, b""))

    with pytest.raises(SynthesisProviderError) as exc_info:
        FishSpeechClient(api_key="fish-secret").synthesize_speech(
            text="Hello.", reference_id="voice-1"
        )

    assert exc_info.value.failure_kind == "empty"


def test_missing_api_key_fails_without_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """A blank key fails before any request is sent."""

    calls = _install_post(monkeypatch, _response(200, b"ID3audio"))

    with pytest.raises(SynthesisProviderError) as exc_info:
        FishSpeechClient(api_key="  ").synthesize_speech(text="Hello.", reference_id="voice-1")

    assert exc_info.value.failure_kind == "invalid_api_key"
    assert calls == []


def test_fish_synthesizer_forwards_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """The synthesizer should use settings for endpoint and normalization."""

    calls = _install_post(monkeypatch, _response(200, b"ID3audio"))
    settings = SynthesisSettings(
        api_key="fish-secret",
        voice_id="voice-1",
        base_url="https://example.test/",
        normalize=False,
    )

    audio = FishTTSSynthesizer(settings).synthesize("Hola.", "voice-2")

    assert audio == b"ID3audio"
    assert calls[0]["url"] == "https://example.test/v1/tts"
    assert calls[0]["json"]["reference_id"] == "voice-2"
    assert calls[0]["json"]["normalize"] is False


def test_provider_error_code_is_kept_for_diagnostics(monkeypatch: pytest.MonkeyPatch) -> None:
    """The Fish `status` field travels with the error next to the HTTP status."""

    body = b'{"status": 400, "message": "reference_id not found"}'
    _install_post(monkeypatch, _response(400, body))

    with pytest.raises(SynthesisProviderError) as exc_info:
        FishSpeechClient(api_key="fish-secret").synthesize_speech(
            text="Hello.", reference_id="missing-voice"
        )

    assert exc_info.value.provider_code == "400"
    assert exc_info.value.status_code == 400
    assert "reference_id not found" in str(exc_info.value)
