"""TTS synthesizer interfaces and Fish Audio-backed implementation.

Responsibilities:
- Define protocol for unit-level speech synthesis.
- Provide the Fish Audio-backed synthesizer configured from `SynthesisSettings`.
"""

from __future__ import annotations

from typing import Protocol

from ..config import SynthesisSettings
from .fish_client import FishSpeechClient


class TTSSynthesizer(Protocol):
    """Protocol for TTS provider implementations.

    Implementations raise `SynthesisProviderError` on failure, with
    `failure_kind="throttled"` when the provider asks the caller to slow down.
    """

    def synthesize(self, text: str, voice_id: str) -> bytes:
        """Synthesize one narration unit and return encoded MP3 bytes."""


class FishTTSSynthesizer:
    """Fish Audio-backed synthesizer returning MP3 payloads."""

    def __init__(self, settings: SynthesisSettings, client: FishSpeechClient | None = None) -> None:
        """Initialize the synthesizer from explicit settings."""

        self.settings = settings
        self.client = client or FishSpeechClient(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout_seconds=settings.timeout_seconds,
            model=settings.model,
        )

    def synthesize(self, text: str, voice_id: str) -> bytes:
        """Synthesize one narration unit as 128 kbps MP3."""

        return self.client.synthesize_speech(
            text=text,
            reference_id=voice_id,
            audio_format="mp3",
            normalize=self.settings.normalize,
        )
