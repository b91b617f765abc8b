"""Text-to-speech provider abstractions and the synthesis runner.

This package contains the provider HTTP client, synthesizer interfaces, and
the resumable, throttle-aware runner used by the synthesis stage.
"""

from .fish_client import FishSpeechClient, SynthesisProviderError
from .runner import SynthesisRunner
from .synthesizer import FishTTSSynthesizer, TTSSynthesizer

__all__ = [
    "FishSpeechClient",
    "FishTTSSynthesizer",
    "SynthesisProviderError",
    "SynthesisRunner",
    "TTSSynthesizer",
]
