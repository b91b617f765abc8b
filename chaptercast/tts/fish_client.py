"""Fish Audio HTTP client for the synthesis stage.

Responsibilities:
- Send text-to-speech requests to the Fish Audio REST API with a transport timeout.
- Classify HTTP and transport failures into deterministic failure kinds,
  including `throttled` for "too many requests" responses.
- Redact credentials from provider error messages.
"""

from __future__ import annotations

import json
import re
import socket
from typing import Any

import requests


FAILURE_THROTTLED = "throttled"


class SynthesisProviderError(RuntimeError):
    """Raised when a synthesis request fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_code: str | None = None,
    ) -> None:
        """Initialize provider error metadata for stage-aware diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code

    @property
    def is_throttled(self) -> bool:
        """Return whether the provider asked the caller to slow down."""

        return self.failure_kind == FAILURE_THROTTLED


class FishSpeechClient:
    """Minimal requests-based Fish Audio `/v1/tts` client."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://api.fish.audio",
        timeout_seconds: float = 60.0,
        model: str | None = None,
    ) -> None:
        """Initialize HTTP client settings."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.model = model

    def synthesize_speech(
        self,
        *,
        text: str,
        reference_id: str,
        audio_format: str = "mp3",
        mp3_bitrate: int = 128,
        chunk_length: int = 200,
        latency: str = "normal",
        normalize: bool = True,
    ) -> bytes:
        """Return synthesized audio bytes for one text span."""

        if not self.api_key:
            raise SynthesisProviderError(
                "Missing Fish Audio API key. Set `FISH_API_KEY`.",
                failure_kind="invalid_api_key",
            )

        payload = {
            "text": text,
            "reference_id": reference_id,
            "format": audio_format,
            "mp3_bitrate": mp3_bitrate,
            "chunk_length": chunk_length,
            "latency": latency,
            "normalize": normalize,
        }
        return self._post_json_bytes("/v1/tts", payload)

    def _post_json_bytes(self, endpoint_path: str, payload: dict[str, Any]) -> bytes:
        """POST a JSON payload and map failures consistently."""

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.model:
            headers["model"] = self.model
        try:
            response = requests.post(
                f"{self.base_url}{endpoint_path}",
                headers=headers,
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            response_bytes = bytes(response.content)
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = "Synthesis request timed out."
            else:
                detail = f"Synthesis request transport error: {self._short_message(str(exc))}"
            raise SynthesisProviderError(detail, failure_kind=failure_kind) from exc

        if not response_bytes:
            raise SynthesisProviderError("Synthesis response is empty.", failure_kind="empty")
        return response_bytes

    @staticmethod
    def _http_error_to_provider_error(exc: requests.HTTPError) -> SynthesisProviderError:
        """Convert an HTTP error response into a classified provider exception."""

        response = exc.response
        status_code = response.status_code if response is not None else 0
        message, provider_code = _read_error_response(response)
        failure_kind = _failure_kind_for_status(status_code, message)

        headline = _FAILURE_HEADLINES.get(failure_kind, "Synthesis request failed")
        detail = f"{headline} (HTTP {status_code})"
        detail = f"{detail}: {message}" if message else f"{detail}."
        return SynthesisProviderError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            provider_code=provider_code,
        )

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Return `timeout` for timed-out connections and `transport` otherwise."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    @classmethod
    def _short_message(cls, text: str) -> str:
        return _cap_message(text, cls._MAX_PROVIDER_MESSAGE_CHARS)


_BEARER_TOKEN = re.compile(r"(?i)bearer\s+[A-Za-z0-9._-]{12,}")

# Status codes checked first; body keywords catch gateways that rewrap errors.
_STATUS_FAILURE_KINDS = {
    429: FAILURE_THROTTLED,
    401: "invalid_api_key",
    403: "invalid_api_key",
    402: "insufficient_quota",
    408: "timeout",
    504: "timeout",
}
_KEYWORD_FAILURE_KINDS = (
    ("too many requests", FAILURE_THROTTLED),
    ("api key", "invalid_api_key"),
    ("balance", "insufficient_quota"),
    ("credit", "insufficient_quota"),
    ("timed out", "timeout"),
)
_FAILURE_HEADLINES = {
    FAILURE_THROTTLED: "Synthesis provider is rate limiting requests",
    "invalid_api_key": "Synthesis provider authentication failed",
    "insufficient_quota": "Synthesis provider balance is insufficient",
    "timeout": "Synthesis request timed out",
}


def _cap_message(text: str, limit: int) -> str:
    """Return `text` on one line with bearer tokens masked, capped at `limit` chars."""

    compact = " ".join(_BEARER_TOKEN.sub("Bearer [redacted-token]", text).split())
    if len(compact) > limit:
        return compact[: limit - 1] + "..."
    return compact


def _read_error_response(response: requests.Response | None) -> tuple[str, str | None]:
    """Return the display message and Fish error code from an error response.

    Fish Audio answers failures with `{"status": ..., "message": ...}` JSON; a few
    gateway errors use `detail` instead, and proxies may return plain text.
    """

    if response is None or not response.content:
        return "", None

    limit = FishSpeechClient._MAX_PROVIDER_MESSAGE_CHARS
    raw_text = response.content.decode("utf-8", errors="replace").strip()
    try:
        body = json.loads(raw_text)
    except json.JSONDecodeError:
        return _cap_message(raw_text, limit), None
    if not isinstance(body, dict):
        return _cap_message(raw_text, limit), None

    text = next(
        (
            body[key].strip()
            for key in ("message", "detail")
            if isinstance(body.get(key), str) and body[key].strip()
        ),
        raw_text,
    )
    code = body.get("status", body.get("code"))
    return _cap_message(text, limit), None if code is None else str(code)


def _failure_kind_for_status(status_code: int, message: str) -> str:
    if status_code in _STATUS_FAILURE_KINDS:
        return _STATUS_FAILURE_KINDS[status_code]
    lowered = message.lower()
    for keyword, kind in _KEYWORD_FAILURE_KINDS:
        if keyword in lowered:
            return kind
    return "http_error"
