"""External audio tool resolution and invocation helpers.

Responsibilities:
- Resolve `ffmpeg`/`ffprobe` executables with explicit-override-first precedence.
- Run tools with captured output and map failures to `ConcatenationToolError`.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

from .errors import ConcatenationToolError
from .parsing import normalize_optional_string


def resolve_executable(command_name: str, override: str | None = None) -> str:
    """Resolve an executable path.

    Resolution order:
    1. Explicit override (config value), when it points at an existing file or PATH entry.
    2. System `PATH`.
    3. Raw command name (allowing subprocess to raise a native missing-binary error).
    """

    explicit = normalize_optional_string(override)
    if explicit is not None:
        if Path(explicit).is_file():
            return explicit
        found = shutil.which(explicit)
        if found is not None:
            return found

    resolved_path = shutil.which(command_name)
    if resolved_path is not None:
        return resolved_path
    return command_name


def run_tool(command: list[str], *, stage: str, action: str) -> subprocess.CompletedProcess[str]:
    """Run an external tool and raise stage-aware errors on failure."""

    try:
        return subprocess.run(
            command,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise ConcatenationToolError(
            f"Audio tool `{Path(command[0]).name}` is not available on PATH.",
            hint="Install ffmpeg (which ships ffprobe) and rerun.",
            stage=stage,
        ) from exc
    except subprocess.CalledProcessError as exc:
        stderr = normalize_optional_string(exc.stderr) or "no stderr output"
        raise ConcatenationToolError(
            f"{Path(command[0]).name} failed while {action}: {_last_lines(stderr)}",
            hint="Inspect the ffmpeg error above; inputs may be corrupt or truncated.",
            stage=stage,
        ) from exc


def _last_lines(text: str, count: int = 3) -> str:
    """Return the trailing lines of tool output, which carry the actual error."""

    lines = [line for line in text.splitlines() if line.strip()]
    return " | ".join(lines[-count:])
