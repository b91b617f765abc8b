"""Artifact storage abstraction.

Responsibilities:
- Provide deterministic filesystem storage for JSON and audio artifacts.
- Stage every write in a sibling temp file and rename it into place, so an
  interrupted write never leaves a truncated artifact at the final path.
- Offer existence lookups used by resume flows.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
import tempfile
from typing import Any


class ArtifactStore:
    """Filesystem-backed artifact store with staged writes."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with a root output directory."""

        self.root = root

    def path_for(self, relative_path: Path) -> Path:
        """Return the absolute location of an artifact."""

        return self.root / relative_path

    def save_json(self, relative_path: Path, payload: dict[str, Any]) -> Path:
        """Save JSON-serializable payload and return final path."""

        content = json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
        return self._write_atomic(self.path_for(relative_path), content.encode("utf-8"))

    def save_audio(self, relative_path: Path, data: bytes) -> Path:
        """Save audio bytes and return final path."""

        return self._write_atomic(self.path_for(relative_path), data)

    def load_json(self, relative_path: Path) -> Any:
        """Load a JSON artifact."""

        path = self.path_for(relative_path)
        return json.loads(path.read_text(encoding="utf-8"))

    def exists(self, relative_path: Path) -> bool:
        """Return whether the given artifact exists as a non-empty file."""

        path = self.path_for(relative_path)
        return path.is_file() and path.stat().st_size > 0

    @staticmethod
    def reserve_staging_path(path: Path) -> Path:
        """Create and return a unique temp sibling for writing `path`.

        Concurrent writers of the same artifact each get their own staging file.
        """

        path.parent.mkdir(parents=True, exist_ok=True)
        handle, name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".partial"
        )
        os.close(handle)
        return Path(name)

    def _write_atomic(self, path: Path, data: bytes) -> Path:
        """Write bytes to a staging file, then rename over the final path."""

        staging = self.reserve_staging_path(path)
        try:
            staging.write_bytes(data)
            os.replace(staging, path)
        finally:
            if staging.exists():
                staging.unlink()
        return path
