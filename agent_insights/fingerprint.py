"""Content-independent fingerprint of the discoverable transcript files."""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable, Mapping

from agent_insights.parsers.platforms.registry import discover_all_files

EMPTY_FINGERPRINT = "empty"


def fingerprint_files(paths: Iterable[Path]) -> str:
    """Hash path, size and mtime of every file. Contents are never read."""
    files = list(paths)
    if not files:
        return EMPTY_FINGERPRINT

    digest = hashlib.sha1()
    for path in files:
        try:
            stats = path.stat()
            digest.update(f"{path}:{stats.st_size}:{stats.st_mtime_ns}".encode("utf-8"))
        except OSError:
            digest.update(f"{path}:missing".encode("utf-8"))
    return digest.hexdigest()


def conversations_fingerprint(roots: Mapping[str, Path] | None = None) -> str:
    return fingerprint_files(discover_all_files(roots))
