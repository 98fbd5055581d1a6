"""File watcher service using watchfiles.

Monitors the transcript roots and re-runs a non-forced store refresh when
a relevant file is added, modified or deleted.
"""
from __future__ import annotations

import asyncio
import logging
from collections import Counter
from pathlib import Path
from typing import Iterable, Optional

from watchfiles import Change, awatch

logger = logging.getLogger("insights.watcher")

WATCHED_SUFFIXES = (".jsonl", ".txt")


class FileWatcher:
    """Background file watcher that refreshes the analytics store on change."""

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self, store, roots: Iterable[Path]) -> None:
        """Start watching the source roots in a background task."""
        if self._running:
            logger.warning("File watcher already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._watch_loop(store, list(roots)))
        logger.info("File watcher started")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("File watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self, store, roots: list[Path]) -> None:
        watch_paths = [p for p in roots if p.exists()]

        if not watch_paths:
            logger.warning("No watch paths exist, watcher has nothing to monitor")
            self._running = False
            return

        logger.info(f"Watching {len(watch_paths)} directories: {[str(p) for p in watch_paths]}")

        try:
            async for changes in awatch(*watch_paths):
                if not self._running:
                    break

                relevant = self.relevant_changes(changes)
                if relevant:
                    kinds = Counter(kind for kind, _ in relevant)
                    breakdown = ", ".join(f"{kind}={count}" for kind, count in sorted(kinds.items()))
                    logger.info(f"Detected {len(relevant)} transcript changes ({breakdown}), refreshing")
                    try:
                        await asyncio.to_thread(store.refresh, False, "watcher")
                    except Exception as e:
                        logger.error(f"Error refreshing after file changes: {e}")
        except asyncio.CancelledError:
            logger.info("File watcher task cancelled")
        except Exception as e:
            logger.error(f"File watcher error: {e}")
        finally:
            self._running = False

    @staticmethod
    def relevant_changes(changes: Iterable[tuple[Change, str]]) -> list[tuple[str, Path]]:
        """Keep transcript files only, as (``"deleted"`` | ``"modified"``, path) pairs."""
        result = []
        for change_type, path_str in changes:
            path = Path(path_str)
            if path.suffix not in WATCHED_SUFFIXES:
                continue
            if change_type == Change.deleted:
                result.append(("deleted", path))
            elif change_type in (Change.modified, Change.added):
                result.append(("modified", path))
        return result


# Singleton instance
file_watcher = FileWatcher()
