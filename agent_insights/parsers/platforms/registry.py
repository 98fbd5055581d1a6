"""Source registry for platform-specific readers."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Mapping, NamedTuple, Optional

from agent_insights import config
from agent_insights.models import Conversation
from agent_insights.observability import record_conversations_loaded
from agent_insights.parsers.platforms.claude_code import parser as claude_code_parser
from agent_insights.parsers.platforms.codex import parser as codex_parser
from agent_insights.parsers.platforms.cursor import parser as cursor_parser

logger = logging.getLogger("insights.parsers")


class SourceReader(NamedTuple):
    discover_files: Callable[[Path], list[Path]]
    scan_conversations: Callable[[Optional[Path]], list[Conversation]]


SOURCES: tuple[str, ...] = ("claude", "codex", "cursor")

_READERS: dict[str, SourceReader] = {
    "claude": SourceReader(claude_code_parser.discover_files, claude_code_parser.scan_conversations),
    "codex": SourceReader(codex_parser.discover_files, codex_parser.scan_conversations),
    "cursor": SourceReader(cursor_parser.discover_files, cursor_parser.scan_conversations),
}


def default_roots() -> dict[str, Path]:
    return {
        "claude": config.CLAUDE_PROJECTS_DIR,
        "codex": config.CODEX_SESSIONS_DIR,
        "cursor": config.CURSOR_PROJECTS_DIR,
    }


def is_known_source(source: str) -> bool:
    return source in _READERS


def discover_source_files(source: str, root: Path) -> list[Path]:
    return _READERS[source].discover_files(root)


def discover_all_files(roots: Mapping[str, Path] | None = None) -> list[Path]:
    """Every discoverable transcript file across sources, in a stable order."""
    resolved = default_roots() if roots is None else dict(roots)
    files: list[Path] = []
    for source in SOURCES:
        root = resolved.get(source)
        if root is not None:
            files.extend(discover_source_files(source, root))
    return files


def load_source(source: str, root: Path) -> list[Conversation]:
    conversations = _READERS[source].scan_conversations(root)
    logger.info("Loaded %d %s conversations from %s", len(conversations), source, root)
    record_conversations_loaded(source, len(conversations))
    return conversations


def load_conversations_by_source(roots: Mapping[str, Path] | None = None) -> dict[str, list[Conversation]]:
    """Parse and normalize all sources. Missing roots yield empty lists."""
    resolved = default_roots() if roots is None else dict(roots)
    by_source: dict[str, list[Conversation]] = {}
    for source in SOURCES:
        root = resolved.get(source)
        by_source[source] = load_source(source, root) if root is not None else []
    return by_source
