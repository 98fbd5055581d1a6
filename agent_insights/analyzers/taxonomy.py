"""Declarative heuristic tables used by the conversation analyzers.

The task-pattern list is ordered by priority: a prompt is credited to the
first bucket with any matching keyword. Keywords overlap across buckets on
purpose; order is the only disambiguator.
"""
from __future__ import annotations

from typing import NamedTuple


class TaskPattern(NamedTuple):
    bucket: str
    keywords: tuple[str, ...]


TASK_PATTERN_PRIORITY: tuple[TaskPattern, ...] = (
    TaskPattern("debugging", ("fix", "error", "bug", "issue", "broken", "not working", "debug", "failing", "crash")),
    TaskPattern("featureImplementation", ("add", "create", "implement", "build", "new feature", "functionality", "need to", "want to")),
    TaskPattern("testing", ("test", "testing", "unit test", "integration test")),
    TaskPattern("refactoring", ("refactor", "improve", "optimize", "clean up", "restructure", "reorganize")),
    TaskPattern("update", ("update", "change", "modify", "edit", "replace", "remove")),
    TaskPattern("configuration", ("config", "setup", "install", "configure", "settings")),
    TaskPattern("documentation", ("document", "readme", "comment", "docs", "documentation")),
    TaskPattern("codeReview", ("review", "look at", "analyze", "examine", "can you check")),
    TaskPattern("exploration", ("how do", "how can", "what is", "what does", "explain", "understand", "learn", "find", "search", "where")),
    TaskPattern("question", ("?", "why", "when", "should", "could", "would")),
)

# Output key order of the task-pattern histogram.
TASK_PATTERN_KEYS: tuple[str, ...] = (
    "debugging",
    "featureImplementation",
    "codeReview",
    "documentation",
    "refactoring",
    "testing",
    "exploration",
    "configuration",
    "update",
    "question",
)


class LengthBucket(NamedTuple):
    key: str
    upper_bound: int | None  # exclusive; None = unbounded
    description: str


PROMPT_LENGTH_BUCKETS: tuple[LengthBucket, ...] = (
    LengthBucket("short", 50, "Under 50 characters - quick questions or commands"),
    LengthBucket("medium", 200, "50-200 characters - clear, focused requests"),
    LengthBucket("long", None, "Over 200 characters - detailed context and requirements"),
)
PROMPT_EXAMPLE_LIMIT = 3
PROMPT_EXAMPLE_CHARS = 100
LONG_PROMPT_SUFFIX = "..."


class TurnBucket(NamedTuple):
    key: str
    min_turns: int
    max_turns: int | None  # inclusive; None = unbounded
    description: str


CONVERSATION_FLOW_BUCKETS: tuple[TurnBucket, ...] = (
    TurnBucket("singleTurn", 1, 1, "One question, quick answer"),
    TurnBucket("shortConversations", 2, 5, "2-5 back-and-forth exchanges"),
    TurnBucket("mediumConversations", 6, 15, "6-15 exchanges - typical task completion"),
    TurnBucket("longConversations", 16, None, "16+ exchanges - complex or iterative work"),
)

TOOL_SEQUENCE_LIMIT = 10
TOOL_SEQUENCE_SEPARATOR = " → "


def classify_task(text: str) -> str | None:
    """Return the first matching task bucket for a prompt, or ``None``."""
    lowered = text.lower()
    for pattern in TASK_PATTERN_PRIORITY:
        if any(keyword in lowered for keyword in pattern.keywords):
            return pattern.bucket
    return None


def prompt_length_bucket(length: int) -> LengthBucket:
    for bucket in PROMPT_LENGTH_BUCKETS:
        if bucket.upper_bound is None or length < bucket.upper_bound:
            return bucket
    return PROMPT_LENGTH_BUCKETS[-1]


def conversation_flow_bucket(turns: int) -> TurnBucket | None:
    # Zero user turns (metadata-only sessions) match no bucket; callers still count them in the total.
    for bucket in CONVERSATION_FLOW_BUCKETS:
        if turns < bucket.min_turns:
            continue
        if bucket.max_turns is None or turns <= bucket.max_turns:
            return bucket
    return None
