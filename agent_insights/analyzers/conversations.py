"""Aggregation passes over normalized conversations.

Every pass is a pure function of its input list and shares no state with
the others, so they can run in any order.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from typing import Any, Iterable, Iterator, Sequence

from agent_insights.analyzers.recommendations import generate_recommendations
from agent_insights.analyzers.rounding import percentage, round_half_up
from agent_insights.analyzers.taxonomy import (
    CONVERSATION_FLOW_BUCKETS,
    LONG_PROMPT_SUFFIX,
    PROMPT_EXAMPLE_CHARS,
    PROMPT_EXAMPLE_LIMIT,
    PROMPT_LENGTH_BUCKETS,
    TASK_PATTERN_KEYS,
    TOOL_SEQUENCE_LIMIT,
    TOOL_SEQUENCE_SEPARATOR,
    classify_task,
    conversation_flow_bucket,
    prompt_length_bucket,
)
from agent_insights.date_utils import day_bucket, iso_to_epoch_ms
from agent_insights.models import ContentItem, Conversation, Message

DEFAULT_METRICS_LIMIT = 20


def tool_use_items(message: Message) -> list[ContentItem]:
    """Tool invocations carried by an assistant message (empty for anything else)."""
    if message.type != "assistant" or not isinstance(message.content, list):
        return []
    return [item for item in message.content if item.type == "tool_use"]


def iter_tool_names(conversation: Conversation) -> Iterator[str]:
    for message in conversation.messages:
        for item in tool_use_items(message):
            if item.name:
                yield item.name


def user_prompts(conversation: Conversation) -> Iterator[str]:
    """Plain-text user turns; list-shaped user content (tool results) is skipped."""
    for message in conversation.messages:
        if message.type == "user" and isinstance(message.content, str):
            yield message.content


def user_turn_count(conversation: Conversation) -> int:
    return sum(1 for message in conversation.messages if message.type == "user")


# ── Passes ──────────────────────────────────────────────────────────

def analyze_tool_usage(conversations: Sequence[Conversation]) -> dict[str, Any]:
    overall: Counter[str] = Counter()
    by_project: dict[str, Counter[str]] = {}
    for conv in conversations:
        project_counts = by_project.setdefault(conv.project or "unknown", Counter())
        for name in iter_tool_names(conv):
            overall[name] += 1
            project_counts[name] += 1
    return {
        "overall": dict(overall),
        "byProject": {project: dict(counts) for project, counts in by_project.items()},
    }


def _duration_ms(first: str | None, last: str | None) -> int:
    start = iso_to_epoch_ms(first)
    end = iso_to_epoch_ms(last)
    if start is None or end is None:
        return 0
    return int(end - start)


def analyze_conversation_metrics(conversations: Sequence[Conversation]) -> list[dict[str, Any]]:
    metrics: list[dict[str, Any]] = []
    for conv in conversations:
        timestamps = [message.timestamp for message in conv.messages if message.timestamp]
        first_ts = timestamps[0] if timestamps else None
        last_ts = timestamps[-1] if timestamps else None
        metrics.append({
            "conversationId": conv.conversationId,
            "project": conv.project,
            "messageCount": len(conv.messages),
            "userMessages": sum(1 for m in conv.messages if m.type == "user"),
            "assistantMessages": sum(1 for m in conv.messages if m.type == "assistant"),
            "toolUseCount": sum(len(tool_use_items(m)) for m in conv.messages),
            "duration": _duration_ms(first_ts, last_ts) if len(timestamps) >= 2 else 0,
            "timestamp": first_ts,
        })
    return metrics


def analyze_task_patterns(conversations: Sequence[Conversation]) -> dict[str, int]:
    patterns = {key: 0 for key in TASK_PATTERN_KEYS}
    for conv in conversations:
        for prompt in user_prompts(conv):
            bucket = classify_task(prompt)
            if bucket is not None:
                patterns[bucket] += 1
    return patterns


def analyze_prompting_patterns(conversations: Sequence[Conversation]) -> dict[str, Any]:
    counts: Counter[str] = Counter()
    examples: dict[str, list[str]] = {bucket.key: [] for bucket in PROMPT_LENGTH_BUCKETS}
    total_prompts = 0
    total_length = 0

    for conv in conversations:
        for prompt in user_prompts(conv):
            if not prompt:
                continue
            total_prompts += 1
            total_length += len(prompt)
            bucket = prompt_length_bucket(len(prompt))
            counts[bucket.key] += 1
            if len(examples[bucket.key]) < PROMPT_EXAMPLE_LIMIT:
                snippet = prompt[:PROMPT_EXAMPLE_CHARS]
                if bucket.upper_bound is None:
                    snippet += LONG_PROMPT_SUFFIX
                examples[bucket.key].append(snippet)

    return {
        "totalPrompts": total_prompts,
        "avgLength": int(round_half_up(total_length / total_prompts)) if total_prompts else 0,
        "distribution": {
            bucket.key: {
                "count": counts[bucket.key],
                "percentage": percentage(counts[bucket.key], total_prompts),
                "description": bucket.description,
                "examples": examples[bucket.key],
            }
            for bucket in PROMPT_LENGTH_BUCKETS
        },
    }


def analyze_conversation_flows(conversations: Sequence[Conversation]) -> dict[str, Any]:
    counts: Counter[str] = Counter()
    turn_counts = [user_turn_count(conv) for conv in conversations]
    for turns in turn_counts:
        bucket = conversation_flow_bucket(turns)
        if bucket is not None:
            counts[bucket.key] += 1

    total = len(conversations)
    avg_turns = sum(turn_counts) / total if total else 0.0
    return {
        "avgTurnsPerConversation": round_half_up(avg_turns, 1),
        "distribution": {
            bucket.key: {
                "count": counts[bucket.key],
                "percentage": percentage(counts[bucket.key], total),
                "description": bucket.description,
            }
            for bucket in CONVERSATION_FLOW_BUCKETS
        },
    }


def analyze_tool_sequences(conversations: Sequence[Conversation]) -> list[dict[str, Any]]:
    # Counter keeps first-seen order, and sorted() is stable, so ties stay in that order.
    sequences: Counter[str] = Counter()
    for conv in conversations:
        tools = list(iter_tool_names(conv))
        for current, following in zip(tools, tools[1:]):
            sequences[f"{current}{TOOL_SEQUENCE_SEPARATOR}{following}"] += 1

    ranked = sorted(sequences.items(), key=lambda pair: pair[1], reverse=True)
    return [{"sequence": sequence, "count": count} for sequence, count in ranked[:TOOL_SEQUENCE_LIMIT]]


def _activity_bounds(timestamps: list[str]) -> tuple[str, str] | None:
    if not timestamps:
        return None
    keyed = [(iso_to_epoch_ms(ts), ts) for ts in timestamps]
    parsed = [(epoch, ts) for epoch, ts in keyed if epoch is not None]
    if parsed:
        return min(parsed, key=lambda pair: pair[0])[1], max(parsed, key=lambda pair: pair[0])[1]
    ordered = sorted(timestamps)
    return ordered[0], ordered[-1]


def analyze_project_activity(conversations: Sequence[Conversation]) -> dict[str, dict[str, Any]]:
    stats: dict[str, dict[str, Any]] = {}
    timestamps: dict[str, list[str]] = defaultdict(list)

    for conv in conversations:
        project = conv.project or "unknown"
        entry = stats.setdefault(project, {"conversationCount": 0, "messageCount": 0})
        entry["conversationCount"] += 1
        entry["messageCount"] += len(conv.messages)
        timestamps[project].extend(m.timestamp for m in conv.messages if m.timestamp)

    for project, entry in stats.items():
        bounds = _activity_bounds(timestamps[project])
        if bounds:
            entry["firstActivity"], entry["lastActivity"] = bounds
    return stats


def _chat_message_count(conv: Conversation) -> int:
    return sum(
        1 for m in conv.messages
        if m.type in ("user", "assistant") and isinstance(m.content, str)
    )


_TIMELINE_COUNTERS = (
    ("totalConversations", "cumulativeConversations"),
    ("sessions", "cumulativeSessions"),
    ("subagentRuns", "cumulativeSubagentRuns"),
    ("chatMessages", "cumulativeChatMessages"),
    ("totalEvents", "cumulativeTotalEvents"),
    ("toolUses", "cumulativeToolUses"),
)


def analyze_timeline(conversations: Sequence[Conversation]) -> dict[str, Any]:
    """Daily activity keyed by the UTC day each conversation started.

    Only days with at least one conversation are emitted.
    """
    days: dict[str, Counter[str]] = defaultdict(Counter)
    for conv in conversations:
        day = day_bucket(conv.messages[0].timestamp) if conv.messages else ""
        if not day:
            continue
        counters = days[day]
        counters["totalConversations"] += 1
        counters["subagentRuns" if conv.sourceKind == "subagent" else "sessions"] += 1
        counters["chatMessages"] += _chat_message_count(conv)
        counters["totalEvents"] += len(conv.messages)
        counters["toolUses"] += sum(len(tool_use_items(m)) for m in conv.messages)

    by_day: list[dict[str, Any]] = []
    running: Counter[str] = Counter()
    for day in sorted(days):
        counters = days[day]
        point: dict[str, Any] = {"date": day}
        for key, cumulative_key in _TIMELINE_COUNTERS:
            running[key] += counters[key]
            point[key] = counters[key]
            point[cumulative_key] = running[key]
        by_day.append(point)
    return {"byDay": by_day}


def average_tools_per_tool_turn(conversations: Sequence[Conversation]) -> float:
    """Mean over conversations of (tool uses / assistant turns that used a tool).

    Conversations without any tool turn contribute zero.
    """
    if not conversations:
        return 0.0
    total = 0.0
    for conv in conversations:
        per_turn = [len(items) for items in (tool_use_items(m) for m in conv.messages) if items]
        if per_turn:
            total += sum(per_turn) / len(per_turn)
    return total / len(conversations)


def _overview(
    conversations: Sequence[Conversation],
    metrics: Iterable[dict[str, Any]],
    project_activity: dict[str, Any],
) -> dict[str, Any]:
    metrics = list(metrics)
    total = len(conversations)
    total_messages = sum(m["messageCount"] for m in metrics)
    subagent_runs = sum(1 for conv in conversations if conv.sourceKind == "subagent")
    return {
        "totalConversations": total,
        "totalSessions": total - subagent_runs,
        "totalSubagentRuns": subagent_runs,
        "totalMessages": total_messages,
        "totalToolUses": sum(m["toolUseCount"] for m in metrics),
        "avgMessagesPerConversation": round_half_up(total_messages / total, 1) if total else 0,
        "totalProjects": len(project_activity),
    }


def generate_summary(
    conversations: Sequence[Conversation],
    metrics_limit: int = DEFAULT_METRICS_LIMIT,
) -> dict[str, Any]:
    """Build the complete analytics summary for a conversation collection."""
    tool_usage = analyze_tool_usage(conversations)
    metrics = analyze_conversation_metrics(conversations)
    task_patterns = analyze_task_patterns(conversations)
    project_activity = analyze_project_activity(conversations)
    prompting_patterns = analyze_prompting_patterns(conversations)
    conversation_flows = analyze_conversation_flows(conversations)
    tool_sequences = analyze_tool_sequences(conversations)
    timeline = analyze_timeline(conversations)

    recommendations = generate_recommendations(
        tool_usage,
        task_patterns,
        prompting_patterns,
        conversation_flows,
        average_tools_per_tool_turn(conversations),
    )

    return {
        "overview": _overview(conversations, metrics, project_activity),
        "toolUsage": tool_usage,
        "conversationMetrics": metrics[:metrics_limit],
        "taskPatterns": task_patterns,
        "projectActivity": project_activity,
        "timeline": timeline,
        "recommendations": [rec.model_dump() for rec in recommendations],
        "promptingPatterns": prompting_patterns,
        "conversationFlows": conversation_flows,
        "toolSequences": tool_sequences,
    }
