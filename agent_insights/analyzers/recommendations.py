"""Rule-based workflow recommendations derived from aggregation outputs.

Rules are plain data: a predicate over `RecommendationInputs` plus message
templates. All rules are evaluated; the matches are stably sorted by
priority tier and truncated.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from agent_insights.analyzers.rounding import percentage
from agent_insights.models import Recommendation

RECOMMENDATION_LIMIT = 5
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

# Thresholds
GREP_HEAVY = 50
TASK_AGENT_LOW = 10
LONG_CONVERSATION_PCT = 30
TODO_LOW = 50
BATCH_READ_EDIT_MIN = 100
BATCH_READ_EDIT_RATIO = 1.5
SHORT_PROMPT_PCT = 40
READ_HEAVY_FOR_GLOB = 200
GLOB_LOW = 50
DEBUGGING_SHARE = 0.3
PARALLEL_TOOLS_PER_TURN = 1.5
PARALLEL_READ_HEAVY = 100
PARALLEL_GREP_HEAVY = 50


@dataclass(frozen=True)
class RecommendationInputs:
    tool_counts: Mapping[str, int]
    task_patterns: Mapping[str, int]
    short_prompt_pct: int = 0
    long_conversation_pct: int = 0
    avg_tools_per_tool_turn: float = 0.0

    def tool(self, name: str) -> int:
        return int(self.tool_counts.get(name, 0) or 0)

    @property
    def total_tasks(self) -> int:
        return sum(self.task_patterns.values())

    @property
    def debugging_tasks(self) -> int:
        return int(self.task_patterns.get("debugging", 0) or 0)

    @classmethod
    def from_aggregates(
        cls,
        tool_usage: Mapping[str, Any],
        task_patterns: Mapping[str, int],
        prompting_patterns: Mapping[str, Any],
        conversation_flows: Mapping[str, Any],
        avg_tools_per_tool_turn: float,
    ) -> "RecommendationInputs":
        return cls(
            tool_counts=dict(tool_usage.get("overall", {})),
            task_patterns=dict(task_patterns),
            short_prompt_pct=int(prompting_patterns["distribution"]["short"]["percentage"]),
            long_conversation_pct=int(conversation_flows["distribution"]["longConversations"]["percentage"]),
            avg_tools_per_tool_turn=float(avg_tools_per_tool_turn),
        )


@dataclass(frozen=True)
class RecommendationRule:
    name: str
    type: str
    priority: str
    title: str
    action: str
    applies: Callable[[RecommendationInputs], bool]
    insight: Callable[[RecommendationInputs], str]

    def evaluate(self, inputs: RecommendationInputs) -> Recommendation | None:
        if not self.applies(inputs):
            return None
        return Recommendation(
            type=self.type,
            title=self.title,
            insight=self.insight(inputs),
            action=self.action,
            priority=self.priority,
        )


def _batch_reads_applies(inputs: RecommendationInputs) -> bool:
    reads, edits = inputs.tool("Read"), inputs.tool("Edit")
    if reads <= BATCH_READ_EDIT_MIN or edits <= BATCH_READ_EDIT_MIN:
        return False
    return reads / edits < BATCH_READ_EDIT_RATIO


RULES: tuple[RecommendationRule, ...] = (
    RecommendationRule(
        name="task-agent-search",
        type="efficiency",
        priority="high",
        title="Use Task Agent for Complex Searches",
        action="Try using the Task tool for searches across multiple files or complex refactoring tasks.",
        applies=lambda i: i.tool("Grep") > GREP_HEAVY and i.tool("Task") < TASK_AGENT_LOW,
        insight=lambda i: (
            f"You've used Grep {i.tool('Grep')} times. For complex multi-file searches, "
            "the Task agent can search more effectively."
        ),
    ),
    RecommendationRule(
        name="todo-tracking",
        type="workflow",
        priority="high",
        title="Track Complex Tasks with TodoWrite",
        action="Ask Claude to use TodoWrite at the start of complex implementations to track progress.",
        applies=lambda i: i.long_conversation_pct > LONG_CONVERSATION_PCT and i.tool("TodoWrite") < TODO_LOW,
        insight=lambda i: (
            f"{i.long_conversation_pct}% of your conversations are long (16+ exchanges). "
            "TodoWrite helps track multi-step tasks."
        ),
    ),
    RecommendationRule(
        name="batch-reads",
        type="efficiency",
        priority="medium",
        title="Consider Batching Read Operations",
        action='Try asking "Read files X, Y, and Z" in one message to batch operations.',
        applies=_batch_reads_applies,
        insight=lambda i: "You often read and edit files separately. Claude can read multiple files at once.",
    ),
    RecommendationRule(
        name="richer-prompts",
        type="prompting",
        priority="medium",
        title="Provide More Context in Prompts",
        action="Include file paths, expected behavior, and constraints in your requests for more accurate assistance.",
        applies=lambda i: i.short_prompt_pct > SHORT_PROMPT_PCT,
        insight=lambda i: (
            f"{i.short_prompt_pct}% of your prompts are very short (<50 chars). "
            "More context leads to better results."
        ),
    ),
    RecommendationRule(
        name="glob-discovery",
        type="efficiency",
        priority="medium",
        title="Use Glob for File Discovery",
        action='Ask Claude to "find all .tsx files" or "glob for test files" to discover files faster.',
        applies=lambda i: i.tool("Read") > READ_HEAVY_FOR_GLOB and i.tool("Glob") < GLOB_LOW,
        insight=lambda i: (
            f"You've used Read {i.tool('Read')} times. Glob can find files matching patterns more efficiently."
        ),
    ),
    RecommendationRule(
        name="debugging-strategy",
        type="workflow",
        priority="low",
        title="Debugging Strategy",
        action='Start debugging sessions with "Run the tests first" or "Check the error logs" to establish baseline.',
        applies=lambda i: i.debugging_tasks > i.total_tasks * DEBUGGING_SHARE,
        insight=lambda i: (
            f"{percentage(i.debugging_tasks, i.total_tasks)}% of your tasks are debugging. "
            "Consider a systematic approach."
        ),
    ),
    RecommendationRule(
        name="parallel-operations",
        type="efficiency",
        priority="high",
        title="Request Parallel Operations",
        action='Try asking "Read these 3 files in parallel" or "Check both implementations simultaneously".',
        applies=lambda i: (
            i.avg_tools_per_tool_turn < PARALLEL_TOOLS_PER_TURN
            and (i.tool("Read") > PARALLEL_READ_HEAVY or i.tool("Grep") > PARALLEL_GREP_HEAVY)
        ),
        insight=lambda i: (
            "Claude can run multiple operations in parallel but usually does them one at a time for you."
        ),
    ),
)


def rank_recommendations(
    recommendations: Sequence[Recommendation],
    limit: int = RECOMMENDATION_LIMIT,
) -> list[Recommendation]:
    ranked = sorted(recommendations, key=lambda rec: PRIORITY_ORDER.get(rec.priority, len(PRIORITY_ORDER)))
    return ranked[:limit]


def evaluate_rules(
    inputs: RecommendationInputs,
    rules: Sequence[RecommendationRule] = RULES,
) -> list[Recommendation]:
    matched: list[Recommendation] = []
    for rule in rules:
        recommendation = rule.evaluate(inputs)
        if recommendation is not None:
            matched.append(recommendation)
    return matched


def generate_recommendations(
    tool_usage: Mapping[str, Any],
    task_patterns: Mapping[str, int],
    prompting_patterns: Mapping[str, Any],
    conversation_flows: Mapping[str, Any],
    avg_tools_per_tool_turn: float,
    limit: int = RECOMMENDATION_LIMIT,
) -> list[Recommendation]:
    inputs = RecommendationInputs.from_aggregates(
        tool_usage,
        task_patterns,
        prompting_patterns,
        conversation_flows,
        avg_tools_per_tool_turn,
    )
    return rank_recommendations(evaluate_rules(inputs), limit)
