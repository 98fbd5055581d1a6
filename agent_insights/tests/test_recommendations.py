import unittest

from agent_insights.analyzers.recommendations import (
    RULES,
    RecommendationInputs,
    evaluate_rules,
    generate_recommendations,
)
from agent_insights.analyzers.taxonomy import TASK_PATTERN_KEYS


def _inputs(tools=None, tasks=None, short_pct=0, long_pct=0, avg_tools=2.0) -> RecommendationInputs:
    task_patterns = {key: 0 for key in TASK_PATTERN_KEYS}
    task_patterns.update(tasks or {})
    return RecommendationInputs(
        tool_counts=tools or {},
        task_patterns=task_patterns,
        short_prompt_pct=short_pct,
        long_conversation_pct=long_pct,
        avg_tools_per_tool_turn=avg_tools,
    )


def _fired(inputs: RecommendationInputs) -> list[str]:
    return [rule.name for rule in RULES if rule.applies(inputs)]


class RecommendationRuleTests(unittest.TestCase):
    def test_nothing_fires_on_quiet_usage(self) -> None:
        self.assertEqual(evaluate_rules(_inputs()), [])

    def test_task_agent_search(self) -> None:
        self.assertIn("task-agent-search", _fired(_inputs(tools={"Grep": 51, "Task": 9})))
        self.assertNotIn("task-agent-search", _fired(_inputs(tools={"Grep": 51, "Task": 10})))
        self.assertNotIn("task-agent-search", _fired(_inputs(tools={"Grep": 50})))

    def test_todo_tracking(self) -> None:
        self.assertIn("todo-tracking", _fired(_inputs(long_pct=31, tools={"TodoWrite": 49})))
        self.assertNotIn("todo-tracking", _fired(_inputs(long_pct=30)))
        self.assertNotIn("todo-tracking", _fired(_inputs(long_pct=31, tools={"TodoWrite": 50})))

    def test_batch_reads(self) -> None:
        self.assertIn("batch-reads", _fired(_inputs(tools={"Read": 140, "Edit": 101})))
        self.assertNotIn("batch-reads", _fired(_inputs(tools={"Read": 160, "Edit": 101})))
        self.assertNotIn("batch-reads", _fired(_inputs(tools={"Read": 140, "Edit": 100})))

    def test_richer_prompts(self) -> None:
        self.assertIn("richer-prompts", _fired(_inputs(short_pct=41)))
        self.assertNotIn("richer-prompts", _fired(_inputs(short_pct=40)))

    def test_glob_discovery(self) -> None:
        self.assertIn("glob-discovery", _fired(_inputs(tools={"Read": 201, "Glob": 49})))
        self.assertNotIn("glob-discovery", _fired(_inputs(tools={"Read": 201, "Glob": 50})))

    def test_debugging_strategy_reports_share(self) -> None:
        inputs = _inputs(tasks={"debugging": 4, "featureImplementation": 4})
        [recommendation] = [r for r in evaluate_rules(inputs) if r.title == "Debugging Strategy"]

        self.assertEqual(recommendation.priority, "low")
        self.assertTrue(recommendation.insight.startswith("50% of your tasks are debugging"))
        self.assertNotIn("debugging-strategy", _fired(_inputs(tasks={"debugging": 3, "update": 7})))

    def test_parallel_operations(self) -> None:
        self.assertIn("parallel-operations", _fired(_inputs(tools={"Read": 101}, avg_tools=1.2)))
        self.assertIn("parallel-operations", _fired(_inputs(tools={"Grep": 51}, avg_tools=1.0)))
        self.assertNotIn("parallel-operations", _fired(_inputs(tools={"Read": 101}, avg_tools=1.5)))
        self.assertNotIn("parallel-operations", _fired(_inputs(tools={"Read": 100}, avg_tools=1.0)))

    def test_texts_address_claude_directly(self) -> None:
        inputs = _inputs(tools={"Read": 300, "Edit": 250, "Glob": 0}, long_pct=50, avg_tools=1.0)
        by_title = {r.title: r for r in evaluate_rules(inputs)}

        self.assertEqual(
            by_title["Track Complex Tasks with TodoWrite"].action,
            "Ask Claude to use TodoWrite at the start of complex implementations to track progress.",
        )
        self.assertTrue(by_title["Use Glob for File Discovery"].action.startswith("Ask Claude to "))
        self.assertEqual(
            by_title["Request Parallel Operations"].insight,
            "Claude can run multiple operations in parallel but usually does them one at a time for you.",
        )


class GenerateRecommendationsTests(unittest.TestCase):
    def _aggregates(self, short_pct: int, long_pct: int) -> tuple[dict, dict]:
        prompting = {"distribution": {"short": {"percentage": short_pct}}}
        flows = {"distribution": {"longConversations": {"percentage": long_pct}}}
        return prompting, flows

    def test_sorted_by_priority_and_capped_at_five(self) -> None:
        prompting, flows = self._aggregates(short_pct=60, long_pct=40)
        tool_usage = {"overall": {"Grep": 80, "Read": 300, "Edit": 250, "Glob": 5}}
        tasks = {key: 0 for key in TASK_PATTERN_KEYS}
        tasks["debugging"] = 10

        recommendations = generate_recommendations(tool_usage, tasks, prompting, flows, 1.1)

        self.assertEqual(len(recommendations), 5)
        priorities = [r.priority for r in recommendations]
        self.assertEqual(priorities, ["high", "high", "high", "medium", "medium"])
        # Table order is kept within a priority tier.
        self.assertEqual(
            [r.title for r in recommendations[:3]],
            [
                "Use Task Agent for Complex Searches",
                "Track Complex Tasks with TodoWrite",
                "Request Parallel Operations",
            ],
        )
        self.assertEqual(recommendations[3].title, "Consider Batching Read Operations")

    def test_fields_are_populated(self) -> None:
        prompting, flows = self._aggregates(short_pct=45, long_pct=0)
        tasks = {key: 0 for key in TASK_PATTERN_KEYS}

        [recommendation] = generate_recommendations({"overall": {}}, tasks, prompting, flows, 0.0)

        self.assertEqual(recommendation.type, "prompting")
        self.assertEqual(recommendation.priority, "medium")
        self.assertIn("45%", recommendation.insight)
        self.assertTrue(recommendation.action)


if __name__ == "__main__":
    unittest.main()
