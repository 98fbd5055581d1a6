import unittest

from agent_insights.analyzers.schema import build_schema_snapshot, create_source_schema
from agent_insights.models import ContentItem, Conversation, Message


def _claude_conversation() -> Conversation:
    return Conversation(
        conversationId="sess-1",
        project="app",
        platform="claude",
        path="/tmp/sess-1.jsonl",
        metadata={"recordTypeCounts": {"user": 1}, "gitBranches": []},
        messages=[
            Message(type="user", timestamp="2026-02-16T10:00:00Z", content="hi", uuid="u-1", cwd="/app"),
            Message(
                type="assistant",
                timestamp="2026-02-16T10:00:01Z",
                content=[
                    ContentItem(type="text", text="ok"),
                    ContentItem(type="tool_use", name="Read"),
                    ContentItem(type="tool_use", name="Read"),
                    ContentItem(type="tool_use", name="Grep"),
                ],
                uuid="u-2",
            ),
            Message(type="system", timestamp="2026-02-16T10:00:02Z", content=None, recordType="file-history-snapshot"),
        ],
    )


def _codex_conversation() -> Conversation:
    return Conversation(
        conversationId="codex-1",
        project="/home/dev/app",
        platform="codex",
        path="/tmp/rollout.jsonl",
        metadata={"recordTypeCounts": {"session_meta": 1}, "cliVersion": "0.40.0"},
        messages=[
            Message(type="user", timestamp="2026-02-16T10:00:00Z", content="hello"),
            Message(type="assistant", timestamp="2026-02-16T10:00:01Z", content={"raw": True}),
        ],
    )


class SchemaProfilerTests(unittest.TestCase):
    def test_source_schema_counts(self) -> None:
        schema = create_source_schema("claude", [_claude_conversation()])

        self.assertEqual(schema["conversationCount"], 1)
        self.assertEqual(schema["messageCount"], 3)
        self.assertEqual(
            schema["contentShapes"],
            [{"name": "string", "count": 1}, {"name": "array", "count": 1}, {"name": "nullish", "count": 1}],
        )
        self.assertEqual(
            schema["toolNames"],
            [{"name": "Read", "count": 2}, {"name": "Grep", "count": 1}],
        )
        self.assertEqual(schema["contentItemTypes"][0], {"name": "tool_use", "count": 3})
        message_fields = {entry["name"]: entry["count"] for entry in schema["messageFields"]}
        self.assertEqual(message_fields["type"], 3)
        self.assertEqual(message_fields["uuid"], 2)
        self.assertEqual(message_fields["recordType"], 1)
        # A null content value does not count as a present field.
        self.assertEqual(message_fields["content"], 2)
        conversation_fields = {entry["name"] for entry in schema["conversationFields"]}
        self.assertNotIn("parentConversationId", conversation_fields)
        self.assertEqual(schema["uniqueMessageFields"], [])

    def test_object_content_shape(self) -> None:
        schema = create_source_schema("codex", [_codex_conversation()])

        shapes = {entry["name"]: entry["count"] for entry in schema["contentShapes"]}
        self.assertEqual(shapes, {"string": 1, "object": 1})

    def test_snapshot_unique_fields_are_disjoint(self) -> None:
        claude = [_claude_conversation()]
        codex = [_codex_conversation()]
        by_source = {"claude": claude, "codex": codex, "cursor": []}

        snapshot = build_schema_snapshot(by_source, claude + codex)
        schemas = snapshot["bySource"]

        self.assertEqual(schemas["claude"]["uniqueMessageFields"], ["cwd", "recordType", "uuid"])
        self.assertEqual(schemas["claude"]["uniqueMetadataFields"], ["gitBranches"])
        self.assertEqual(schemas["codex"]["uniqueMetadataFields"], ["cliVersion"])
        self.assertEqual(schemas["cursor"]["uniqueMessageFields"], [])
        self.assertEqual(schemas["cursor"]["conversationCount"], 0)

        for key in ("uniqueConversationFields", "uniqueMetadataFields", "uniqueMessageFields"):
            seen: set[str] = set()
            for source in ("claude", "codex", "cursor"):
                fields = set(schemas[source][key])
                self.assertFalse(fields & seen)
                seen |= fields

        self.assertEqual(snapshot["all"]["source"], "all")
        self.assertEqual(snapshot["all"]["conversationCount"], 2)
        self.assertEqual(snapshot["all"]["uniqueMessageFields"], [])


if __name__ == "__main__":
    unittest.main()
