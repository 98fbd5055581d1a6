import tempfile
import unittest
from pathlib import Path

from agent_insights.date_utils import iso_to_epoch_ms
from agent_insights.parsers.normalize import METADATA_ONLY_TRANSCRIPT
from agent_insights.parsers.platforms.cursor.parser import (
    discover_files,
    parse_transcript_blocks,
    parse_transcript_file,
    scan_conversations,
)

TRANSCRIPT = """preamble that is ignored
user:
<user_query>
fix the failing build
</user_query>

assistant:
Let me look at the config.
[Tool call] read_file
  path: build.gradle
[Tool result] read_file
[Tool call] grep
assistant:

user:
thanks
"""


class CursorParserTests(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = Path(tmpdir.name) / "projects"

    def _write(self, relative_path: str, text: str) -> Path:
        path = self.root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def test_blocks_skip_preamble_and_blank_blocks(self) -> None:
        blocks = parse_transcript_blocks(TRANSCRIPT)

        self.assertEqual([b.role for b in blocks], ["user", "assistant", "user"])

    def test_transcript_messages_and_tool_calls(self) -> None:
        path = self._write("my-app/agent-transcripts/chat-1.txt", TRANSCRIPT)

        conv = parse_transcript_file(path, self.root)
        assert conv is not None

        self.assertEqual(conv.conversationId, "chat-1")
        self.assertEqual(conv.project, "my-app")
        self.assertEqual(conv.platform, "cursor")
        self.assertEqual(
            [(m.type, m.content if isinstance(m.content, str) else m.content[0].name) for m in conv.messages],
            [
                ("user", "fix the failing build"),
                ("assistant", "Let me look at the config.\n  path: build.gradle"),
                ("assistant", "read_file"),
                ("assistant", "grep"),
                ("user", "thanks"),
            ],
        )
        self.assertEqual(conv.metadata["blockCount"], 3)
        self.assertEqual(conv.metadata["toolCallCount"], 2)
        self.assertEqual(conv.metadata["fileSizeBytes"], path.stat().st_size)

    def test_synthesized_timestamps_strictly_increase(self) -> None:
        path = self._write("my-app/agent-transcripts/chat-1.txt", TRANSCRIPT)

        conv = parse_transcript_file(path, self.root)
        assert conv is not None

        epochs = [iso_to_epoch_ms(m.timestamp) for m in conv.messages]
        self.assertTrue(all(later > earlier for earlier, later in zip(epochs, epochs[1:])))

    def test_transcript_without_blocks_gets_placeholder(self) -> None:
        path = self._write("my-app/agent-transcripts/empty.txt", "no sentinels here\n")

        conv = parse_transcript_file(path, self.root)
        assert conv is not None

        self.assertEqual(len(conv.messages), 1)
        self.assertEqual(conv.messages[0].type, "system")
        self.assertEqual(conv.messages[0].content, METADATA_ONLY_TRANSCRIPT)

    def test_discovery_requires_transcripts_directory(self) -> None:
        self._write("my-app/agent-transcripts/a.txt", "user:\nhi\n")
        self._write("my-app/notes/b.txt", "user:\nhi\n")
        self._write("other/agent-transcripts/c.md", "user:\nhi\n")

        files = discover_files(self.root)
        conversations = scan_conversations(self.root)

        self.assertEqual([p.name for p in files], ["a.txt"])
        self.assertEqual([c.project for c in conversations], ["my-app"])


if __name__ == "__main__":
    unittest.main()
