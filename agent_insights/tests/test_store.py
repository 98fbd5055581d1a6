import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from agent_insights import store as store_module
from agent_insights.fingerprint import EMPTY_FINGERPRINT, conversations_fingerprint, fingerprint_files
from agent_insights.store import AnalyticsStore


class _RootsMixin:
    def _make_roots(self) -> dict[str, Path]:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        base = Path(tmpdir.name)
        roots = {
            "claude": base / "claude" / "projects",
            "codex": base / "codex" / "sessions",
            "cursor": base / "cursor" / "projects",
        }
        for root in roots.values():
            root.mkdir(parents=True)
        return roots

    def _write_claude_session(self, roots: dict[str, Path], name: str, prompts: list[str]) -> Path:
        path = roots["claude"] / "app" / f"{name}.jsonl"
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [
            {"type": "user", "timestamp": f"2026-02-16T10:00:0{i}Z", "message": {"content": prompt}}
            for i, prompt in enumerate(prompts)
        ]
        path.write_text("\n".join(json.dumps(line) for line in lines), encoding="utf-8")
        return path


class FingerprintTests(_RootsMixin, unittest.TestCase):
    def test_no_files_is_empty_marker(self) -> None:
        roots = self._make_roots()

        self.assertEqual(conversations_fingerprint(roots), EMPTY_FINGERPRINT)
        self.assertEqual(fingerprint_files([]), EMPTY_FINGERPRINT)

    def test_stable_without_changes(self) -> None:
        roots = self._make_roots()
        self._write_claude_session(roots, "sess-1", ["hello"])

        self.assertEqual(conversations_fingerprint(roots), conversations_fingerprint(roots))

    def test_changes_with_size_and_mtime(self) -> None:
        roots = self._make_roots()
        path = self._write_claude_session(roots, "sess-1", ["hello"])
        first = conversations_fingerprint(roots)

        self._write_claude_session(roots, "sess-1", ["hello", "again"])
        second = conversations_fingerprint(roots)
        self.assertNotEqual(first, second)

        stat = path.stat()
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))
        self.assertNotEqual(second, conversations_fingerprint(roots))

    def test_new_file_changes_fingerprint(self) -> None:
        roots = self._make_roots()
        self._write_claude_session(roots, "sess-1", ["hello"])
        before = conversations_fingerprint(roots)

        transcript = roots["cursor"] / "app" / "agent-transcripts" / "chat.txt"
        transcript.parent.mkdir(parents=True)
        transcript.write_text("user:\nhi\n", encoding="utf-8")

        self.assertNotEqual(before, conversations_fingerprint(roots))


class AnalyticsStoreTests(_RootsMixin, unittest.TestCase):
    def test_refresh_builds_generation(self) -> None:
        roots = self._make_roots()
        self._write_claude_session(roots, "sess-1", ["fix the login bug"])
        store = AnalyticsStore(roots)

        self.assertIsNone(store.current_generation)
        generation_id = store.refresh()

        generation = store.current_generation
        self.assertTrue(generation_id.startswith("GEN-"))
        self.assertEqual(generation.generation_id, generation_id)
        self.assertEqual(len(generation.conversations), 1)
        self.assertEqual(len(generation.conversations_for("claude")), 1)
        self.assertEqual(generation.conversations_for("codex"), [])
        self.assertEqual(generation.summary["taskPatterns"]["debugging"], 1)
        self.assertEqual(generation.summary_for("cursor")["overview"]["totalConversations"], 0)
        self.assertEqual(generation.schema_for("claude")["conversationCount"], 1)
        self.assertEqual(generation.schema_for("all")["source"], "all")

    def test_unforced_refresh_reuses_generation(self) -> None:
        roots = self._make_roots()
        self._write_claude_session(roots, "sess-1", ["hello"])
        store = AnalyticsStore(roots)

        first = store.refresh()
        self.assertEqual(store.ensure_fresh(), first)
        self.assertNotEqual(store.refresh(force=True), first)

    def test_file_change_triggers_rebuild(self) -> None:
        roots = self._make_roots()
        self._write_claude_session(roots, "sess-1", ["hello"])
        store = AnalyticsStore(roots)
        first = store.refresh()

        self._write_claude_session(roots, "sess-2", ["another"])
        second = store.ensure_fresh()

        self.assertNotEqual(first, second)
        self.assertEqual(len(store.current_generation.conversations), 2)

    def test_failed_build_keeps_previous_generation(self) -> None:
        roots = self._make_roots()
        self._write_claude_session(roots, "sess-1", ["hello"])
        store = AnalyticsStore(roots)
        first = store.refresh()

        with patch.object(store_module, "build_generation", side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                store.refresh(force=True)

        self.assertEqual(store.current_generation.generation_id, first)

    def test_empty_roots_still_publish(self) -> None:
        store = AnalyticsStore(self._make_roots())

        store.refresh()

        generation = store.current_generation
        self.assertEqual(generation.fingerprint, EMPTY_FINGERPRINT)
        self.assertEqual(generation.conversations, [])
        self.assertEqual(generation.summary["overview"]["totalConversations"], 0)


if __name__ == "__main__":
    unittest.main()
