import unittest

from agent_insights.main import app


class AppRoutesTests(unittest.TestCase):
    def test_api_surface_is_registered(self) -> None:
        schema_paths = app.openapi()["paths"]
        paths = {(path, method) for path, operations in schema_paths.items() for method in operations}

        expected = {
            ("/api/health", "get"),
            ("/api/analytics/summary", "get"),
            ("/api/analytics/sources", "get"),
            ("/api/analytics/schema", "get"),
            ("/api/analytics/tools", "get"),
            ("/api/analytics/tasks", "get"),
            ("/api/analytics/projects", "get"),
            ("/api/analytics/metrics", "get"),
            ("/api/conversations", "get"),
            ("/api/conversations/{conversation_id}", "get"),
            ("/api/search", "get"),
            ("/api/history", "get"),
            ("/api/reload", "post"),
        }
        self.assertTrue(expected.issubset(paths), expected - paths)


if __name__ == "__main__":
    unittest.main()
