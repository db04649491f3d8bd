import unittest

from apitest.capture import capture
from apitest.config_loader import SetDirective
from apitest.errors import CaptureError


class CaptureTests(unittest.TestCase):
    def test_writes_selected_values(self) -> None:
        variables = {"created_id": "stale", "host": "http://x"}
        document = {"id": 123, "auth": {"token": "abc"}, "items": [{"done": True}]}
        captured = capture(
            [
                SetDirective(var="created_id", source="id"),
                SetDirective(var="token", source=".auth.token"),
                SetDirective(var="first_done", source="items.[0].done"),
            ],
            document,
            variables,
        )

        self.assertEqual(captured, {"created_id": 123, "token": "abc", "first_done": True})
        self.assertEqual(
            variables,
            {"created_id": 123, "host": "http://x", "token": "abc", "first_done": True},
        )

    def test_missing_source_raises_after_earlier_captures(self) -> None:
        variables = {}
        with self.assertRaises(CaptureError) as ctx:
            capture(
                [SetDirective(var="a", source="a"), SetDirective(var="b", source="nope")],
                {"a": 1},
                variables,
            )

        self.assertEqual(ctx.exception.var, "b")
        self.assertEqual(variables, {"a": 1})

    def test_non_json_document_raises(self) -> None:
        with self.assertRaises(CaptureError):
            capture([SetDirective(var="a", source="a")], None, {}, is_json=False)

    def test_no_directives_is_a_noop(self) -> None:
        self.assertEqual(capture([], None, {}, is_json=False), {})


if __name__ == "__main__":
    unittest.main()
