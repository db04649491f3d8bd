import json
import unittest

from apitest.config_loader import Expectation
from apitest.evaluator import UNDECODABLE, NonJSONPolicy, decode_document, evaluate, is_json_content_type

JSON_HEADERS = {"Content-Type": "application/json"}


def _body(document) -> bytes:
    return json.dumps(document).encode("utf-8")


class EvaluateTests(unittest.TestCase):
    def test_passes_when_status_and_fields_match(self) -> None:
        expectation = Expectation(status=200, values={"id": "123", "title": "Clean"})
        evaluation = evaluate(expectation, 200, JSON_HEADERS, _body({"id": 123, "title": "Clean"}))

        self.assertTrue(evaluation.passed)
        self.assertEqual(evaluation.failures, [])
        self.assertEqual(evaluation.document, {"id": 123, "title": "Clean"})

    def test_status_mismatch_does_not_short_circuit(self) -> None:
        expectation = Expectation(status=200, values={"id": 1, "title": "x"})
        evaluation = evaluate(expectation, 404, JSON_HEADERS, _body({"id": 2, "title": "x"}))

        self.assertFalse(evaluation.passed)
        self.assertFalse(evaluation.status_matched)
        self.assertEqual([failure.rule for failure in evaluation.failures], ["status", "equals"])
        self.assertEqual(evaluation.failures[0].expected, 200)
        self.assertEqual(evaluation.failures[0].received, 404)
        self.assertEqual(evaluation.failures[1].selector, "id")

    def test_strict_mode(self) -> None:
        document = _body({"id": 123})
        loose = evaluate(Expectation(values={"id": "123"}), 200, JSON_HEADERS, document)
        strict = evaluate(Expectation(values={"id": "123"}, strict=True), 200, JSON_HEADERS, document)

        self.assertTrue(loose.passed)
        self.assertFalse(strict.passed)

    def test_missing_selector_counts_as_one_failure(self) -> None:
        expectation = Expectation(values={"missing": {"exists": True}, "id": 1})
        evaluation = evaluate(expectation, 200, JSON_HEADERS, _body({"id": 1}))

        self.assertEqual(len(evaluation.failures), 1)
        self.assertEqual(evaluation.failures[0].selector, "missing")
        self.assertEqual(evaluation.failures[0].rule, "exists")

    def test_rulesets(self) -> None:
        expectation = Expectation(
            values={
                "count": {"gt": 1, "le": 3},
                "items.[0].name": {"equals": "a", "exists": True},
                "name": {"lt": 5},
                "other": {"exists": True, "between": 1},
            }
        )
        document = _body({"count": 5, "items": [{"name": "a"}], "name": "abc", "other": 1})
        evaluation = evaluate(expectation, 200, JSON_HEADERS, document)

        by_selector = {(failure.selector, failure.rule): failure for failure in evaluation.failures}
        self.assertEqual(
            sorted(by_selector), [("count", "le"), ("name", "lt"), ("other", "between")]
        )
        self.assertIn("parse", by_selector[("name", "lt")].message)
        self.assertIn("Invalid rule", by_selector[("other", "between")].message)

    def test_mapping_without_rules_is_a_literal(self) -> None:
        expectation = Expectation(values={"owner": {"name": "ann"}})
        evaluation = evaluate(expectation, 200, JSON_HEADERS, _body({"owner": {"name": "ann"}}))
        self.assertTrue(evaluation.passed)

    def test_non_json_response_skips_field_checks(self) -> None:
        expectation = Expectation(status=200, values={"id": 1})
        evaluation = evaluate(expectation, 200, {"Content-Type": "text/plain"}, b"ok")

        self.assertTrue(evaluation.passed)
        self.assertTrue(evaluation.fields_skipped)
        self.assertFalse(evaluation.is_json)

    def test_non_json_response_fails_when_required(self) -> None:
        expectation = Expectation(status=200, values={"id": 1})
        evaluation = evaluate(
            expectation, 200, {"Content-Type": "text/plain"}, b"ok", non_json=NonJSONPolicy.FAIL
        )

        self.assertFalse(evaluation.passed)
        self.assertEqual(evaluation.failures[0].rule, "content-type")

    def test_non_json_without_field_checks(self) -> None:
        evaluation = evaluate(
            Expectation(status=200), 200, {"Content-Type": "text/html"}, b"<p>", non_json=NonJSONPolicy.FAIL
        )
        self.assertTrue(evaluation.passed)
        self.assertFalse(evaluation.fields_skipped)

    def test_undecodable_json(self) -> None:
        evaluation = evaluate(Expectation(values={"id": 1}), 200, JSON_HEADERS, b"{not json")

        self.assertFalse(evaluation.passed)
        self.assertEqual(evaluation.failures[0].rule, "decode")


class ContentTypeTests(unittest.TestCase):
    def test_is_json_content_type(self) -> None:
        self.assertTrue(is_json_content_type("application/json"))
        self.assertTrue(is_json_content_type("application/json; charset=utf-8"))
        self.assertTrue(is_json_content_type("application/problem+json"))
        self.assertFalse(is_json_content_type("text/plain"))
        self.assertFalse(is_json_content_type(None))

    def test_decode_document(self) -> None:
        self.assertEqual(decode_document(JSON_HEADERS, b'{"a": 1}'), {"a": 1})
        self.assertIsNone(decode_document({"Content-Type": "text/plain"}, b'{"a": 1}'))
        self.assertIs(decode_document(JSON_HEADERS, b"nope"), UNDECODABLE)


if __name__ == "__main__":
    unittest.main()
