import doctest
from unittest import TestCase, TestLoader, TestSuite

import brokerflow._types
from brokerflow._types import json_shaped, merge_payload


def load_tests(loader: TestLoader, tests: TestSuite, pattern: str) -> TestSuite:
    tests.addTests(doctest.DocTestSuite(brokerflow._types))
    return tests


class TestMergePayload(TestCase):
    def test_merge(self) -> None:
        for existing, payload, expected in [
            ({"a": 1}, {"b": 2}, {"a": 1, "b": 2}),
            ({"a": 1, "b": 2}, {"b": 3}, {"a": 1, "b": 3}),
            (None, {"a": 1}, {"a": 1}),
            ({"a": 1}, None, {"a": 1}),
            (None, None, None),
            ("draft", {"a": 1}, {"a": 1}),
            ({"a": 1}, "final", "final"),
        ]:
            with self.subTest(existing=existing, payload=payload):
                self.assertEqual(expected, merge_payload(existing, payload))

    def test_merge_is_shallow(self) -> None:
        merged = merge_payload({"nested": {"a": 1}}, {"nested": {"b": 2}})
        self.assertDictEqual({"nested": {"b": 2}}, merged)

    def test_inputs_are_not_modified(self) -> None:
        existing = {"a": 1}
        payload = {"b": 2}
        merge_payload(existing, payload)
        self.assertDictEqual({"a": 1}, existing)
        self.assertDictEqual({"b": 2}, payload)


class TestJsonShaped(TestCase):
    def test_containers(self) -> None:
        self.assertDictEqual(
            {"amounts": [1, [2, 3]], "parties": [{"role": "insured"}]},
            json_shaped({"amounts": (1, (2, 3)), "parties": ({"role": "insured"},)}),
        )

    def test_keys(self) -> None:
        self.assertDictEqual(
            {"1": "a", "2.5": "b", "false": "c", "null": "d", "x": "e"},
            json_shaped({1: "a", 2.5: "b", False: "c", None: "d", "x": "e"}),
        )

    def test_scalars_unchanged(self) -> None:
        handle = object()
        for value in [None, "text", 3, 1.5, False]:
            with self.subTest(value=value):
                self.assertEqual(value, json_shaped(value))
        self.assertIs(handle, json_shaped({"handle": handle})["handle"])

    def test_input_is_not_modified(self) -> None:
        data = {"amounts": (1, 2)}
        json_shaped(data)
        self.assertDictEqual({"amounts": (1, 2)}, data)
