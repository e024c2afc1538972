import doctest
from unittest import TestCase, TestLoader, TestSuite

import brokerflow.gates
from brokerflow.gates import (
    AlwaysReady,
    ChecklistThreshold,
    DecisionMade,
    Gate,
    NonBlankText,
    NonEmpty,
    RequiredFields,
    _And,
    _Not,
    _Or,
)


def load_tests(loader: TestLoader, tests: TestSuite, pattern: str) -> TestSuite:
    tests.addTests(doctest.DocTestSuite(brokerflow.gates))
    return tests


class TestCombinators(TestCase):
    def setUp(self) -> None:
        self.has_amount = RequiredFields("amount")
        self.has_notes = NonBlankText("notes")

    def test_and(self) -> None:
        gate = self.has_amount & self.has_notes
        self.assertIsInstance(gate, _And)
        self.assertTrue(gate({"amount": 1, "notes": "ok"}))
        self.assertFalse(gate({"amount": 1}))
        self.assertEqual("Enter notes before continuing", gate.reason({"amount": 1}))
        self.assertEqual(
            "Fill in the required fields before continuing: amount",
            gate.reason({"notes": "ok"}),
        )

    def test_or(self) -> None:
        gate = self.has_amount | self.has_notes
        self.assertIsInstance(gate, _Or)
        self.assertTrue(gate({"notes": "ok"}))
        self.assertFalse(gate({}))

    def test_not(self) -> None:
        gate = ~self.has_amount
        self.assertIsInstance(gate, _Not)
        self.assertTrue(gate({}))
        self.assertFalse(gate({"amount": 1}))

    def test_str(self) -> None:
        gate = self.has_amount & ~self.has_notes
        self.assertEqual(
            "(RequiredFields(amount) and (not NonBlankText(notes)))", str(gate)
        )

    def test_default_reason(self) -> None:
        class Never(Gate):
            def __call__(self, stage_data: object) -> bool:
                return False

        self.assertEqual("This stage is not ready to be completed", Never().reason({}))


class TestAlwaysReady(TestCase):
    def test(self) -> None:
        for data in [None, {}, "anything"]:
            with self.subTest(data=data):
                self.assertTrue(AlwaysReady()(data))


class TestRequiredFields(TestCase):
    gate = RequiredFields("client_id", "premium")

    def test_present(self) -> None:
        self.assertTrue(self.gate({"client_id": "C-1", "premium": 0}))

    def test_missing(self) -> None:
        for data, missing in [
            (None, ["client_id", "premium"]),
            ({"client_id": "C-1"}, ["premium"]),
            ({"client_id": "  ", "premium": 100}, ["client_id"]),
            ({"client_id": None, "premium": None}, ["client_id", "premium"]),
            ("not a mapping", ["client_id", "premium"]),
        ]:
            with self.subTest(data=data):
                self.assertFalse(self.gate(data))
                self.assertListEqual(missing, list(self.gate.missing(data)))

    def test_reason(self) -> None:
        self.assertEqual(
            "Fill in the required fields before continuing: client_id, premium",
            self.gate.reason({}),
        )


class TestNonEmpty(TestCase):
    gate = NonEmpty("documents")

    def test(self) -> None:
        for data, expectation in [
            ({"documents": ["a.pdf"]}, True),
            ({"documents": {"a.pdf": "uploaded"}}, True),
            ({"documents": []}, False),
            ({"documents": "a.pdf"}, False),
            ({}, False),
            (None, False),
        ]:
            with self.subTest(data=data):
                self.assertEqual(expectation, self.gate(data))

    def test_reason(self) -> None:
        self.assertEqual(
            "Add at least one item to 'documents' before continuing",
            self.gate.reason({}),
        )


class TestNonBlankText(TestCase):
    gate = NonBlankText("closure_notes")

    def test(self) -> None:
        for data, expectation in [
            ({"closure_notes": "Paid"}, True),
            ({"closure_notes": "   "}, False),
            ({"closure_notes": 42}, False),
            ({}, False),
        ]:
            with self.subTest(data=data):
                self.assertEqual(expectation, self.gate(data))

    def test_reason(self) -> None:
        self.assertEqual("Enter closure notes before continuing", self.gate.reason({}))


class TestDecisionMade(TestCase):
    gate = DecisionMade("decision")

    def test(self) -> None:
        for data, expectation in [
            ({"decision": "approve"}, True),
            ({"decision": "reject"}, True),
            ({"decision": "pending"}, False),
            ({"decision": ""}, False),
            ({}, False),
        ]:
            with self.subTest(data=data):
                self.assertEqual(expectation, self.gate(data))

    def test_custom_pending(self) -> None:
        gate = DecisionMade("outcome", pending="undecided")
        self.assertTrue(gate({"outcome": "pending"}))
        self.assertFalse(gate({"outcome": "undecided"}))
        self.assertEqual(
            "Choose a outcome other than 'undecided'", gate.reason({})
        )


class TestChecklistThreshold(TestCase):
    gate = ChecklistThreshold("checklist", 70)

    def test_below_threshold(self) -> None:
        data = {"checklist": [True] * 2 + [False] * 6}
        self.assertFalse(self.gate(data))
        self.assertEqual(4, self.gate.remaining(data))
        self.assertEqual(
            "Complete 4 more checklist items before continuing", self.gate.reason(data)
        )

    def test_exactly_at_threshold(self) -> None:
        self.assertTrue(self.gate({"checklist": [True] * 7 + [False] * 3}))

    def test_rounds_up(self) -> None:
        # 70% of 8 items is 5.6, so 6 are needed
        self.assertFalse(self.gate({"checklist": [True] * 5 + [False] * 3}))
        self.assertTrue(self.gate({"checklist": [True] * 6 + [False] * 2}))

    def test_one_remaining(self) -> None:
        data = {"checklist": {"photos": True, "report": False, "witness": True}}
        self.assertEqual(
            "Complete 1 more checklist item before continuing", self.gate.reason(data)
        )

    def test_empty_checklist(self) -> None:
        for data in [{"checklist": []}, {}, None]:
            with self.subTest(data=data):
                self.assertFalse(self.gate(data))
                self.assertEqual(
                    "No items recorded for 'checklist'", self.gate.reason(data)
                )

    def test_only_true_counts(self) -> None:
        self.assertFalse(ChecklistThreshold("c", 100)({"c": [True, "yes", 1]}))

    def test_zero_percent(self) -> None:
        self.assertTrue(ChecklistThreshold("c", 0)({"c": [False]}))

    def test_invalid_percent(self) -> None:
        for percent in [-1, 101]:
            with self.subTest(percent=percent):
                with self.assertRaises(ValueError):
                    ChecklistThreshold("checklist", percent)

    def test_str(self) -> None:
        self.assertEqual("ChecklistThreshold(checklist, 70%)", str(self.gate))
