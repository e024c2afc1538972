"""
A gate is the readiness check of a single stage. Before a stage can be marked
complete, its gate is given the data collected for that stage so far, merged with the
payload being submitted, and must accept it. Gates encode the business rules of each
stage, such as a minimum share of an investigation checklist being ticked off or a
decision being chosen, while the engine only knows whether the gate passed.

Gates can be combined with ``&``, ``|`` and ``~`` in the same way as any predicate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence, Tuple

_Data = Optional[Any]


def _field(data: _Data, name: str) -> Any:
    if isinstance(data, Mapping):
        return data.get(name)
    return None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class Gate(ABC):
    """Abstract base class for all gates, providing logical operations."""

    @abstractmethod
    def __call__(self, stage_data: _Data) -> bool:
        """Check whether the data collected for a stage allows it to complete.

        :param stage_data: The data of the stage, usually a mapping, or ``None`` if
            nothing was collected.
        :return: Whether the stage is ready to be completed.
        """
        pass

    def reason(self, stage_data: _Data) -> str:
        """Explain to a user why this gate rejects the given data.

        :param stage_data: The data of the stage.
        :return: A short, user-facing sentence.
        """
        return "This stage is not ready to be completed"

    def __and__(self, other: Gate) -> Gate:
        return _And(self, other)

    def __or__(self, other: Gate) -> Gate:
        return _Or(self, other)

    def __invert__(self) -> Gate:
        return _Not(self)

    def __str__(self) -> str:
        return self.__class__.__name__


class _And(Gate):
    """The logical "and" of two gates."""

    def __init__(self, first: Gate, second: Gate) -> None:
        self.first = first
        self.second = second

    def __call__(self, stage_data: _Data) -> bool:
        return self.first(stage_data) and self.second(stage_data)

    def reason(self, stage_data: _Data) -> str:
        if not self.first(stage_data):
            return self.first.reason(stage_data)
        return self.second.reason(stage_data)

    def __str__(self) -> str:
        return f"({self.first} and {self.second})"


class _Or(Gate):
    """The logical "or" of two gates."""

    def __init__(self, first: Gate, second: Gate) -> None:
        self.first = first
        self.second = second

    def __call__(self, stage_data: _Data) -> bool:
        return self.first(stage_data) or self.second(stage_data)

    def reason(self, stage_data: _Data) -> str:
        return self.first.reason(stage_data)

    def __str__(self) -> str:
        return f"({self.first} or {self.second})"


class _Not(Gate):
    """The negation of a gate."""

    def __init__(self, gate: Gate) -> None:
        self.gate = gate

    def __call__(self, stage_data: _Data) -> bool:
        return not self.gate(stage_data)

    def __str__(self) -> str:
        return f"(not {self.gate})"


class AlwaysReady(Gate):
    """A gate that always passes, for stages without readiness criteria."""

    def __call__(self, stage_data: _Data) -> bool:
        return True


class RequiredFields(Gate):
    """Check that each of the named fields is present and not blank.

    :param names: The names of the required fields.
    """

    def __init__(self, *names: str) -> None:
        self._names: Tuple[str, ...] = names

    def missing(self, stage_data: _Data) -> Sequence[str]:
        """Return the names of required fields that are missing or blank."""
        return [name for name in self._names if _is_blank(_field(stage_data, name))]

    def __call__(self, stage_data: _Data) -> bool:
        return not self.missing(stage_data)

    def reason(self, stage_data: _Data) -> str:
        missing = ", ".join(self.missing(stage_data))
        return f"Fill in the required fields before continuing: {missing}"

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({', '.join(self._names)})"


class NonEmpty(Gate):
    """Check that a collection field, such as a list of uploaded documents, has items.

    :param name: The name of the collection field.
    """

    def __init__(self, name: str) -> None:
        self._name = name

    def __call__(self, stage_data: _Data) -> bool:
        value = _field(stage_data, self._name)
        return not isinstance(value, (str, bytes)) and bool(value)

    def reason(self, stage_data: _Data) -> str:
        return f"Add at least one item to '{self._name}' before continuing"

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self._name})"


class NonBlankText(Gate):
    """Check that a text field, such as closure notes, has more than whitespace.

    :param name: The name of the text field.
    """

    def __init__(self, name: str) -> None:
        self._name = name

    def __call__(self, stage_data: _Data) -> bool:
        value = _field(stage_data, self._name)
        return isinstance(value, str) and bool(value.strip())

    def reason(self, stage_data: _Data) -> str:
        return f"Enter {self._name.replace('_', ' ')} before continuing"

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self._name})"


class DecisionMade(Gate):
    """Check that a decision field holds a value other than the pending placeholder.

    :param name: The name of the decision field.
    :param pending: The value meaning that no decision was taken yet.
    """

    def __init__(self, name: str, pending: str = "pending") -> None:
        self._name = name
        self._pending = pending

    def __call__(self, stage_data: _Data) -> bool:
        value = _field(stage_data, self._name)
        return not _is_blank(value) and value != self._pending

    def reason(self, stage_data: _Data) -> str:
        return f"Choose a {self._name.replace('_', ' ')} other than '{self._pending}'"

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self._name})"


def _checklist_counts(checklist: Any) -> Tuple[int, int]:
    """Count the checked and total items of a checklist.

    A checklist is either a mapping of item names to booleans or a sequence of
    booleans. Anything else counts as an empty checklist.

    >>> _checklist_counts({"photos": True, "police report": False})
    (1, 2)
    >>> _checklist_counts([True, True, False])
    (2, 3)
    >>> _checklist_counts("not a checklist")
    (0, 0)
    """
    if isinstance(checklist, Mapping):
        values = list(checklist.values())
    elif isinstance(checklist, (list, tuple)):
        values = list(checklist)
    else:
        return 0, 0
    return sum(1 for value in values if value is True), len(values)


class ChecklistThreshold(Gate):
    """Check that at least a percentage of a checklist's items are ticked.

    :param name: The name of the checklist field.
    :param percent: The minimum share of checked items, as a whole percentage.
    """

    def __init__(self, name: str, percent: int = 70) -> None:
        if not 0 <= percent <= 100:
            raise ValueError(f"Percentage must be between 0 and 100, got {percent}")
        self._name = name
        self._percent = percent

    def remaining(self, stage_data: _Data) -> int:
        """Return how many more items must be checked for the gate to pass.

        >>> gate = ChecklistThreshold("items", 70)
        >>> gate.remaining({"items": [True] * 2 + [False] * 6})
        4
        >>> gate.remaining({"items": [True] * 7 + [False] * 3})
        0
        """
        checked, total = _checklist_counts(_field(stage_data, self._name))
        required = -(-self._percent * total // 100)
        return max(required - checked, 0)

    def __call__(self, stage_data: _Data) -> bool:
        _, total = _checklist_counts(_field(stage_data, self._name))
        return total > 0 and self.remaining(stage_data) == 0

    def reason(self, stage_data: _Data) -> str:
        _, total = _checklist_counts(_field(stage_data, self._name))
        if total == 0:
            return f"No items recorded for '{self._name}'"
        remaining = self.remaining(stage_data)
        noun = "item" if remaining == 1 else "items"
        return f"Complete {remaining} more checklist {noun} before continuing"

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self._name}, {self._percent}%)"
