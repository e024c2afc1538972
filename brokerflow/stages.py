"""
A stage is one named step of a linear business process, such as uploading the
documents of a claim or matching a quote to insurers. Each family of workflows, quotes
or claims, has a fixed, ordered list of ``StageDescriptor`` that defines which stage
follows which. Descriptors carry display metadata the engine never inspects, along with
the external statuses of the underlying record that correspond to the stage.
"""

from enum import Enum
from typing import FrozenSet, Iterable, List, Sequence, Tuple, Union

import attr


class Family(Enum):
    """The families of workflows, one per kind of business record."""

    QUOTES = "quotes"
    CLAIMS = "claims"

    def __str__(self) -> str:
        return self.value


FamilyLike = Union[Family, str]


def as_family(family: FamilyLike) -> Family:
    """Coerce a family or its string value into a ``Family``.

    >>> as_family("claims")
    <Family.CLAIMS: 'claims'>
    >>> as_family(Family.QUOTES)
    <Family.QUOTES: 'quotes'>
    """
    return family if isinstance(family, Family) else Family(family)


class StageStatus(Enum):
    """The status of a stage relative to the current stage of a workflow."""

    COMPLETED = "completed"
    ACTIVE = "active"
    PENDING = "pending"


@attr.s(auto_attribs=True, frozen=True)
class StageDescriptor:
    """A stage in a workflow family.

    :ivar str id: The unique key of the stage, stable across versions.
    :ivar int order: The position of the stage. Strictly increasing along a family.
    :ivar str name: The display name of the stage.
    :ivar str description: A short display description of the stage.
    :ivar FrozenSet[str] required_external_statuses: External statuses of the record
        during which this stage is being worked on. Only used for implied progress.
    """

    id: str
    order: int
    name: str
    description: str = ""
    required_external_statuses: FrozenSet[str] = attr.ib(
        factory=frozenset, converter=frozenset
    )

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.id})"


def build_stages(
    rows: Iterable[Tuple[str, str, str, Iterable[str]]]
) -> List[StageDescriptor]:
    """Build an ordered list of stages from ``(id, name, description, statuses)`` rows.

    Orders are assigned from the position of each row, starting at one.

    >>> [s.id for s in build_stages([("a", "A", "", []), ("b", "B", "", ["x"])])]
    ['a', 'b']
    """
    return [
        StageDescriptor(
            id=stage_id,
            order=index,
            name=name,
            description=description,
            required_external_statuses=frozenset(statuses),
        )
        for index, (stage_id, name, description, statuses) in enumerate(rows, start=1)
    ]


def check_stages(stages: Sequence[StageDescriptor]) -> None:
    """Check that a list of stages forms a valid, totally ordered chain.

    :param stages: The stages of a family, in order.
    :raises ValueError: If the list is empty, an id repeats, or the orders are not
        strictly increasing.
    """
    if not stages:
        raise ValueError("A workflow family needs at least one stage")
    seen = set()
    for previous, stage in zip([None, *stages], stages):
        if stage.id in seen:
            raise ValueError(f"Duplicate stage id '{stage.id}'")
        seen.add(stage.id)
        if previous is not None and stage.order <= previous.order:
            raise ValueError(f"{stage} is not ordered after {previous}")
