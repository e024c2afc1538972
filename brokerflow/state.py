from typing import Any, FrozenSet, Mapping, Optional

import attr

from brokerflow.errors import UnknownStageError
from brokerflow.registry import first_stage_id, stage_by_id
from brokerflow.stages import Family, FamilyLike, as_family


@attr.s(auto_attribs=True, frozen=True)
class WorkflowState:
    """The progress of one business record through its workflow.

    Instances are never modified. Every engine operation returns a new state, so a
    state that was handed out stays valid for as long as the caller holds it.

    :ivar Family family: The family whose stages this state moves through.
    :ivar str current_stage_id: The stage the user is viewing or editing.
    :ivar FrozenSet[str] completed_stage_ids: The stages marked complete so far.
    :ivar Mapping[str,Any] stage_data: Data collected by each stage, keyed by stage.
    :ivar bool loading: Whether a stage operation is in flight.
    :ivar Optional[str] last_error: The message of the most recent failed operation.
    """

    family: Family = attr.ib(converter=as_family)
    current_stage_id: str = attr.ib()
    completed_stage_ids: FrozenSet[str] = attr.ib(
        factory=frozenset, converter=frozenset
    )
    stage_data: Mapping[str, Any] = attr.ib(factory=dict)
    loading: bool = False
    last_error: Optional[str] = None

    @current_stage_id.validator
    def _check_current_stage(self, attribute: "attr.Attribute", value: str) -> None:
        if stage_by_id(self.family, value) is None:
            raise UnknownStageError(value, self.family.value)

    @classmethod
    def initial(cls, family: FamilyLike) -> "WorkflowState":
        """Return the state of a fresh workflow, on the first stage with no data."""
        return cls(family=family, current_stage_id=first_stage_id(family))

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.family}, {self.current_stage_id})"
