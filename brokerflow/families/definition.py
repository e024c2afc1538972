from typing import Callable, Dict, List, Mapping, Sequence

import attr

from brokerflow.gates import Gate
from brokerflow.stages import Family, StageDescriptor, check_stages

GateFactory = Callable[[int], Mapping[str, Gate]]


@attr.s(auto_attribs=True, frozen=True)
class ExternalTransition:
    """A permitted change of the external lifecycle status of a record.

    :ivar str from_status: The status the record is in.
    :ivar str to_status: The status the record moves to.
    :ivar str label: A display label for the action, e.g. "Start Investigation".
    :ivar str description: A display description of the action.
    :ivar bool requires_notes: Whether the change must be accompanied by notes.
    """

    from_status: str
    to_status: str
    label: str
    description: str = ""
    requires_notes: bool = False


@attr.s(auto_attribs=True, frozen=True)
class FamilyDefinition:
    """Everything the engine knows about one family of workflows.

    :ivar Family family: The family being defined.
    :ivar List[StageDescriptor] stages: The ordered stages of the family.
    :ivar Mapping[str,str] status_mapping: Maps external statuses of a record to the
        stage a resumed workflow should open on.
    :ivar List[str] status_hierarchy: The external statuses in lifecycle order, used
        for implied progress.
    :ivar List[ExternalTransition] transitions: The permitted external status changes.
    :ivar bool supports_edit_mode: Whether reopening an in-progress record offers the
        choice between resuming the workflow and editing the record only.
    :ivar GateFactory gate_factory: Builds the default gates of each stage from a
        checklist percentage.
    """

    family: Family
    stages: List[StageDescriptor] = attr.ib()
    status_mapping: Mapping[str, str]
    status_hierarchy: List[str]
    transitions: List[ExternalTransition]
    supports_edit_mode: bool
    gate_factory: GateFactory

    @stages.validator
    def _check_stages(self, attribute: "attr.Attribute", value: Sequence) -> None:
        check_stages(value)

    def __attrs_post_init__(self) -> None:
        stage_ids = {stage.id for stage in self.stages}
        for status, stage_id in self.status_mapping.items():
            if stage_id not in stage_ids:
                raise ValueError(
                    f"Status '{status}' maps to unknown stage '{stage_id}'"
                )

    def default_gates(self, checklist_percent: int = 70) -> Dict[str, Gate]:
        """Build the default gate of each stage that has one."""
        return dict(self.gate_factory(checklist_percent))
