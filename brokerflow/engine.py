"""
The transition engine computes which stage of a workflow is active, which stages may be
visited, and how a workflow moves forward when a stage is completed. Every function here
is pure: it takes a ``WorkflowState`` and returns a new one, or a typed result, without
touching storage or any other collaborator.

Workflows are linear. Completing the current stage advances to the next one, and
completing the last stage returns a ``WorkflowComplete`` signal instead of moving past
the end. A user may revisit any stage up to the current one, any stage already
completed, and always the immediate next stage, so progress is never blocked by a stage
that has not recorded its completion yet.
"""

import logging
from typing import Any, Mapping, Optional, Tuple, Union

import attr

from brokerflow._types import json_shaped, merge_payload
from brokerflow.errors import (
    StageNotReachedError,
    StageNotReadyError,
    UnknownStageError,
    WorkflowComplete,
)
from brokerflow.gates import Gate
from brokerflow.registry import definition_for, stages_for
from brokerflow.stages import Family, FamilyLike, StageStatus, as_family
from brokerflow.state import WorkflowState

_logger = logging.getLogger(__name__)

CompletionResult = Union[WorkflowState, WorkflowComplete, StageNotReadyError]


def create_workflow(family: FamilyLike) -> WorkflowState:
    """Return a fresh workflow of the given family."""
    return WorkflowState.initial(family)


def reset(family: FamilyLike) -> WorkflowState:
    """Return the initial state of a family, discarding all progress and data."""
    return WorkflowState.initial(family)


def index_of(state: WorkflowState, stage_id: str) -> int:
    """Return the position of a stage within the state's family.

    :raises UnknownStageError: If the family has no such stage.
    """
    for index, stage in enumerate(stages_for(state.family)):
        if stage.id == stage_id:
            return index
    raise UnknownStageError(stage_id, state.family.value)


def is_completed(state: WorkflowState, stage_id: str) -> bool:
    """Return whether a stage was marked complete, regardless of where the user is.

    Unlike ``status_of``, this reports ``True`` for the current stage when it was
    completed earlier, so a host can show a stage as both active and done.
    """
    index_of(state, stage_id)
    return stage_id in state.completed_stage_ids


def status_of(state: WorkflowState, stage_id: str) -> StageStatus:
    """Return the status of a stage relative to the current stage.

    Exactly one stage, the current one, is ever ``ACTIVE``. A stage is ``COMPLETED``
    only if it was marked complete and lies before the current stage. Anything else is
    ``PENDING``.
    """
    index = index_of(state, stage_id)
    if stage_id == state.current_stage_id:
        return StageStatus.ACTIVE
    if stage_id in state.completed_stage_ids and index < index_of(
        state, state.current_stage_id
    ):
        return StageStatus.COMPLETED
    return StageStatus.PENDING


def can_navigate_to(state: WorkflowState, stage_id: str) -> bool:
    """Return whether the user may move to the given stage.

    Completed stages, earlier stages and the current stage are always reachable, and
    so is the stage immediately after the current one.
    """
    index = index_of(state, stage_id)
    if stage_id in state.completed_stage_ids:
        return True
    return index <= index_of(state, state.current_stage_id) + 1


def next_stage_id(state: WorkflowState, stage_id: str) -> Optional[str]:
    """Return the id of the stage after the given one, or ``None`` for the last."""
    stages = stages_for(state.family)
    next_index = index_of(state, stage_id) + 1
    if not next_index < len(stages):
        return None
    return stages[next_index].id


def progress_of(state: WorkflowState) -> Tuple[int, int]:
    """Return the one-based number of the current stage and the number of stages."""
    return index_of(state, state.current_stage_id) + 1, len(stages_for(state.family))


def set_stage(state: WorkflowState, stage_id: str) -> WorkflowState:
    """Move to a stage unconditionally.

    Hosts should check ``can_navigate_to`` first.

    :raises UnknownStageError: If the family has no such stage.
    """
    index_of(state, stage_id)
    return attr.evolve(state, current_stage_id=stage_id)


def set_data(state: WorkflowState, key: str, data: Any) -> WorkflowState:
    """Replace the data stored under a key, without completing anything.

    Data is kept in the shape it is saved in, see ``json_shaped``.
    """
    return attr.evolve(state, stage_data={**state.stage_data, key: json_shaped(data)})


def set_loading(state: WorkflowState, loading: bool) -> WorkflowState:
    return attr.evolve(state, loading=loading)


def set_error(state: WorkflowState, message: Optional[str]) -> WorkflowState:
    """Record the message of a failed operation, which also ends loading."""
    return attr.evolve(state, last_error=message, loading=False)


def complete_prior_stages(state: WorkflowState, stage_id: str) -> WorkflowState:
    """Mark every stage before the given one complete, without moving."""
    index = index_of(state, stage_id)
    prior = {stage.id for stage in stages_for(state.family)[:index]}
    return attr.evolve(state, completed_stage_ids=state.completed_stage_ids | prior)


def complete_stage(
    state: WorkflowState,
    stage_id: str,
    payload: Optional[Any] = None,
    gate: Optional[Gate] = None,
) -> CompletionResult:
    """Complete a stage, store its payload and advance if it was the current stage.

    The payload is shallow-merged into the data already collected for the stage and the
    gate, if any, is checked against the merged data, already in the shape it is saved
    in. A stage that the user could not navigate to yet cannot be completed either.

    :param state: The state to complete the stage on.
    :param stage_id: The stage being completed.
    :param payload: The data produced by the stage.
    :param gate: The readiness check of the stage.
    :return: The new state if the workflow continues, ``WorkflowComplete`` if the last
        stage was completed, or a ``StageNotReadyError`` holding the unchanged input
        state if the stage may not be completed.
    :raises UnknownStageError: If the family has no such stage.
    """
    index = index_of(state, stage_id)
    if (
        index > index_of(state, state.current_stage_id)
        and stage_id not in state.completed_stage_ids
    ):
        reason = f"Stage '{stage_id}' has not been reached yet"
        _logger.warning(f"Refusing to complete {stage_id} from {state}: {reason}")
        return StageNotReachedError(stage_id, reason, state)

    data = json_shaped(merge_payload(state.stage_data.get(stage_id), payload))
    if gate is not None and not gate(data):
        reason = gate.reason(data)
        _logger.debug(f"{gate} rejected {stage_id} of {state}: {reason}")
        return StageNotReadyError(stage_id, reason, state)

    new_state = attr.evolve(
        state,
        completed_stage_ids=state.completed_stage_ids | {stage_id},
        stage_data={**state.stage_data, stage_id: data},
        last_error=None,
    )
    if stage_id != state.current_stage_id:
        return new_state
    following = next_stage_id(state, stage_id)
    if following is None:
        _logger.debug(f"Completed final stage {stage_id} of {state}")
        return WorkflowComplete(new_state)
    _logger.debug(f"Advancing {state} to {following}")
    return attr.evolve(new_state, current_stage_id=following)


class Workflow:
    """A family of workflows bound to the gates of each of its stages.

    The workflow holds no progress of its own. It applies the engine functions to the
    states it is given, looking up the gate of a stage whenever one is completed.

    :param family: The family this workflow drives.
    :param gates: Gates keyed by stage id. Stages without a gate can always complete.
        Defaults to the family's default gates.
    """

    def __init__(
        self, family: FamilyLike, gates: Optional[Mapping[str, Gate]] = None
    ) -> None:
        self.family: Family = as_family(family)
        definition = definition_for(self.family)
        self._gates = dict(definition.default_gates() if gates is None else gates)
        stage_ids = {stage.id for stage in definition.stages}
        for stage_id in self._gates:
            if stage_id not in stage_ids:
                raise UnknownStageError(stage_id, self.family.value)
        self._logger = logging.getLogger(f"{self.__module__}.{self}")

    def gate_for(self, stage_id: str) -> Optional[Gate]:
        return self._gates.get(stage_id)

    def create(self) -> WorkflowState:
        return create_workflow(self.family)

    def reset(self) -> WorkflowState:
        return reset(self.family)

    def is_stage_ready(self, stage_id: str, stage_data: Optional[Any]) -> bool:
        """Check the gate of a stage against some data without changing any state."""
        gate = self.gate_for(stage_id)
        return gate is None or gate(stage_data)

    def complete_stage(
        self, state: WorkflowState, stage_id: str, payload: Optional[Any] = None
    ) -> CompletionResult:
        """Complete a stage of a state using that stage's gate.

        See ``brokerflow.engine.complete_stage`` for the possible results.
        """
        self._check_family(state)
        result = complete_stage(state, stage_id, payload, self.gate_for(stage_id))
        if isinstance(result, StageNotReadyError):
            self._logger.info(f"{stage_id} not ready: {result.reason}")
        return result

    def set_stage(self, state: WorkflowState, stage_id: str) -> WorkflowState:
        self._check_family(state)
        return set_stage(state, stage_id)

    def can_navigate_to(self, state: WorkflowState, stage_id: str) -> bool:
        self._check_family(state)
        return can_navigate_to(state, stage_id)

    def status_of(self, state: WorkflowState, stage_id: str) -> StageStatus:
        self._check_family(state)
        return status_of(state, stage_id)

    def _check_family(self, state: WorkflowState) -> None:
        if state.family is not self.family:
            raise ValueError(f"{state} does not belong to {self}")

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.family})"
