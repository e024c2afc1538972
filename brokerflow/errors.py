"""
Errors and results produced by the workflow engine.

Only programming mistakes are raised. A stage that is not ready to complete is an
expected outcome, so ``complete_stage`` returns a ``StageNotReadyError`` instead of
raising it, and the caller branches on the type of the result, the same way it branches
on a ``WorkflowComplete`` signal. Persistence failures never leave the persister.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import attr

if TYPE_CHECKING:
    from brokerflow.state import WorkflowState


class WorkflowError(Exception):
    """Base class for all errors raised or returned by this package."""


class UnknownStageError(WorkflowError):
    """A stage id that is not part of the family's registry was referenced.

    :param stage_id: The unrecognized stage id.
    :param family: The value of the family that was searched.
    """

    def __init__(self, stage_id: str, family: str) -> None:
        self.stage_id = stage_id
        self.family = family
        super().__init__(f"Unknown stage '{stage_id}' in {family} workflow")


class StageNotReadyError(WorkflowError):
    """The completion gate of a stage rejected advancement.

    Instances are returned, not raised. The state the completion was attempted on is
    carried along unchanged so callers can keep using it.

    :param stage_id: The stage that could not be completed.
    :param reason: A user-facing explanation of what is still missing.
    :param state: The untouched state the completion was attempted on.
    """

    def __init__(self, stage_id: str, reason: str, state: WorkflowState) -> None:
        self.stage_id = stage_id
        self.reason = reason
        self.state = state
        super().__init__(reason)


class StageNotReachedError(StageNotReadyError):
    """A stage beyond the navigable frontier was asked to complete."""


class PersistenceError(WorkflowError):
    """A state store could not read or write a saved workflow."""


class WorkflowBusyError(WorkflowError):
    """A stage operation was started while another was still in flight."""


@attr.s(auto_attribs=True, frozen=True)
class WorkflowComplete:
    """Signal that the terminal stage of a workflow has been completed.

    :ivar WorkflowState state: The final state, with the last stage marked complete
        and still current.
    """

    state: WorkflowState
