"""
A session is the host-side owner of one record's workflow while it is open for
editing. It holds the only copy of the state, feeds it through the engine, and takes
care of the side effects the engine leaves out: saving after every change, writing
the audit trail, running stage actions and calling back when the workflow finishes.

Stage operations that call out to other services run through ``run_stage``, which
marks the state as loading, awaits the operation and completes the stage with its
result. While an operation is in flight, the session refuses to navigate, change
data, reset or start another operation. If the operation fails or is cancelled,
loading ends. A failure is recorded on the state and the user stays on the same
stage to retry it.
"""

import asyncio
import logging
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Sequence,
)

from brokerflow import engine
from brokerflow._types import merge_payload
from brokerflow.actions import Action
from brokerflow.collaborators import AuditLogger
from brokerflow.engine import CompletionResult, Workflow
from brokerflow.errors import (
    StageNotReachedError,
    StageNotReadyError,
    WorkflowBusyError,
    WorkflowComplete,
)
from brokerflow.persistence import StatePersister
from brokerflow.resumption import offers_edit_mode, restore_or_resolve
from brokerflow.stages import FamilyLike, StageStatus, as_family
from brokerflow.state import WorkflowState

StageOperation = Callable[[WorkflowState], Awaitable[Optional[Any]]]


class EditMode(Enum):
    """The choice offered before reopening a record that has made progress."""

    RESUME_WORKFLOW = "resume_workflow"
    EDIT_RECORD = "edit_record"


DEFAULT_KEY_PREFIX = "workflow"


def session_key(
    family: FamilyLike, record_id: str, prefix: str = DEFAULT_KEY_PREFIX
) -> str:
    """Return the key the workflow state of a record is saved under.

    >>> session_key("claims", "CLM-001")
    'workflow:claims:CLM-001'
    """
    return f"{prefix}:{as_family(family).value}:{record_id}"


class WorkflowSession:
    """The open workflow of one business record.

    :param workflow: The workflow the record moves through.
    :param record_id: The id of the quote or claim being edited.
    :param state: The state to start from. Defaults to a fresh workflow.
    :param persister: Where to save the state after every change, if anywhere.
    :param key: The key to save the state under. Defaults to one derived from the
        family and record id.
    :param audit_logger: Where to record completed stages, if anywhere.
    :param actions: Actions to apply after each stage completes, keyed by stage id.
    :param on_complete: Called with the final state when the last stage completes.
    """

    def __init__(
        self,
        workflow: Workflow,
        record_id: str,
        state: Optional[WorkflowState] = None,
        *,
        persister: Optional[StatePersister] = None,
        key: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
        actions: Optional[Mapping[str, Sequence[Action]]] = None,
        on_complete: Optional[Callable[[WorkflowState], None]] = None,
    ) -> None:
        self.workflow = workflow
        self.record_id = record_id
        self.key = key or session_key(workflow.family, record_id)
        self._state = state or workflow.create()
        self._persister = persister
        self._audit_logger = audit_logger
        self._actions = actions or {}
        self._on_complete = on_complete
        self.restore_warning: Optional[str] = None
        self.edit_mode_offered = False
        self.edit_mode: Optional[EditMode] = None
        self.finished = False
        self._logger = logging.getLogger(f"{self.__module__}.{self}")

    @classmethod
    def open(
        cls,
        workflow: Workflow,
        record_id: str,
        external_status: Optional[str] = None,
        *,
        persister: Optional[StatePersister] = None,
        key: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
        actions: Optional[Mapping[str, Sequence[Action]]] = None,
        on_complete: Optional[Callable[[WorkflowState], None]] = None,
    ) -> "WorkflowSession":
        """Open the workflow of an existing or new record.

        A state saved by an earlier session is restored if possible, otherwise the
        state is resolved from the record's external status. If a saved state could
        not be restored, ``restore_warning`` holds a message for the user.
        """
        key = key or session_key(workflow.family, record_id)
        state, warning = restore_or_resolve(
            workflow.family, external_status, key, persister
        )
        session = cls(
            workflow,
            record_id,
            state,
            persister=persister,
            key=key,
            audit_logger=audit_logger,
            actions=actions,
            on_complete=on_complete,
        )
        session.restore_warning = warning
        session.edit_mode_offered = offers_edit_mode(
            workflow.family, external_status
        )
        return session

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def needs_edit_mode_choice(self) -> bool:
        """Whether the user must choose an ``EditMode`` before the workflow is shown."""
        return self.edit_mode_offered and self.edit_mode is None

    def choose_edit_mode(self, mode: EditMode) -> None:
        self._logger.debug(f"Chose {mode.value}")
        self.edit_mode = mode

    def status_of(self, stage_id: str) -> StageStatus:
        return self.workflow.status_of(self._state, stage_id)

    def can_navigate_to(self, stage_id: str) -> bool:
        return not self._state.loading and self.workflow.can_navigate_to(
            self._state, stage_id
        )

    def navigate(self, stage_id: str) -> bool:
        """Move to a stage if the user is allowed to.

        :return: Whether the session moved to the stage.
        """
        if self._state.loading:
            self._logger.warning(f"Cannot move to {stage_id} while a stage is loading")
            return False
        if not self.workflow.can_navigate_to(self._state, stage_id):
            self._logger.warning(f"Cannot move to {stage_id} from {self._state}")
            return False
        self._update(self.workflow.set_stage(self._state, stage_id))
        return True

    def set_data(self, key: str, data: Any) -> None:
        """Store draft data without completing anything.

        :raises WorkflowBusyError: If a stage operation is in flight.
        """
        if self._state.loading:
            raise WorkflowBusyError(f"Cannot change {key} while loading")
        self._update(engine.set_data(self._state, key, data))

    def complete(
        self, stage_id: str, payload: Optional[Any] = None
    ) -> CompletionResult:
        """Complete a stage with a payload the host already has.

        :raises WorkflowBusyError: If a stage operation is in flight.
        """
        if self._state.loading:
            raise WorkflowBusyError(f"Cannot complete {stage_id} while loading")
        return self._complete(stage_id, payload)

    async def run_stage(
        self, stage_id: str, operation: StageOperation
    ) -> Optional[CompletionResult]:
        """Run the asynchronous operation of a stage and complete it with the result.

        :param stage_id: The stage the operation belongs to.
        :param operation: A coroutine function given the current state and returning
            the stage's payload.
        :return: The completion result, or ``None`` if the operation failed, in which
            case the state carries the error and the current stage is unchanged.
        :raises WorkflowBusyError: If another stage operation is still in flight.
        """
        if self._state.loading:
            raise WorkflowBusyError(f"Cannot run {stage_id} while another stage runs")
        self._update(engine.set_loading(self._state, True))
        try:
            payload = await operation(self._state)
        except asyncio.CancelledError:
            self._logger.warning(f"Operation for {stage_id} was cancelled")
            self._update(engine.set_loading(self._state, False))
            raise
        except Exception as e:
            self._logger.exception(f"Operation for {stage_id} failed")
            message = str(e) or e.__class__.__name__
            self._update(engine.set_error(self._state, message))
            return None
        self._state = engine.set_loading(self._state, False)
        return self._complete(stage_id, payload)

    def reset(self) -> WorkflowState:
        """Discard all progress and start the workflow over.

        :raises WorkflowBusyError: If a stage operation is in flight.
        """
        if self._state.loading:
            raise WorkflowBusyError("Cannot reset while a stage is loading")
        self.finished = False
        self.edit_mode = None
        self._update(self.workflow.reset())
        return self._state

    def _complete(self, stage_id: str, payload: Optional[Any]) -> CompletionResult:
        result = self.workflow.complete_stage(self._state, stage_id, payload)
        if isinstance(result, StageNotReachedError):
            self._update(engine.set_error(self._state, result.reason))
            return result
        if isinstance(result, StageNotReadyError):
            # Keep what the user entered so a retry only adds the missing parts
            draft = engine.set_data(
                self._state,
                stage_id,
                merge_payload(self._state.stage_data.get(stage_id), payload),
            )
            self._update(engine.set_error(draft, result.reason))
            return result

        if isinstance(result, WorkflowComplete):
            new_state, to_stage = result.state, None
        else:
            new_state, to_stage = result, result.current_stage_id
        self._update(new_state)
        if self._audit_logger is not None:
            self._audit_logger.log_transition(
                self.record_id, stage_id, to_stage, payload
            )
        self._apply_actions(stage_id)
        if isinstance(result, WorkflowComplete):
            self._finish()
        return result

    def _apply_actions(self, stage_id: str) -> None:
        for action in self._actions.get(stage_id, []):
            try:
                action(self.record_id, stage_id, self._state)
            except Exception as e:
                self._logger.exception(f"{action} failed after {stage_id}")
                self._update(engine.set_error(self._state, f"{action} failed: {e}"))

    def _finish(self) -> None:
        self.finished = True
        self._logger.info(f"Finished workflow of {self.record_id}")
        if self._persister is not None:
            self._persister.clear(self.key)
        if self._on_complete is not None:
            self._on_complete(self._state)

    def _update(self, state: WorkflowState) -> None:
        self._state = state
        if self._persister is not None and not self.finished:
            self._persister.save(state, self.key)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.workflow.family}, {self.record_id})"
