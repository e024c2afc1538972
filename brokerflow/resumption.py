"""
Resumption reconstructs an in-progress workflow when a user reopens a record. A state
saved by an earlier session is preferred. Otherwise the record's external status, the
lifecycle field owned by the record store, is mapped onto the stage the user should
land on, and every stage before it is treated as complete so the user can move back
freely.

External systems may introduce statuses this package has never seen, so an unknown
status never fails: the workflow simply starts from its first stage.
"""

import logging
from typing import TYPE_CHECKING, Optional, Tuple

from brokerflow.engine import (
    complete_prior_stages,
    create_workflow,
    index_of,
    set_stage,
)
from brokerflow.errors import UnknownStageError
from brokerflow.registry import (
    definition_for,
    first_stage_id,
    stage_by_id,
    status_hierarchy_for,
    status_mapping_for,
)
from brokerflow.stages import FamilyLike, StageStatus, as_family
from brokerflow.state import WorkflowState

if TYPE_CHECKING:
    from brokerflow.persistence import StatePersister

_logger = logging.getLogger(__name__)


def resolve_initial_stage(family: FamilyLike, external_status: Optional[str]) -> str:
    """Return the stage a workflow should open on for a record's external status.

    >>> resolve_initial_stage("claims", "investigating")
    'review'
    >>> resolve_initial_stage("claims", "reopened")
    'notification'
    >>> resolve_initial_stage("claims", None)
    'notification'
    """
    if external_status is None:
        return first_stage_id(family)
    stage_id = status_mapping_for(family).get(external_status)
    if stage_id is None:
        _logger.info(f"No stage for {family} status '{external_status}', starting over")
        return first_stage_id(family)
    return stage_id


def state_for_status(
    family: FamilyLike, external_status: Optional[str]
) -> WorkflowState:
    """Build a state positioned on the resolved stage with all prior stages complete."""
    stage_id = resolve_initial_stage(family, external_status)
    state = set_stage(create_workflow(family), stage_id)
    return complete_prior_stages(state, stage_id)


def restore_or_resolve(
    family: FamilyLike,
    external_status: Optional[str],
    persisted_key: Optional[str] = None,
    persister: Optional["StatePersister"] = None,
) -> Tuple[WorkflowState, Optional[str]]:
    """Reopen the workflow of a record, explaining any failure to restore it.

    :return: A tuple of the resumed state and, if a saved state existed but could not
        be restored, a user-facing warning.
    """
    family = as_family(family)
    if persister is None or persisted_key is None:
        return state_for_status(family, external_status), None
    saved, warning = persister.restore(persisted_key)
    if saved is not None and saved.family is family:
        _logger.debug(f"Restored {saved} from '{persisted_key}'")
        return saved, None
    if saved is not None:
        _logger.warning(
            f"Ignoring saved {saved} under '{persisted_key}' for {family} workflow"
        )
    return state_for_status(family, external_status), warning


def resume_workflow(
    family: FamilyLike,
    external_status: Optional[str],
    persisted_key: Optional[str] = None,
    persister: Optional["StatePersister"] = None,
) -> WorkflowState:
    """Reopen the workflow of a record.

    :param family: The family of the record.
    :param external_status: The record's current lifecycle status, if any.
    :param persisted_key: The key a previous session saved its state under.
    :param persister: The persister to load the saved state from.
    :return: The saved state if one can be restored for this family, otherwise a state
        resolved from the external status.
    """
    state, _ = restore_or_resolve(family, external_status, persisted_key, persister)
    return state


def offers_edit_mode(family: FamilyLike, external_status: Optional[str]) -> bool:
    """Return whether reopening a record should first offer the edit mode choice.

    The choice is only offered by families that support it, and only once the record
    has moved beyond the first stage.
    """
    if not definition_for(family).supports_edit_mode:
        return False
    state = create_workflow(family)
    return index_of(state, resolve_initial_stage(family, external_status)) > 0


def implied_status_of(
    family: FamilyLike, external_status: Optional[str], stage_id: str
) -> StageStatus:
    """Return the display-only status of a stage implied by a record's status alone.

    This ignores which stages were actually completed. A stage is ``ACTIVE`` while the
    record is in one of the stage's required statuses and ``COMPLETED`` once the record
    has moved past all of them. A stage with no required statuses precedes the
    record's lifecycle and counts as complete as soon as the status is known.

    >>> implied_status_of("claims", "investigating", "registration")
    <StageStatus.COMPLETED: 'completed'>
    >>> implied_status_of("claims", "investigating", "documents")
    <StageStatus.ACTIVE: 'active'>
    >>> implied_status_of("claims", "investigating", "settlement")
    <StageStatus.PENDING: 'pending'>
    """
    stage = stage_by_id(family, stage_id)
    if stage is None:
        raise UnknownStageError(stage_id, as_family(family).value)
    hierarchy = status_hierarchy_for(family)
    if external_status not in hierarchy:
        return StageStatus.PENDING
    if external_status in stage.required_external_statuses:
        return StageStatus.ACTIVE
    current = hierarchy.index(external_status)
    required = [
        hierarchy.index(status)
        for status in stage.required_external_statuses
        if status in hierarchy
    ]
    if current > max(required, default=-1):
        return StageStatus.COMPLETED
    return StageStatus.PENDING
