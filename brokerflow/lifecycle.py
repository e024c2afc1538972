"""
The lifecycle of a record is owned by the record store, not by the workflow engine.
These tables describe which changes of a record's external status are permitted, so a
host can offer them as actions and refuse anything else before calling the store.
"""

import logging
from typing import List, Optional

from brokerflow._itertools import find
from brokerflow.families.definition import ExternalTransition
from brokerflow.registry import transitions_for
from brokerflow.stages import FamilyLike

_logger = logging.getLogger(__name__)


def available_transitions(
    family: FamilyLike, status: Optional[str]
) -> List[ExternalTransition]:
    """Return the status changes permitted from a record's current status.

    >>> [t.to_status for t in available_transitions("claims", "registered")]
    ['investigating', 'rejected']
    >>> available_transitions("claims", "closed")
    []
    """
    return [
        transition
        for transition in transitions_for(family)
        if transition.from_status == status
    ]


def find_transition(
    family: FamilyLike, from_status: Optional[str], to_status: str
) -> Optional[ExternalTransition]:
    """Return the transition between two statuses, or ``None`` if it is not permitted.
    """
    return find(
        available_transitions(family, from_status),
        lambda transition: transition.to_status == to_status,
    )


def check_transition(
    family: FamilyLike,
    from_status: Optional[str],
    to_status: str,
    notes: Optional[str] = None,
) -> Optional[str]:
    """Check whether a record may move between two statuses.

    :param family: The family of the record.
    :param from_status: The record's current status.
    :param to_status: The requested status.
    :param notes: Notes accompanying the change.
    :return: ``None`` if the change is permitted, otherwise a warning string explaining
        why it is not.
    """
    transition = find_transition(family, from_status, to_status)
    if transition is None:
        warning = f"Cannot move {family} record from '{from_status}' to '{to_status}'"
        _logger.warning(warning)
        return warning
    if transition.requires_notes and not (notes or "").strip():
        warning = f"'{transition.label}' requires notes"
        _logger.warning(warning)
        return warning
    return None
