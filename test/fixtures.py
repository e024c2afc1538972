from typing import Any, Iterable, Mapping, Optional
from unittest.mock import create_autospec

from brokerflow.collaborators import AuditLogger, NotificationSender, RecordStore
from brokerflow.engine import Workflow
from brokerflow.persistence import InMemoryStateStore, StatePersister
from brokerflow.stages import FamilyLike
from brokerflow.state import WorkflowState

CLAIM_STAGES = [
    "notification",
    "registration",
    "documents",
    "assignment",
    "review",
    "validation",
    "settlement",
    "feedback",
    "closure",
]

QUOTE_STAGES = [
    "client-onboarding",
    "quote-drafting",
    "clause-recommendation",
    "rfq-generation",
    "insurer-matching",
    "quote-evaluation",
    "client-selection",
    "payment-processing",
    "contract-generation",
]

# Payloads accepted by the default gates of each claim stage
CLAIM_PAYLOADS: Mapping[str, Mapping[str, Any]] = {
    "notification": {"reported_by": "client"},
    "registration": {"policy_number": "POL-1"},
    "documents": {"documents": ["police-report.pdf"]},
    "assignment": {"adjuster_id": "ADJ-7"},
    "review": {"checklist": [True] * 7 + [False] * 3},
    "validation": {"decision": "approve"},
    "settlement": {"settlement_amount": 12000},
    "feedback": {"rating": 5},
    "closure": {"closure_notes": "Paid in full"},
}


def state(
    family: FamilyLike = "claims",
    current_stage_id: Optional[str] = None,
    completed_stage_ids: Iterable[str] = (),
    stage_data: Optional[Mapping[str, Any]] = None,
    loading: bool = False,
    last_error: Optional[str] = None,
) -> WorkflowState:
    initial = WorkflowState.initial(family)
    return WorkflowState(
        family=family,
        current_stage_id=current_stage_id or initial.current_stage_id,
        completed_stage_ids=frozenset(completed_stage_ids),
        stage_data=dict(stage_data or {}),
        loading=loading,
        last_error=last_error,
    )


def claim_state_at(stage_id: str) -> WorkflowState:
    """A claims state on a stage with every earlier stage completed."""
    index = CLAIM_STAGES.index(stage_id)
    return state("claims", stage_id, CLAIM_STAGES[:index])


def ungated_workflow(family: FamilyLike = "claims") -> Workflow:
    return Workflow(family, gates={})


def persister() -> StatePersister:
    return StatePersister(InMemoryStateStore())


def record_store() -> RecordStore:
    return create_autospec(RecordStore)


def notification_sender() -> NotificationSender:
    return create_autospec(NotificationSender)


def audit_logger() -> AuditLogger:
    return create_autospec(AuditLogger)
