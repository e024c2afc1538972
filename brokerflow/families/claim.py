"""
The claims workflow takes a reported loss from first notification to closure. The
record's own lifecycle status (registered, investigating, ...) moves more coarsely than
the nine stages, so several stages share a status.
"""

from typing import Dict

from brokerflow.families.definition import ExternalTransition, FamilyDefinition
from brokerflow.gates import (
    ChecklistThreshold,
    DecisionMade,
    Gate,
    NonBlankText,
    NonEmpty,
    RequiredFields,
)
from brokerflow.stages import Family, build_stages

STAGES = build_stages(
    [
        (
            "notification",
            "Claim Notification",
            "Initial claim notification and client contact",
            ["registered"],
        ),
        (
            "registration",
            "Claim Registration",
            "Complete claim registration and documentation",
            ["registered"],
        ),
        (
            "documents",
            "Document Upload",
            "Upload and validate required documents",
            ["registered", "investigating"],
        ),
        (
            "assignment",
            "Underwriter Assignment",
            "Assign claim to underwriter or adjuster",
            ["investigating"],
        ),
        (
            "review",
            "Claim Review",
            "Internal review and investigation",
            ["investigating", "assessed"],
        ),
        (
            "validation",
            "Claim Validation",
            "Validate claim legitimacy and completeness",
            ["assessed", "approved"],
        ),
        (
            "settlement",
            "Settlement Recommendation",
            "Recommend settlement amount and approach",
            ["approved", "settled"],
        ),
        (
            "feedback",
            "Client Feedback",
            "Collect client feedback and confirmation",
            ["settled"],
        ),
        (
            "closure",
            "Claim Closure",
            "Close claim and finalize documentation",
            ["closed"],
        ),
    ]
)

STATUS_TO_STAGE = {
    "registered": "registration",
    "investigating": "review",
    "assessed": "validation",
    "approved": "settlement",
    "settled": "feedback",
    "closed": "closure",
}

STATUS_HIERARCHY = [
    "registered",
    "investigating",
    "assessed",
    "approved",
    "settled",
    "closed",
]


def _rejection(from_status: str, description: str) -> ExternalTransition:
    return ExternalTransition(
        from_status, "rejected", "Reject Claim", description, requires_notes=True
    )


TRANSITIONS = [
    ExternalTransition(
        "registered",
        "investigating",
        "Start Investigation",
        "Begin claim investigation process",
    ),
    _rejection("registered", "Reject claim due to policy violations"),
    ExternalTransition(
        "investigating",
        "assessed",
        "Complete Assessment",
        "Mark investigation complete and ready for approval",
    ),
    _rejection("investigating", "Reject claim based on investigation findings"),
    ExternalTransition(
        "assessed", "approved", "Approve Claim", "Approve claim for settlement"
    ),
    _rejection("assessed", "Reject claim after assessment"),
    ExternalTransition(
        "approved", "settled", "Mark as Settled", "Confirm claim settlement payment"
    ),
    ExternalTransition(
        "settled", "closed", "Close Claim", "Close claim after settlement completion"
    ),
]


def default_gates(checklist_percent: int) -> Dict[str, Gate]:
    return {
        "documents": NonEmpty("documents"),
        "assignment": RequiredFields("adjuster_id"),
        "review": ChecklistThreshold("checklist", checklist_percent),
        "validation": DecisionMade("decision"),
        "settlement": RequiredFields("settlement_amount"),
        "closure": NonBlankText("closure_notes"),
    }


DEFINITION = FamilyDefinition(
    family=Family.CLAIMS,
    stages=STAGES,
    status_mapping=STATUS_TO_STAGE,
    status_hierarchy=STATUS_HIERARCHY,
    transitions=TRANSITIONS,
    supports_edit_mode=True,
    gate_factory=default_gates,
)
