"""
The quotes workflow takes a client from onboarding to a signed contract. Quote records
persist the stage they reached in their ``workflow_stage`` field, which uses the stage
ids directly plus two extra markers: ``client_approved`` between selection and payment,
and ``completed`` once contracts are generated.
"""

from typing import Dict

from brokerflow.families.definition import ExternalTransition, FamilyDefinition
from brokerflow.gates import Gate, NonEmpty, RequiredFields
from brokerflow.stages import Family, build_stages

STAGES = build_stages(
    [
        (
            "client-onboarding",
            "Client Onboarding",
            "Register new client or select existing",
            [],
        ),
        (
            "quote-drafting",
            "Quote Drafting",
            "Create quote with financial calculations",
            ["quote-drafting"],
        ),
        (
            "clause-recommendation",
            "Clause & Add-ons",
            "Select policy clauses and recommendations",
            ["quote-drafting"],
        ),
        (
            "rfq-generation",
            "RFQ Generation",
            "Generate and preview RFQ document",
            ["rfq-generation"],
        ),
        (
            "insurer-matching",
            "Insurer Matching",
            "Match and dispatch to insurers",
            ["insurer-matching"],
        ),
        (
            "quote-evaluation",
            "Quote Evaluation",
            "Collect and evaluate insurer responses",
            ["quote-evaluation"],
        ),
        (
            "client-selection",
            "Client Selection",
            "Client reviews and selects preferred option",
            ["client-selection"],
        ),
        (
            "payment-processing",
            "Payment",
            "Process premium payment",
            ["client_approved", "payment-processing"],
        ),
        (
            "contract-generation",
            "Contract Generation",
            "Generate interim and final contracts",
            ["contract-generation"],
        ),
    ]
)

STATUS_TO_STAGE = {
    **{stage.id: stage.id for stage in STAGES},
    "client_approved": "payment-processing",
    "completed": "contract-generation",
}

STATUS_HIERARCHY = [
    "quote-drafting",
    "rfq-generation",
    "insurer-matching",
    "quote-evaluation",
    "client-selection",
    "client_approved",
    "payment-processing",
    "contract-generation",
    "completed",
]

_STAGE_NAMES = {stage.id: stage.name for stage in STAGES}
_STAGE_NAMES.update({"client_approved": "Client Approved", "completed": "Completed"})

TRANSITIONS = [
    ExternalTransition(
        current,
        following,
        f"Move to {_STAGE_NAMES[following]}",
        f"Progress the quote from {_STAGE_NAMES[current]}",
    )
    for current, following in zip(STATUS_HIERARCHY, STATUS_HIERARCHY[1:])
]


def default_gates(checklist_percent: int) -> Dict[str, Gate]:
    return {
        "client-onboarding": RequiredFields("client_id"),
        "quote-drafting": RequiredFields("premium"),
        "rfq-generation": RequiredFields("rfq_reference"),
        "insurer-matching": NonEmpty("insurers"),
        "quote-evaluation": NonEmpty("quotes"),
        "client-selection": RequiredFields("selected_quote_id"),
        "payment-processing": RequiredFields("payment_reference"),
    }


DEFINITION = FamilyDefinition(
    family=Family.QUOTES,
    stages=STAGES,
    status_mapping=STATUS_TO_STAGE,
    status_hierarchy=STATUS_HIERARCHY,
    transitions=TRANSITIONS,
    supports_edit_mode=True,
    gate_factory=default_gates,
)
