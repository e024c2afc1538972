"""
The registry is the static lookup from a family to its definition. It holds no state
and performs no I/O. Asking for a family that does not exist is a programming error and
fails immediately.
"""

from typing import List, Mapping, Optional

from brokerflow._itertools import find_by_id
from brokerflow.families import claim, quote
from brokerflow.families.definition import ExternalTransition, FamilyDefinition
from brokerflow.stages import Family, FamilyLike, StageDescriptor, as_family

_DEFINITIONS: Mapping[Family, FamilyDefinition] = {
    Family.QUOTES: quote.DEFINITION,
    Family.CLAIMS: claim.DEFINITION,
}


def definition_for(family: FamilyLike) -> FamilyDefinition:
    """Return the full definition of a family.

    :raises ValueError: If the family is unknown.
    """
    definition = _DEFINITIONS.get(as_family(family))
    if definition is None:
        raise ValueError(f"Unknown workflow family: {family}")
    return definition


def stages_for(family: FamilyLike) -> List[StageDescriptor]:
    """Return the ordered stages of a family.

    >>> [stage.id for stage in stages_for("claims")][:3]
    ['notification', 'registration', 'documents']
    """
    return list(definition_for(family).stages)


def stage_by_id(family: FamilyLike, stage_id: str) -> Optional[StageDescriptor]:
    """Return the stage with the given id, or ``None`` if the family has no such stage.
    """
    return find_by_id(definition_for(family).stages, stage_id)


def first_stage_id(family: FamilyLike) -> str:
    """Return the id of the stage every fresh workflow of a family starts on.

    >>> first_stage_id("quotes")
    'client-onboarding'
    """
    return definition_for(family).stages[0].id


def status_mapping_for(family: FamilyLike) -> Mapping[str, str]:
    """Return the mapping of external statuses to stage ids of a family."""
    return definition_for(family).status_mapping


def status_hierarchy_for(family: FamilyLike) -> List[str]:
    """Return the external statuses of a family in lifecycle order."""
    return list(definition_for(family).status_hierarchy)


def transitions_for(family: FamilyLike) -> List[ExternalTransition]:
    """Return the permitted external status changes of a family."""
    return list(definition_for(family).transitions)
