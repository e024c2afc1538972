"""
Families bundle the stage tables, resumption mappings, lifecycle transitions and
default gates of one kind of business record:

- ``claim`` for the nine-stage claims process.
- ``quote`` for the nine-stage quote-to-contract process.
"""

from brokerflow.families.definition import ExternalTransition, FamilyDefinition

__all__ = ["ExternalTransition", "FamilyDefinition"]
