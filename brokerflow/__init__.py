"""
A workflow is the linear, multi-stage process a business record goes through, such as
a quote moving from client onboarding to contract generation, or a claim moving from
first notification to closure. Each step is a stage defined by a ``StageDescriptor``,
and the progress of one record is a ``WorkflowState``. Two families are implemented:

- ``quotes`` with nine stages from onboarding to contract generation.
- ``claims`` with nine stages from notification to closure.

The engine functions in ``brokerflow.engine`` are pure. They never touch storage, so a
host drives a workflow through a ``WorkflowSession``, which saves the state after every
change, records completed stages in the audit log and applies the actions of each stage.

Stages have three components to them:

- A descriptor, which names the stage and lists the external statuses of the record
  during which it is worked on.
- A gate, which must accept the data collected for the stage before it can complete.
- Actions, which are applied by the session once the stage completes.

When a user reopens a record, ``resume_workflow`` restores the state saved by an
earlier session, or places the user on the stage matching the record's status.
"""

from brokerflow.__version__ import __version__
from brokerflow.config import Settings
from brokerflow.engine import Workflow, complete_stage, create_workflow
from brokerflow.errors import (
    PersistenceError,
    StageNotReachedError,
    StageNotReadyError,
    UnknownStageError,
    WorkflowBusyError,
    WorkflowComplete,
    WorkflowError,
)
from brokerflow.persistence import FileStateStore, InMemoryStateStore, StatePersister
from brokerflow.resumption import resolve_initial_stage, resume_workflow
from brokerflow.session import EditMode, WorkflowSession, session_key
from brokerflow.stages import Family, StageDescriptor, StageStatus
from brokerflow.state import WorkflowState

__all__ = [
    "EditMode",
    "Family",
    "FileStateStore",
    "InMemoryStateStore",
    "PersistenceError",
    "Settings",
    "StageDescriptor",
    "StageNotReachedError",
    "StageNotReadyError",
    "StageStatus",
    "StatePersister",
    "UnknownStageError",
    "Workflow",
    "WorkflowBusyError",
    "WorkflowComplete",
    "WorkflowError",
    "WorkflowSession",
    "WorkflowState",
    "__version__",
    "complete_stage",
    "create_workflow",
    "resolve_initial_stage",
    "resume_workflow",
    "session_key",
]
