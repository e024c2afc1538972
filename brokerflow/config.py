"""
Settings are plain values passed into the objects that need them. ``Settings.from_env``
reads them from the environment for deployments that configure the workflow engine
without code.
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import attr

from brokerflow.engine import Workflow
from brokerflow.persistence import (
    FileStateStore,
    InMemoryStateStore,
    StatePersister,
    StateStore,
)
from brokerflow.registry import definition_for
from brokerflow.session import DEFAULT_KEY_PREFIX, WorkflowSession, session_key
from brokerflow.stages import FamilyLike


@attr.s(auto_attribs=True, frozen=True)
class Settings:
    """Configuration of the workflow engine.

    :ivar Optional[Path] state_dir: The directory saved workflow states are kept in. If
        unset, states are only kept in memory.
    :ivar str key_prefix: The prefix of every key a workflow state is saved under.
    :ivar int checklist_percent: The share of the review checklist, in percent, that
        must be ticked before a claim review can complete.
    """

    state_dir: Optional[Path] = attr.ib(
        default=None, converter=attr.converters.optional(Path)
    )
    key_prefix: str = DEFAULT_KEY_PREFIX
    checklist_percent: int = attr.ib(default=70)

    @checklist_percent.validator
    def _check_percent(self, attribute: "attr.Attribute", value: int) -> None:
        if not 0 <= value <= 100:
            raise ValueError(f"checklist_percent must be within 0-100, got {value}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Read settings from ``BROKERFLOW_*`` environment variables.

        >>> Settings.from_env({"BROKERFLOW_CHECKLIST_PERCENT": "80"}).checklist_percent
        80
        """
        env = os.environ if environ is None else environ
        return cls(
            state_dir=env.get("BROKERFLOW_STATE_DIR") or None,
            key_prefix=env.get("BROKERFLOW_KEY_PREFIX", DEFAULT_KEY_PREFIX),
            checklist_percent=int(env.get("BROKERFLOW_CHECKLIST_PERCENT", "70")),
        )

    def store(self) -> StateStore:
        if self.state_dir is None:
            return InMemoryStateStore()
        return FileStateStore(self.state_dir)

    def persister(self) -> StatePersister:
        """Build a persister over the configured store."""
        return StatePersister(self.store())

    def workflow(self, family: FamilyLike) -> Workflow:
        """Build a workflow of a family with its default gates and these settings."""
        gates = definition_for(family).default_gates(self.checklist_percent)
        return Workflow(family, gates)

    def session_key(self, family: FamilyLike, record_id: str) -> str:
        """Return the key a record's workflow state is saved under.

        >>> Settings().session_key("claims", "CLM-001")
        'workflow:claims:CLM-001'
        """
        return session_key(family, record_id, self.key_prefix)

    def open_session(
        self,
        family: FamilyLike,
        record_id: str,
        external_status: Optional[str] = None,
        *,
        persister: Optional[StatePersister] = None,
        **options: Any,
    ) -> WorkflowSession:
        """Open the workflow session of a record with these settings.

        The session saves under ``session_key`` through ``persister``, which defaults
        to one over the configured store. Other options are passed on to
        ``WorkflowSession.open``.
        """
        return WorkflowSession.open(
            self.workflow(family),
            record_id,
            external_status,
            persister=persister or self.persister(),
            key=self.session_key(family, record_id),
            **options,
        )
