"""
Collaborators are the services around the workflow engine: the store holding quote and
claim records, the sender delivering notifications, and the audit log. The engine never
calls them. Stage actions and the host session do, through these narrow interfaces, so
that any backend can be plugged in.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

_logger = logging.getLogger(__name__)


class RecordStore(ABC):
    """Loads and updates business records, such as quotes or claims, by id."""

    @abstractmethod
    def get(self, record_id: str) -> Optional[Mapping[str, Any]]:
        """Return the record with the given id, or ``None`` if it does not exist."""
        pass

    @abstractmethod
    def update(self, record_id: str, fields: Mapping[str, Any]) -> Mapping[str, Any]:
        """Update fields of a record and return the updated record."""
        pass


class NotificationSender(ABC):
    """Delivers notifications, such as emails, to the parties of a record."""

    @abstractmethod
    def send(self, recipient: str, subject: str, body: str) -> None:
        pass


class AuditLogger(ABC):
    """Records the transitions of workflows for later review."""

    @abstractmethod
    def log_transition(
        self,
        record_id: str,
        from_stage: str,
        to_stage: Optional[str],
        payload: Optional[Any],
    ) -> None:
        """Record that a record's workflow moved between stages.

        :param record_id: The id of the record whose workflow moved.
        :param from_stage: The stage that was completed.
        :param to_stage: The stage the workflow moved to, or ``None`` if the workflow
            finished.
        :param payload: The payload the completed stage produced.
        """
        pass


class LoggingAuditLogger(AuditLogger):
    """An audit logger writing transitions to a standard logger.

    :param logger: The logger to write to.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or _logger

    def log_transition(
        self,
        record_id: str,
        from_stage: str,
        to_stage: Optional[str],
        payload: Optional[Any],
    ) -> None:
        target = to_stage or "completion"
        self._logger.info(f"Record {record_id} moved from {from_stage} to {target}")
