"""
An action is a side effect that should happen once a stage completes, such as emailing
the client the RFQ or recording the adjuster on a claim. Actions run in the host
session after the engine has accepted the completion, and they talk to collaborators
rather than to the engine.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional, Union

from brokerflow.collaborators import NotificationSender, RecordStore
from brokerflow.state import WorkflowState

_logger = logging.getLogger(__name__)

_Template = Union[str, Callable[[WorkflowState], str]]


def _render(template: _Template, state: WorkflowState) -> str:
    return template(state) if callable(template) else template


class Action(ABC):
    """Abstract base class for all actions."""

    @abstractmethod
    def __call__(self, record_id: str, stage_id: str, state: WorkflowState) -> None:
        """Apply this action after a stage of a record's workflow completed.

        :param record_id: The id of the record whose stage completed.
        :param stage_id: The stage that completed.
        :param state: The state right after the completion.
        """

    def __str__(self) -> str:
        return self.__class__.__name__


class SendNotification(Action):
    """Send a notification about a completed stage.

    :param sender: The notification sender to use.
    :param recipient: The address to notify.
    :param subject: The subject, or a function building it from the state.
    :param body: The body, or a function building it from the state.
    """

    def __init__(
        self,
        sender: NotificationSender,
        recipient: str,
        subject: _Template,
        body: _Template = "",
    ) -> None:
        self.sender = sender
        self.recipient = recipient
        self.subject = subject
        self.body = body

    def __call__(self, record_id: str, stage_id: str, state: WorkflowState) -> None:
        self.sender.send(
            self.recipient, _render(self.subject, state), _render(self.body, state)
        )

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.recipient})"


class UpdateRecord(Action):
    """Update fields of the record whose stage completed.

    If ``fields`` is a function, it is given the completed stage's data and returns the
    fields to update, or ``None`` to skip the update.

    :param store: The record store to update.
    :param fields: The fields to set, or a function building them from stage data.
    """

    def __init__(
        self,
        store: RecordStore,
        fields: Union[
            Mapping[str, Any], Callable[[Optional[Any]], Optional[Mapping[str, Any]]]
        ],
    ) -> None:
        self.store = store
        self.fields = fields

    def __call__(self, record_id: str, stage_id: str, state: WorkflowState) -> None:
        if callable(self.fields):
            fields = self.fields(state.stage_data.get(stage_id))
        else:
            fields = self.fields
        if not fields:
            _logger.debug(f"No fields to update on {record_id} after {stage_id}")
            return
        self.store.update(record_id, fields)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.store.__class__.__name__})"
