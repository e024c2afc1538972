"""
Persistence lets a workflow survive a reload. It is a cache for resumption only: while
a session is open the in-memory state is authoritative, and a failure to save or load
must never stop the user from working. The ``StatePersister`` therefore catches and
logs every store failure, and any saved state it cannot trust, whether malformed,
written by an unknown schema version, or referring to stages that no longer exist,
is treated as absent so the workflow starts over.

How the serialized blob is stored is independent of how it is produced, so new storage
backends only need to define a new ``StateStore``.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Tuple,
    Type,
    Union,
)

import attr
import cattr  # type: ignore

from brokerflow.errors import PersistenceError, UnknownStageError
from brokerflow.registry import stage_by_id
from brokerflow.stages import Family
from brokerflow.state import WorkflowState

_logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
RESTORE_WARNING = "Could not restore previous workflow state"


def _structure_datetime(obj: str, cls: Type[datetime]) -> datetime:
    return cls.fromisoformat(obj.replace("Z", "+00:00"))


def _unstructure_datetime(obj: datetime) -> str:
    # If no timezone is present, assume UTC
    if not obj.tzinfo:
        obj = obj.replace(tzinfo=timezone.utc)
    return obj.isoformat(timespec="milliseconds")


@attr.s(auto_attribs=True, frozen=True)
class SavedWorkflow:
    """The serialized form of a ``WorkflowState``.

    :ivar int version: The schema version the blob was written with.
    :ivar Family family: The family of the saved workflow.
    :ivar str current_stage_id: The stage the user was on.
    :ivar List[str] completed_stage_ids: The completed stages, sorted.
    :ivar Mapping[str,Any] stage_data: The data collected by each stage.
    :ivar datetime saved_at: When the state was saved, in UTC.
    """

    version: int
    family: Family
    current_stage_id: str
    completed_stage_ids: List[str]
    stage_data: Mapping[str, Any]
    saved_at: datetime

    @classmethod
    def from_state(cls, state: WorkflowState) -> "SavedWorkflow":
        return cls(
            version=SCHEMA_VERSION,
            family=state.family,
            current_stage_id=state.current_stage_id,
            completed_stage_ids=sorted(state.completed_stage_ids),
            stage_data=dict(state.stage_data),
            saved_at=datetime.now(timezone.utc),
        )

    def to_state(self) -> WorkflowState:
        """Rebuild the workflow state, dropping any transient loading or error.

        :raises UnknownStageError: If a saved stage id is not registered anymore.
        """
        state = WorkflowState(
            family=self.family,
            current_stage_id=self.current_stage_id,
            completed_stage_ids=self.completed_stage_ids,
            stage_data=self.stage_data,
        )
        for stage_id in state.completed_stage_ids:
            if stage_by_id(state.family, stage_id) is None:
                raise UnknownStageError(stage_id, state.family.value)
        return state

    @classmethod
    def from_json(cls, blob: str) -> "SavedWorkflow":
        return cattr.structure(json.loads(blob), cls)  # type: ignore

    def to_json(self) -> str:
        return json.dumps(cattr.unstructure(self), sort_keys=True)


def _structure_saved(
    obj: Mapping[str, Any], cls: Type[SavedWorkflow]
) -> SavedWorkflow:
    if not isinstance(obj, Mapping):
        raise TypeError(f"Expected an object, got {type(obj).__name__}")
    version = obj["version"]
    if version != SCHEMA_VERSION:
        raise ValueError(f"Unsupported workflow state version {version}")
    completed = obj["completedStageIds"]
    stage_data = obj["stageData"]
    if not isinstance(completed, list) or not all(
        isinstance(stage_id, str) for stage_id in completed
    ):
        raise TypeError("completedStageIds must be a list of stage ids")
    if not isinstance(stage_data, dict):
        raise TypeError("stageData must be an object")
    if not isinstance(obj["currentStageId"], str):
        raise TypeError("currentStageId must be a stage id")
    return cls(
        version=version,
        family=Family(obj["family"]),
        current_stage_id=obj["currentStageId"],
        completed_stage_ids=completed,
        stage_data=stage_data,
        saved_at=_structure_datetime(obj["savedAt"], datetime),
    )


def _unstructure_saved(obj: SavedWorkflow) -> Dict[str, Any]:
    return {
        "version": obj.version,
        "family": obj.family.value,
        "currentStageId": obj.current_stage_id,
        "completedStageIds": list(obj.completed_stage_ids),
        "stageData": obj.stage_data,
        "savedAt": _unstructure_datetime(obj.saved_at),
    }


cattr.register_structure_hook(SavedWorkflow, _structure_saved)
cattr.register_unstructure_hook(SavedWorkflow, _unstructure_saved)


class StateStore(ABC):
    """A durable key-value store for serialized workflow states.

    Implementations may raise any exception on failure; the ``StatePersister`` catches
    them. Raising ``PersistenceError`` is preferred.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Return the blob stored under a key, or ``None`` if there is none."""
        pass

    @abstractmethod
    def write(self, key: str, blob: str) -> None:
        """Store a blob under a key, overwriting anything stored before."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the blob stored under a key, if any."""
        pass

    def __str__(self) -> str:
        return self.__class__.__name__


class InMemoryStateStore(StateStore):
    """Store blobs in local memory.

    Useful for tests or when no state directory is configured. Data does not survive
    the process.
    """

    def __init__(self) -> None:
        self._blobs: MutableMapping[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def write(self, key: str, blob: str) -> None:
        self._blobs[key] = blob

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)


_UNSAFE_CHARACTERS = re.compile(r"[^A-Za-z0-9_.-]")


class FileStateStore(StateStore):
    """Store each blob as a JSON file in a directory.

    :param directory: The directory to keep the files in. Created on first write.
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        """Return the file a key is stored in.

        >>> FileStateStore("/tmp/states").path_for("claims:CLM/001").name
        'claims_CLM_001.json'
        """
        return self.directory / f"{_UNSAFE_CHARACTERS.sub('_', key)}.json"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Unable to read {path}: {e}") from e

    def write(self, key: str, blob: str) -> None:
        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            temporary = path.with_suffix(".tmp")
            temporary.write_text(blob, encoding="utf-8")
            temporary.replace(path)
        except OSError as e:
            raise PersistenceError(f"Unable to write {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceError(f"Unable to delete {path}: {e}") from e

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.directory})"


class StatePersister:
    """Save and load workflow states through a store, best-effort.

    :param store: The store to keep serialized states in.
    """

    def __init__(self, store: StateStore) -> None:
        self.store = store
        self._logger = logging.getLogger(f"{self.__module__}.{self}")

    def save(self, state: WorkflowState, key: str) -> bool:
        """Save a state under a key, replacing any earlier save.

        :return: Whether the state was saved. Failures are logged, never raised.
        """
        try:
            blob = SavedWorkflow.from_state(state).to_json()
            self.store.write(key, blob)
        except Exception:
            self._logger.warning(f"Failed to save {state} under '{key}'", exc_info=True)
            return False
        self._logger.debug(f"Saved {state} under '{key}'")
        return True

    def restore(self, key: str) -> Tuple[Optional[WorkflowState], Optional[str]]:
        """Load the state saved under a key, explaining any failure.

        :return: A tuple of ``(state, warning)``. The state is ``None`` if nothing
            can be restored. The warning is ``None`` unless a saved state existed but
            could not be read or trusted, in which case it is a user-facing message.
        """
        try:
            blob = self.store.read(key)
        except Exception:
            self._logger.warning(f"Failed to read '{key}'", exc_info=True)
            return None, RESTORE_WARNING
        if blob is None:
            return None, None
        try:
            state = SavedWorkflow.from_json(blob).to_state()
        except UnknownStageError as e:
            self._logger.warning(f"Discarding state under '{key}': {e}")
            return None, RESTORE_WARNING
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            self._logger.warning(f"Discarding malformed state under '{key}': {e!r}")
            return None, RESTORE_WARNING
        return state, None

    def load(self, key: str) -> Optional[WorkflowState]:
        """Load the state saved under a key, or ``None`` if it cannot be restored."""
        state, _ = self.restore(key)
        return state

    def clear(self, key: str) -> None:
        """Forget the state saved under a key. Failures are logged, never raised."""
        try:
            self.store.delete(key)
        except Exception:
            self._logger.warning(f"Failed to clear '{key}'", exc_info=True)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.store})"
