import json
from typing import Any, Mapping, Optional

from typing_extensions import Protocol


class HasId(Protocol):
    @property
    def id(self) -> str:
        ...


def merge_payload(existing: Optional[Any], payload: Optional[Any]) -> Any:
    """Shallow-merge a stage payload into previously collected data.

    Keys from the new payload win. If either side is not a mapping, the new payload
    replaces the old one outright, and a missing payload leaves the data as-is.

    >>> merge_payload({"a": 1, "b": 2}, {"b": 3})
    {'a': 1, 'b': 3}
    >>> merge_payload({"a": 1}, ["x"])
    ['x']
    >>> merge_payload(None, {"a": 1})
    {'a': 1}
    >>> merge_payload({"a": 1}, None)
    {'a': 1}
    """
    if payload is None:
        return existing
    if isinstance(existing, Mapping) and isinstance(payload, Mapping):
        return {**existing, **payload}
    if isinstance(payload, Mapping):
        return dict(payload)
    return payload


def json_shaped(value: Any) -> Any:
    """Convert stage data to the shape it has once saved and loaded again.

    Tuples become lists and non-string keys become the strings JSON writes for them.
    Values JSON cannot represent are left alone.

    >>> json_shaped({"amounts": (1, 2), 3: {"ok": True}})
    {'amounts': [1, 2], '3': {'ok': True}}
    >>> json_shaped({None: "x", False: "y"})
    {'null': 'x', 'false': 'y'}
    """
    if isinstance(value, Mapping):
        return {_json_key(key): json_shaped(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_shaped(item) for item in value]
    return value


def _json_key(key: Any) -> Any:
    if isinstance(key, str):
        return key
    if key is None or isinstance(key, (bool, int, float)):
        return json.dumps(key)
    return key
