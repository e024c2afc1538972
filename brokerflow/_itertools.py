from typing import Callable, Iterable, Optional, TypeVar

from brokerflow._types import HasId

_T = TypeVar("_T")


def first_or_none(iterable: Iterable[_T]) -> Optional[_T]:
    """Returns the first value in the iterable or ``None``.

    >>> first_or_none([1, 2, 3])
    1
    >>> first_or_none([])
    """
    iterator = iter(iterable)
    return next(iterator, None)


def find(iterable: Iterable[_T], predicate: Callable[[_T], bool]) -> Optional[_T]:
    """Returns the first value in the iterable matching a predicate or ``None``.

    >>> find([1, 2, 3], lambda x: x > 1)
    2
    >>> find([1, 2, 3], lambda x: x > 3)
    """
    filtered = filter(predicate, iterable)
    return first_or_none(filtered)


_S = TypeVar("_S", bound=HasId)


def find_by_id(iterable: Iterable[_S], id: str) -> Optional[_S]:
    """Returns the first item with a matching ``id`` attribute.

    >>> from collections import namedtuple
    >>> Stage = namedtuple("Stage", ["id"])
    >>> items = [Stage("first"), Stage("second")]
    >>> find_by_id(items, "second")
    Stage(id='second')
    >>> find_by_id(items, "third")
    """
    return find(iterable, lambda item: item.id == id)
