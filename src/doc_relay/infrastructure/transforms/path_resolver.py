"""Dotted field path resolution against nested documents."""

from collections.abc import Mapping
from typing import Any, Sequence, Tuple, Union

from doc_relay.infrastructure.schema.core import PATH_SEPARATOR

FieldPath = Union[str, Sequence[str]]


def split_path(path: FieldPath) -> Tuple[str, ...]:
    """Return the segments of a dotted path, or of an already split one."""
    if isinstance(path, str):
        return tuple(path.split(PATH_SEPARATOR))
    return tuple(path)


def resolve(document: Any, path: FieldPath) -> Any:
    """
    Resolve a nested field, returning None when the path cannot be followed.

    Each segment indexes into the current value only if it is a mapping.
    Arrays and scalars stop the walk, so a dotted path never reaches into
    array elements.

    Examples:
        >>> resolve({"a": {"b": 5}}, "a.b")
        5
        >>> resolve({"a": 5}, "a.b") is None
        True
        >>> resolve({}, ["a", "b"]) is None
        True
    """
    current = document
    for segment in split_path(path):
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment)
    return current
