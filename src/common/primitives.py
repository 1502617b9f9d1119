"""Value-level helpers for JSON documents: equality, cloning and pointer components."""

from __future__ import annotations

import re
from typing import Any


class _Undefined:
    """Marker for an absent value; distinct from ``None`` which is JSON null."""

    _instance = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __copy__(self) -> "_Undefined":
        return self

    def __deepcopy__(self, memo: Any) -> "_Undefined":
        return self

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()

_ARRAY_INDEX_PATTERN = re.compile(r"^(?:0|[1-9][0-9]*)$")
_EXTENDED_OP_ID_PREFIX = "x-"


def is_integer(component: Any) -> bool:
    """Return True when ``component`` is an RFC 6901 array index literal."""

    return isinstance(component, str) and _ARRAY_INDEX_PATTERN.match(component) is not None


def escape_path_component(component: str) -> str:
    if "/" not in component and "~" not in component:
        return component
    return component.replace("~", "~0").replace("/", "~1")


def unescape_path_component(component: str) -> str:
    return component.replace("~1", "/").replace("~0", "~")


def is_prototype_key(key: Any, previous: Any) -> bool:
    return key == "__proto__" or (key == "prototype" and previous == "constructor")


def is_valid_extended_op_id(xid: Any) -> bool:
    return isinstance(xid, str) and len(xid) >= 3 and xid.startswith(_EXTENDED_OP_ID_PREFIX)


def is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def deep_clone(value: Any) -> Any:
    """Copy ``value`` with no shared mutable structure.

    Mirrors a serialise/parse round trip: undefined list items become ``None``
    and undefined map entries are dropped.
    """

    if value is UNDEFINED:
        return None
    if isinstance(value, dict):
        return {key: deep_clone(item) for key, item in value.items() if item is not UNDEFINED}
    if isinstance(value, (list, tuple)):
        return [deep_clone(item) for item in value]
    return value


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality; list order matters, map key order does not.

    Two values that both fail self-equality (NaN) are treated as equal.
    """

    if a is b:
        return True
    if isinstance(a, list) and isinstance(b, list):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        if len(a) != len(b):
            return False
        for key in a:
            if key not in b:
                return False
        return all(deep_equal(a[key], b[key]) for key in a)
    if is_container(a) or is_container(b):
        return False
    # true/false are not numbers in JSON
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    if a == b:
        return True
    return a != a and b != b


def has_undefined(value: Any) -> bool:
    if value is UNDEFINED:
        return True
    if isinstance(value, (list, tuple)):
        return any(has_undefined(item) for item in value)
    if isinstance(value, dict):
        return any(has_undefined(item) for item in value.values())
    return False


__all__ = [
    "UNDEFINED",
    "deep_clone",
    "deep_equal",
    "escape_path_component",
    "has_undefined",
    "is_container",
    "is_integer",
    "is_prototype_key",
    "is_valid_extended_op_id",
    "unescape_path_component",
]
