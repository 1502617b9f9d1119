"""JSON pointer resolution and container access helpers."""

from __future__ import annotations

from typing import Any, List, Union

from src.common.errors import PROTO_ERROR_MSG, PatchError, PatchErrorKind
from src.common.primitives import (
    UNDEFINED,
    escape_path_component,
    is_container,
    is_integer,
    is_prototype_key,
    unescape_path_component,
)

Key = Union[str, int]


def split_pointer(pointer: str) -> List[str]:
    """Split ``pointer`` into unescaped components; the root pointer has none."""

    if pointer == "":
        return []
    return [unescape_path_component(part) if "~" in part else part for part in pointer.split("/")[1:]]


def get_child(container: Any, key: Key) -> Any:
    """Return ``container[key]`` or ``UNDEFINED`` when there is no such child."""

    if isinstance(container, dict):
        return container.get(key if isinstance(key, str) else str(key), UNDEFINED)
    if isinstance(container, list):
        if isinstance(key, str):
            if not is_integer(key):
                return UNDEFINED
            key = int(key)
        if 0 <= key < len(container):
            return container[key]
    return UNDEFINED


def set_child(container: Any, key: Key, value: Any) -> None:
    """Assign ``container[key] = value``; lists grow with ``None`` holes as needed."""

    if isinstance(container, list):
        index = int(key)
        if index >= len(container):
            container.extend([None] * (index - len(container) + 1))
        container[index] = value
        return
    container[key if isinstance(key, str) else str(key)] = value


def delete_child(container: Any, key: Key) -> Any:
    if isinstance(container, list):
        index = int(key)
        if 0 <= index < len(container):
            return container.pop(index)
        return UNDEFINED
    return container.pop(key if isinstance(key, str) else str(key), UNDEFINED)


def resolve_pointer(
    document: Any,
    pointer: str,
    *,
    ban_prototype_modifications: bool = True,
    extended: bool = False,
) -> Any:
    """Walk ``document`` along ``pointer`` and return the value found there.

    Returns ``UNDEFINED`` when only the final component is missing. Raises
    ``PatchError`` (``OPERATION_PATH_UNRESOLVABLE``) when an intermediate node is
    missing, null or a scalar, and ``TypeError`` for prototype keys unless
    ``ban_prototype_modifications`` is disabled. ``extended`` enables the ``--``
    (last element) sentinel.
    """

    if pointer == "":
        return document
    raw = pointer.split("/")
    node = document
    for position, key in enumerate(split_pointer(pointer), start=1):
        if ban_prototype_modifications and is_prototype_key(key, raw[position - 1]):
            raise TypeError(PROTO_ERROR_MSG)
        if not is_container(node):
            raise PatchError(
                "Cannot perform operation at the desired path",
                PatchErrorKind.OPERATION_PATH_UNRESOLVABLE,
                operation={"op": "_get", "path": pointer},
            )
        if isinstance(node, list):
            if key == "-":
                key = len(node)
            elif extended and key == "--":
                key = len(node) - 1
        node = get_child(node, key)
    return node


def existing_path_fragment(document: Any, pointer: str) -> str:
    """Return the longest prefix of ``pointer`` that resolves inside ``document``."""

    raw = pointer.split("/")
    node = document
    for position, key in enumerate(split_pointer(pointer), start=1):
        node = get_child(node, key)
        if node is UNDEFINED:
            return "/".join(raw[:position])
    return pointer


def _find_path(root: Any, node: Any) -> str:
    if isinstance(root, dict):
        items = list(root.items())
    elif isinstance(root, list):
        items = [(str(index), item) for index, item in enumerate(root)]
    else:
        return ""
    for key, child in items:
        if child is node:
            return escape_path_component(key) + "/"
        if is_container(child):
            found = _find_path(child, node)
            if found:
                return escape_path_component(key) + "/" + found
    return ""


def get_path(root: Any, node: Any) -> str:
    """Return the pointer at which ``node`` (matched by identity) sits in ``root``."""

    if root is node:
        return "/"
    path = _find_path(root, node)
    if not path:
        raise ValueError("Object not found in root")
    return "/" + path[:-1]


__all__ = [
    "Key",
    "delete_child",
    "existing_path_fragment",
    "get_child",
    "get_path",
    "resolve_pointer",
    "set_child",
    "split_pointer",
]
