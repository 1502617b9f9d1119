from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from .primitives import UNDEFINED


class OpKind(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"
    MOVE = "move"
    COPY = "copy"
    TEST = "test"
    GET = "_get"
    X = "x"


STANDARD_KINDS = frozenset(kind for kind in OpKind if kind is not OpKind.X)
VALUE_KINDS = frozenset({OpKind.ADD, OpKind.REPLACE, OpKind.TEST})
FROM_KINDS = frozenset({OpKind.MOVE, OpKind.COPY})
EXISTING_PATH_KINDS = frozenset({OpKind.REPLACE, OpKind.REMOVE, OpKind.GET})


def op_kind(operation: Any) -> Optional[OpKind]:
    """Map the wire ``op`` string of ``operation`` onto ``OpKind`` (None if unknown)."""

    if not isinstance(operation, Mapping):
        return None
    try:
        return OpKind(operation.get("op"))
    except (TypeError, ValueError):
        return None


def operand(operation: Mapping[str, Any], field: str = "value") -> Any:
    value = operation.get(field, UNDEFINED)
    return None if value is UNDEFINED else value


@dataclass
class OperationResult:
    new_document: Any
    removed: Any = UNDEFINED
    test: Optional[bool] = None
    index: Optional[int] = None
    value: Any = UNDEFINED

    @property
    def has_removed(self) -> bool:
        return self.removed is not UNDEFINED


class PatchResults(list):
    """Per-operation results in order; ``new_document`` is the patched document."""

    def __init__(self, results: Any = (), new_document: Any = None) -> None:
        super().__init__(results)
        self.new_document = new_document


__all__ = [
    "EXISTING_PATH_KINDS",
    "FROM_KINDS",
    "OpKind",
    "OperationResult",
    "PatchResults",
    "STANDARD_KINDS",
    "VALUE_KINDS",
    "op_kind",
    "operand",
]
