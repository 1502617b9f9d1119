"""Error taxonomy shared by the pointer, patcher and validator components."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from .primitives import UNDEFINED


class PatchErrorKind(str, Enum):
    SEQUENCE_NOT_AN_ARRAY = "SEQUENCE_NOT_AN_ARRAY"
    OPERATION_NOT_AN_OBJECT = "OPERATION_NOT_AN_OBJECT"
    OPERATION_OP_INVALID = "OPERATION_OP_INVALID"
    OPERATION_X_ARGS_NOT_ARRAY = "OPERATION_X_ARGS_NOT_ARRAY"
    OPERATION_X_OP_INVALID = "OPERATION_X_OP_INVALID"
    OPERATION_X_CONFIG_INVALID = "OPERATION_X_CONFIG_INVALID"
    OPERATION_X_ID_INVALID = "OPERATION_X_ID_INVALID"
    OPERATION_X_AMBIGUOUS_REMOVAL = "OPERATION_X_AMBIGUOUS_REMOVAL"
    OPERATION_X_OPERATOR_EXCEPTION = "OPERATION_X_OPERATOR_EXCEPTION"
    OPERATION_PATH_INVALID = "OPERATION_PATH_INVALID"
    OPERATION_FROM_REQUIRED = "OPERATION_FROM_REQUIRED"
    OPERATION_VALUE_REQUIRED = "OPERATION_VALUE_REQUIRED"
    OPERATION_VALUE_CANNOT_CONTAIN_UNDEFINED = "OPERATION_VALUE_CANNOT_CONTAIN_UNDEFINED"
    OPERATION_PATH_CANNOT_ADD = "OPERATION_PATH_CANNOT_ADD"
    OPERATION_PATH_UNRESOLVABLE = "OPERATION_PATH_UNRESOLVABLE"
    OPERATION_FROM_UNRESOLVABLE = "OPERATION_FROM_UNRESOLVABLE"
    OPERATION_PATH_ILLEGAL_ARRAY_INDEX = "OPERATION_PATH_ILLEGAL_ARRAY_INDEX"
    OPERATION_VALUE_OUT_OF_BOUNDS = "OPERATION_VALUE_OUT_OF_BOUNDS"
    TEST_OPERATION_FAILED = "TEST_OPERATION_FAILED"


PROTO_ERROR_MSG = (
    "modifying `__proto__` or `constructor/prototype` prop is banned for security reasons, "
    "if this was on purpose, please pass ban_prototype_modifications=False"
)


def _format_context(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2, default=repr)
    return value


class PatchError(Exception):
    """Raised when a patch sequence or operation cannot be validated or applied."""

    def __init__(
        self,
        message: str,
        kind: PatchErrorKind,
        index: Optional[int] = None,
        operation: Any = None,
        document: Any = UNDEFINED,
    ) -> None:
        self.kind = PatchErrorKind(kind)
        self.index = index
        self.operation = operation
        self.document = document
        self.reason = message
        parts = [message, f"name: {self.kind.value}"]
        if index is not None:
            parts.append(f"index: {index}")
        if operation is not None:
            parts.append(f"operation: {_format_context(operation)}")
        if document is not UNDEFINED:
            parts.append(f"tree: {_format_context(document)}")
        super().__init__("\n".join(parts))

    @property
    def name(self) -> str:
        return self.kind.value


__all__ = ["PROTO_ERROR_MSG", "PatchError", "PatchErrorKind"]
