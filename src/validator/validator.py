from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from src.common.errors import PatchError, PatchErrorKind
from src.common.operations import EXISTING_PATH_KINDS, FROM_KINDS, VALUE_KINDS, OpKind, op_kind
from src.common.primitives import UNDEFINED, deep_clone, has_undefined, is_valid_extended_op_id
from src.extensions.registry import DEFAULT_REGISTRY, ExtendedOperationRegistry
from src.pointer.resolver import existing_path_fragment as _existing_path_fragment

ExternalValidator = Callable[[Any, Optional[int], Any, Optional[str]], None]


def _check_path_shape(operation: Mapping[str, Any], index: Optional[int], document: Any) -> None:
    path = operation.get("path")
    if not isinstance(path, str):
        raise PatchError("Operation `path` property is not a string", PatchErrorKind.OPERATION_PATH_INVALID, index, operation, document)
    if path and not path.startswith("/"):
        raise PatchError('Operation `path` property must start with "/"', PatchErrorKind.OPERATION_PATH_INVALID, index, operation, document)


def _validate_extended(
    operation: Mapping[str, Any],
    index: Optional[int],
    document: Any,
    existing_fragment: Optional[str],
    registry: ExtendedOperationRegistry,
) -> None:
    xid = operation.get("xid")
    if not is_valid_extended_op_id(xid):
        raise PatchError("Operation `xid` property is not present or invalid string", PatchErrorKind.OPERATION_X_ID_INVALID, index, operation, document)
    config = registry.get(xid)
    if config is None:
        raise PatchError(
            "Extended operation `xid` property is not a registered extended operation",
            PatchErrorKind.OPERATION_X_OP_INVALID,
            index,
            operation,
            document,
        )
    _check_path_shape(operation, index, document)
    if operation["path"] == "/":
        raise PatchError("Operation `path` slash-only is ambiguous", PatchErrorKind.OPERATION_PATH_UNRESOLVABLE, index, operation, document)
    args = operation.get("args", UNDEFINED)
    if args is not UNDEFINED and not isinstance(args, list):
        raise PatchError("Operation `args` property is not an array", PatchErrorKind.OPERATION_X_ARGS_NOT_ARRAY, index, operation, document)
    config.validator(operation, index, document, existing_fragment)


def validate_operation(
    operation: Any,
    index: Optional[int] = 0,
    document: Any = None,
    existing_path_fragment: Optional[str] = None,
    *,
    registry: Optional[ExtendedOperationRegistry] = None,
) -> None:
    """Validate a single operation, raising ``PatchError`` on the first problem.

    Shape checks always run. When ``document`` is given the target path is also
    checked against it; ``existing_path_fragment`` is the longest prefix of the
    path that resolves and is computed from ``document`` when omitted.
    """

    if registry is None:
        registry = DEFAULT_REGISTRY
    if not isinstance(operation, Mapping):
        raise PatchError("Operation is not an object", PatchErrorKind.OPERATION_NOT_AN_OBJECT, index, operation, document)

    kind = op_kind(operation)
    if document is not None and existing_path_fragment is None and isinstance(operation.get("path"), str):
        existing_path_fragment = _existing_path_fragment(document, operation["path"])

    if kind is OpKind.X:
        _validate_extended(operation, index, document, existing_path_fragment, registry)
        return
    if kind is None:
        raise PatchError(
            "Operation `op` property is not one of operations defined in RFC-6902",
            PatchErrorKind.OPERATION_OP_INVALID,
            index,
            operation,
            document,
        )
    _check_path_shape(operation, index, document)
    if kind in FROM_KINDS and not isinstance(operation.get("from"), str):
        raise PatchError(
            "Operation `from` property is not present (applicable in `move` and `copy` operations)",
            PatchErrorKind.OPERATION_FROM_REQUIRED,
            index,
            operation,
            document,
        )
    if kind in VALUE_KINDS:
        if operation.get("value", UNDEFINED) is UNDEFINED:
            raise PatchError(
                "Operation `value` property is not present (applicable in `add`, `replace` and `test` operations)",
                PatchErrorKind.OPERATION_VALUE_REQUIRED,
                index,
                operation,
                document,
            )
        if has_undefined(operation["value"]):
            raise PatchError(
                "Operation `value` property cannot contain undefined values",
                PatchErrorKind.OPERATION_VALUE_CANNOT_CONTAIN_UNDEFINED,
                index,
                operation,
                document,
            )
    if document is None:
        return

    path = operation["path"]
    if kind is OpKind.ADD:
        path_length = len(path.split("/"))
        existing_length = len(existing_path_fragment.split("/"))
        if path_length not in (existing_length, existing_length + 1):
            raise PatchError("Cannot perform an `add` operation at the desired path", PatchErrorKind.OPERATION_PATH_CANNOT_ADD, index, operation, document)
    elif kind in EXISTING_PATH_KINDS:
        if path != existing_path_fragment:
            raise PatchError(
                "Cannot perform the operation at a path that does not exist",
                PatchErrorKind.OPERATION_PATH_UNRESOLVABLE,
                index,
                operation,
                document,
            )
    elif kind in FROM_KINDS:
        probe = {"op": OpKind.GET.value, "path": operation["from"]}
        error = validate_sequence([probe], document, registry=registry)
        if error is not None and error.kind is PatchErrorKind.OPERATION_PATH_UNRESOLVABLE:
            raise PatchError(
                "Cannot perform the operation from a path that does not exist",
                PatchErrorKind.OPERATION_FROM_UNRESOLVABLE,
                index,
                operation,
                document,
            )


def validate_sequence(
    sequence: Any,
    document: Any = None,
    external_validator: Optional[ExternalValidator] = None,
    *,
    registry: Optional[ExtendedOperationRegistry] = None,
) -> Optional[PatchError]:
    """Validate a whole patch and return the first ``PatchError`` instead of raising it.

    With a ``document`` the patch is dry-run against a clone, so every error the
    dispatcher would raise is reported. Errors other than ``PatchError``
    propagate.
    """

    from src.patcher.sequence import apply_patch

    try:
        if not isinstance(sequence, list):
            raise PatchError("Patch sequence must be an array", PatchErrorKind.SEQUENCE_NOT_AN_ARRAY)
        if document is not None:
            apply_patch(
                deep_clone(document),
                deep_clone(sequence),
                external_validator or True,
                registry=registry,
            )
        else:
            if external_validator is None:
                for index, operation in enumerate(sequence):
                    validate_operation(operation, index, document, registry=registry)
            else:
                for index, operation in enumerate(sequence):
                    external_validator(operation, index, document, None)
    except PatchError as exc:
        return exc
    return None


__all__ = ["ExternalValidator", "validate_operation", "validate_sequence"]
