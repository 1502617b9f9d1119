"""Apply one JSON patch operation (RFC 6902 plus registered ``x`` operations)."""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from src.common.errors import PROTO_ERROR_MSG, PatchError, PatchErrorKind
from src.common.operations import FROM_KINDS, OpKind, OperationResult, op_kind, operand
from src.common.primitives import (
    UNDEFINED,
    deep_clone,
    deep_equal,
    is_container,
    is_integer,
    is_prototype_key,
    unescape_path_component,
)
from src.extensions.reconcile import ModType, graft_tree
from src.extensions.registry import DEFAULT_REGISTRY, ExtendedOperationRegistry
from src.pointer.resolver import Key, delete_child, get_child, resolve_pointer, set_child
from src.validator.validator import validate_operation

logger = logging.getLogger(__name__)

ValidateOption = Union[bool, Callable[..., None]]
OpHandler = Callable[[Mapping[str, Any], Any, Key, Any, bool], OperationResult]

_ILLEGAL_INDEX_MSG = (
    "Expected an unsigned base-10 integer value, making the new referenced value "
    "the array element with the zero-based index"
)
_OUT_OF_BOUNDS_MSG = "The specified index MUST NOT be greater than the number of elements in the array"


def _object_add(operation, obj, key, document, ban):
    obj[key] = operand(operation)
    return OperationResult(document)


def _object_remove(operation, obj, key, document, ban):
    return OperationResult(document, removed=delete_child(obj, key))


def _replace(operation, container, key, document, ban):
    removed = get_child(container, key)
    set_child(container, key, operand(operation))
    return OperationResult(document, removed=removed)


def _move(operation, container, key, document, ban):
    # report whatever the move overwrites at the destination
    removed = resolve_pointer(document, operation["path"], ban_prototype_modifications=ban)
    if is_container(removed):
        removed = deep_clone(removed)
    original = apply_operation(
        document,
        {"op": "remove", "path": operation.get("from")},
        ban_prototype_modifications=ban,
    ).removed
    if original is UNDEFINED:
        # nothing to carry over; a list slot still needs a value
        if not isinstance(container, list):
            return OperationResult(document, removed=removed)
        original = None
    apply_operation(
        document,
        {"op": "add", "path": operation["path"], "value": original},
        ban_prototype_modifications=ban,
    )
    return OperationResult(document, removed=removed)


def _copy(operation, container, key, document, ban):
    source = resolve_pointer(document, operation.get("from"), ban_prototype_modifications=ban)
    apply_operation(
        document,
        {"op": "add", "path": operation["path"], "value": deep_clone(source)},
        ban_prototype_modifications=ban,
    )
    return OperationResult(document)


def _test(operation, container, key, document, ban):
    return OperationResult(document, test=deep_equal(get_child(container, key), operation.get("value", UNDEFINED)))


def _get(operation, container, key, document, ban):
    return OperationResult(document, value=get_child(container, key))


def _array_add(operation, arr, index, document, ban):
    arr.insert(index, operand(operation))
    return OperationResult(document, index=index)


def _array_remove(operation, arr, index, document, ban):
    return OperationResult(document, removed=delete_child(arr, index))


_OBJECT_OPS: Dict[OpKind, OpHandler] = {
    OpKind.ADD: _object_add,
    OpKind.REMOVE: _object_remove,
    OpKind.REPLACE: _replace,
    OpKind.MOVE: _move,
    OpKind.COPY: _copy,
    OpKind.TEST: _test,
    OpKind.GET: _get,
}

_ARRAY_OPS: Dict[OpKind, OpHandler] = {
    **_OBJECT_OPS,
    OpKind.ADD: _array_add,
    OpKind.REMOVE: _array_remove,
}


def _test_failed(operation: Any, index: int, document: Any) -> PatchError:
    return PatchError("Test operation failed", PatchErrorKind.TEST_OPERATION_FAILED, index, operation, document)


def _unresolvable(operation: Any, index: int, document: Any) -> PatchError:
    return PatchError(
        "Cannot perform operation at the desired path",
        PatchErrorKind.OPERATION_PATH_UNRESOLVABLE,
        index,
        operation,
        document,
    )


def _lookup_extended(registry: ExtendedOperationRegistry, operation: Mapping[str, Any], index: int, document: Any):
    config = registry.get(operation.get("xid"))
    if config is None:
        raise PatchError(
            "Extended operation `xid` property is not a registered extended operation",
            PatchErrorKind.OPERATION_X_OP_INVALID,
            index,
            operation,
            document,
        )
    return config


def _check_extended_result(result: Any, operation: Any, index: int, document: Any) -> None:
    if not isinstance(result, OperationResult):
        raise PatchError(
            "Extended operation handler must return an OperationResult or None",
            PatchErrorKind.OPERATION_X_OPERATOR_EXCEPTION,
            index,
            operation,
            document,
        )


def _apply_to_root(
    document: Any,
    operation: Mapping[str, Any],
    kind: Optional[OpKind],
    validate: ValidateOption,
    ban: bool,
    index: int,
    registry: ExtendedOperationRegistry,
) -> OperationResult:
    if kind is OpKind.ADD:
        logger.debug("replacing document root via add")
        return OperationResult(operand(operation))
    if kind is OpKind.REPLACE:
        logger.debug("replacing document root via replace")
        return OperationResult(operand(operation), removed=document)
    if kind in (OpKind.MOVE, OpKind.COPY):
        source = resolve_pointer(document, operation.get("from"), ban_prototype_modifications=ban)
        result = OperationResult(deep_clone(source))
        if kind is OpKind.MOVE:
            result.removed = document
        return result
    if kind is OpKind.TEST:
        if not deep_equal(document, operation.get("value", UNDEFINED)):
            raise _test_failed(operation, index, document)
        return OperationResult(document, test=True)
    if kind is OpKind.REMOVE:
        return OperationResult(None, removed=document)
    if kind is OpKind.GET:
        return OperationResult(document, value=document)
    if kind is OpKind.X:
        config = _lookup_extended(registry, operation, index, document)
        resolve = operation.get("resolve") is True
        if not resolve:
            return OperationResult(operand(operation))
        working = deep_clone(document)
        result = config.obj(operation, working, "", working)
        if result is None:
            return OperationResult(document)
        _check_extended_result(result, operation, index, document)
        if result.has_removed:
            raise PatchError(
                "Extended operation should not remove items while resolving undefined paths",
                PatchErrorKind.OPERATION_X_AMBIGUOUS_REMOVAL,
                index,
                operation,
                document,
            )
        return result
    if validate:
        raise PatchError(
            "Operation `op` property is not one of operations defined in RFC-6902",
            PatchErrorKind.OPERATION_OP_INVALID,
            index,
            operation,
            document,
        )
    return OperationResult(document)


def _apply_extended(
    handler: Callable[..., Any],
    operation: Mapping[str, Any],
    container: Any,
    key: Key,
    working: Any,
    document: Any,
    *,
    mutate: bool,
    resolve: bool,
    graft_components: List[Key],
    prune_components: List[Key],
    index: int,
) -> OperationResult:
    # parity with the root: an empty terminal key replaces the document
    if key == "" and not resolve:
        return OperationResult(operand(operation))
    result = handler(operation, container, key, working)
    if result is None:
        return OperationResult(document)
    _check_extended_result(result, operation, index, document)
    if result.has_removed and resolve:
        raise PatchError(
            "Extended operation should not remove items while resolving undefined paths",
            PatchErrorKind.OPERATION_X_AMBIGUOUS_REMOVAL,
            index,
            operation,
            document,
        )
    if not mutate:
        return result
    if result.has_removed:
        graft_tree(result.new_document, document, ModType.PRUNE, prune_components)
    else:
        graft_tree(result.new_document, document, ModType.GRAFT, graft_components)
    return OperationResult(document, removed=result.removed)


def _apply_nested(
    document: Any,
    operation: Mapping[str, Any],
    kind: OpKind,
    path: str,
    validate: ValidateOption,
    mutate: bool,
    ban: bool,
    index: int,
    registry: ExtendedOperationRegistry,
) -> OperationResult:
    if not mutate:
        document = deep_clone(document)
    keys = path.split("/")
    length = len(keys)
    node = document
    working = document
    resolved: List[Key] = []
    graft_at: Optional[int] = None
    existing_fragment: Optional[str] = None

    extended = kind is OpKind.X
    resolve = extended and operation.get("resolve") is True
    config = None
    if extended:
        config = _lookup_extended(registry, operation, index, document)
        # handlers see a private copy so that returning None discards their edits
        working = node = deep_clone(node)

    if callable(validate):
        validate_fn = validate
    else:
        validate_fn = functools.partial(validate_operation, registry=registry)

    t = 1
    while True:
        key: Key = keys[t]
        if "~" in key:
            key = unescape_path_component(key)
        if ban and is_prototype_key(key, keys[t - 1]):
            raise TypeError(PROTO_ERROR_MSG)

        if validate and existing_fragment is None:
            if get_child(node, key) is UNDEFINED:
                existing_fragment = "/".join(keys[:t])
            elif t == length - 1:
                existing_fragment = path
            if existing_fragment is not None:
                validate_fn(operation, index, document, existing_fragment)

        if not is_container(node):
            raise _unresolvable(operation, index, document)

        t += 1
        terminal = t >= length
        sentinel = False

        if isinstance(node, list):
            if key == "-":
                key = len(node)
                sentinel = extended
            elif extended and key == "--":
                key = len(node) - 1
                sentinel = True
                if key < 0:
                    raise PatchError(_OUT_OF_BOUNDS_MSG, PatchErrorKind.OPERATION_VALUE_OUT_OF_BOUNDS, index, operation, document)
            elif is_integer(key):
                key = int(key)
                if extended and not resolve and key >= len(node):
                    raise PatchError(_OUT_OF_BOUNDS_MSG, PatchErrorKind.OPERATION_VALUE_OUT_OF_BOUNDS, index, operation, document)
            elif not (resolve and terminal and key == ""):
                raise PatchError(_ILLEGAL_INDEX_MSG, PatchErrorKind.OPERATION_PATH_ILLEGAL_ARRAY_INDEX, index, operation, document)

        resolved.append(key)
        if sentinel and graft_at is None:
            graft_at = len(resolved)

        if terminal:
            if extended:
                handler = config.arr if isinstance(node, list) else config.obj
                return _apply_extended(
                    handler,
                    operation,
                    node,
                    key,
                    working,
                    document,
                    mutate=mutate,
                    resolve=resolve,
                    graft_components=resolved[:graft_at] if graft_at is not None else resolved,
                    prune_components=resolved,
                    index=index,
                )
            if isinstance(node, list):
                if validate and kind is OpKind.ADD and key > len(node):
                    raise PatchError(_OUT_OF_BOUNDS_MSG, PatchErrorKind.OPERATION_VALUE_OUT_OF_BOUNDS, index, operation, document)
                result = _ARRAY_OPS[kind](operation, node, key, document, ban)
            else:
                result = _OBJECT_OPS[kind](operation, node, key, document, ban)
            if result.test is False:
                raise _test_failed(operation, index, document)
            return result

        child = get_child(node, key)
        if extended and (child is UNDEFINED or (resolve and child is None)):
            if graft_at is None:
                graft_at = len(resolved)
            if resolve:
                upcoming = keys[t]
                if isinstance(document, list) and is_integer(upcoming):
                    child = [None] * (int(upcoming) + 1)
                else:
                    child = {}
                set_child(node, key, child)
        node = child


def apply_operation(
    document: Any,
    operation: Mapping[str, Any],
    validate: ValidateOption = False,
    mutate: bool = True,
    ban_prototype_modifications: bool = True,
    index: int = 0,
    *,
    registry: Optional[ExtendedOperationRegistry] = None,
) -> OperationResult:
    """Apply a single operation to ``document``.

    ``validate`` is False, True (built-in validator) or a callable with the
    signature of ``validate_operation``. With ``mutate=False`` the document is
    deep-cloned first and the caller's object is left untouched. Root replacement
    is reported through ``new_document``, so always use the returned document.
    """

    if registry is None:
        registry = DEFAULT_REGISTRY
    if validate:
        if callable(validate):
            path = operation.get("path") if isinstance(operation, Mapping) else None
            validate(operation, index, document, path)
        else:
            validate_operation(operation, index, registry=registry)

    if not isinstance(operation, Mapping):
        raise PatchError("Operation is not an object", PatchErrorKind.OPERATION_NOT_AN_OBJECT, index, operation, document)

    kind = op_kind(operation)
    path = operation.get("path")
    if kind in FROM_KINDS and not isinstance(operation.get("from"), str):
        raise PatchError(
            "Operation `from` property is not present (applicable in `move` and `copy` operations)",
            PatchErrorKind.OPERATION_FROM_REQUIRED,
            index,
            operation,
            document,
        )
    if path == "":
        return _apply_to_root(document, operation, kind, validate, ban_prototype_modifications, index, registry)
    if kind is None:
        raise PatchError(
            "Operation `op` property is not one of operations defined in RFC-6902",
            PatchErrorKind.OPERATION_OP_INVALID,
            index,
            operation,
            document,
        )
    if not isinstance(path, str):
        raise PatchError("Operation `path` property is not a string", PatchErrorKind.OPERATION_PATH_INVALID, index, operation, document)
    if not path.startswith("/"):
        raise PatchError('Operation `path` property must start with "/"', PatchErrorKind.OPERATION_PATH_INVALID, index, operation, document)
    return _apply_nested(
        document,
        operation,
        kind,
        path,
        validate,
        mutate,
        ban_prototype_modifications,
        index,
        registry,
    )


def get_value_by_pointer(document: Any, pointer: str, *, ban_prototype_modifications: bool = True) -> Any:
    """Read the value at ``pointer`` through the dispatcher's internal ``_get`` operation."""

    if pointer == "":
        return document
    return apply_operation(
        document,
        {"op": OpKind.GET.value, "path": pointer},
        ban_prototype_modifications=ban_prototype_modifications,
    ).value


__all__ = ["ValidateOption", "apply_operation", "get_value_by_pointer"]
