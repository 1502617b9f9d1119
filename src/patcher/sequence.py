from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from src.common.errors import PatchError, PatchErrorKind
from src.common.operations import OperationResult, PatchResults
from src.common.primitives import deep_clone
from src.extensions.registry import ExtendedOperationRegistry

from .dispatcher import ValidateOption, apply_operation


def apply_patch(
    document: Any,
    patch: Sequence[Mapping[str, Any]],
    validate: ValidateOption = False,
    mutate: bool = True,
    ban_prototype_modifications: bool = True,
    *,
    registry: Optional[ExtendedOperationRegistry] = None,
) -> PatchResults:
    """Apply ``patch`` in order and return one result per operation.

    Each operation sees the document left by its predecessor. Nothing is rolled
    back when an operation fails; run ``validate_sequence`` first when the whole
    patch must apply or not at all.
    """

    if validate and not isinstance(patch, list):
        raise PatchError("Patch sequence must be an array", PatchErrorKind.SEQUENCE_NOT_AN_ARRAY)
    if not mutate:
        document = deep_clone(document)

    results = PatchResults()
    for index, operation in enumerate(patch):
        # the clone above already protects the caller's document
        result = apply_operation(
            document,
            operation,
            validate,
            True,
            ban_prototype_modifications,
            index,
            registry=registry,
        )
        results.append(result)
        document = result.new_document
    results.new_document = document
    return results


def apply_reducer(document: Any, operation: Mapping[str, Any], index: int = 0) -> Any:
    """Apply one operation and return the new document; usable with ``functools.reduce``."""

    result: OperationResult = apply_operation(document, operation, index=index)
    if result.test is False:
        raise PatchError("Test operation failed", PatchErrorKind.TEST_OPERATION_FAILED, index, operation, document)
    return result.new_document


__all__ = ["apply_patch", "apply_reducer"]
