"""Extended (``x-``) operation registry and result reconciliation."""

from .reconcile import ModType, graft_tree
from .registry import (
    DEFAULT_REGISTRY,
    ExtendedOperationConfig,
    ExtendedOperationRegistry,
    clear_extended_operations,
    has_extended_operation,
    register_extended_operation,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "ExtendedOperationConfig",
    "ExtendedOperationRegistry",
    "ModType",
    "clear_extended_operations",
    "graft_tree",
    "has_extended_operation",
    "register_extended_operation",
]
