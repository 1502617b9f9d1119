"""Patcher package for applying JSON patch operations to documents."""

from .dispatcher import apply_operation, get_value_by_pointer
from .sequence import apply_patch, apply_reducer

__all__ = ["apply_operation", "apply_patch", "apply_reducer", "get_value_by_pointer"]
