"""Validator package for checking patch operations before they are applied."""

from .validator import validate_operation, validate_sequence

__all__ = ["validate_operation", "validate_sequence"]
