"""Pointer package for walking JSON documents."""

from .resolver import get_path, resolve_pointer, split_pointer

__all__ = ["get_path", "resolve_pointer", "split_pointer"]
