"""Splice the output of an extended-operation handler back into the live document."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Sequence

from src.common.primitives import UNDEFINED
from src.pointer.resolver import Key, delete_child, get_child, set_child

logger = logging.getLogger(__name__)


class ModType(str, Enum):
    GRAFT = "graft"
    PRUNE = "prune"


def graft_tree(source: Any, target: Any, mod_type: ModType, components: Sequence[Key]) -> None:
    """Copy the change at ``components`` from ``source`` into ``target`` in place.

    A prune at a single component deletes that key from ``target``; deeper
    prunes replace the parent of the pruned key so siblings survive. A graft
    attaches at the first component missing from ``target``.
    """

    if not components:
        return

    if len(components) == 1:
        key = components[0]
        if mod_type is ModType.GRAFT:
            value = get_child(source, key)
            if value is not UNDEFINED:
                set_child(target, key, value)
        else:
            # best guess: handlers are only expected to remove the addressed key
            delete_child(target, key)
        logger.debug("%s at top-level key %r", mod_type.value, key)
        return

    graft_target = target
    graft = source
    key: Key = ""
    last_parent = len(components) - 2
    for position, key in enumerate(components):
        graft = get_child(graft, key)
        if mod_type is ModType.GRAFT and get_child(graft_target, key) is UNDEFINED:
            if graft is UNDEFINED:
                return
            break
        if position == last_parent:
            break
        graft_target = get_child(graft_target, key)

    logger.debug("%s at key %r", mod_type.value, key)
    set_child(graft_target, key, graft)


__all__ = ["ModType", "graft_tree"]
