from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from src.common.errors import PatchError, PatchErrorKind
from src.common.primitives import is_valid_extended_op_id

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any], Any, Any, Any], Any]
Validator = Callable[[Any, Optional[int], Any, Optional[str]], None]


@dataclass(frozen=True)
class ExtendedOperationConfig:
    """Handlers for one extended operation id.

    ``arr`` runs when the target container is a list, ``obj`` when it is a map
    (or the root). Both receive ``(operation, container, key, document)`` and
    return an ``OperationResult`` or ``None`` to leave the document untouched.
    ``validator`` receives ``(operation, index, document, existing_path_fragment)``
    and raises ``PatchError`` to reject the operation.
    """

    arr: Handler
    obj: Handler
    validator: Validator


def _check_xid(xid: Any) -> None:
    if not is_valid_extended_op_id(xid):
        raise PatchError(
            "Extended operation `xid` has malformed id (MUST begin with `x-`)",
            PatchErrorKind.OPERATION_X_ID_INVALID,
            operation=xid,
        )


def _coerce_config(xid: str, config: Any) -> ExtendedOperationConfig:
    if isinstance(config, ExtendedOperationConfig):
        candidate = {"arr": config.arr, "obj": config.obj, "validator": config.validator}
    elif isinstance(config, Mapping):
        candidate = {name: config.get(name) for name in ("arr", "obj", "validator")}
    else:
        candidate = {name: getattr(config, name, None) for name in ("arr", "obj", "validator")}
    for name, handler in candidate.items():
        if not callable(handler):
            raise PatchError(
                f"Extended operation config has invalid `{name}` function",
                PatchErrorKind.OPERATION_X_CONFIG_INVALID,
                operation=xid,
            )
    return ExtendedOperationConfig(**candidate)


class ExtendedOperationRegistry:
    """Mapping of ``x-`` operation ids to their configs.

    Not synchronised; register during start-up or test set-up.
    """

    def __init__(self) -> None:
        self._configs: Dict[str, ExtendedOperationConfig] = {}

    def register(self, xid: str, config: Any) -> ExtendedOperationConfig:
        _check_xid(xid)
        frozen = _coerce_config(xid, config)
        if xid in self._configs:
            logger.debug("overwriting extended operation %s", xid)
        self._configs[xid] = frozen
        logger.debug("registered extended operation %s", xid)
        return frozen

    def has(self, xid: str) -> bool:
        _check_xid(xid)
        return xid in self._configs

    def get(self, xid: Any) -> Optional[ExtendedOperationConfig]:
        if not isinstance(xid, str):
            return None
        return self._configs.get(xid)

    def clear(self) -> None:
        logger.debug("clearing %d extended operation(s)", len(self._configs))
        self._configs.clear()

    def __contains__(self, xid: object) -> bool:
        return xid in self._configs

    def __len__(self) -> int:
        return len(self._configs)


DEFAULT_REGISTRY = ExtendedOperationRegistry()


def register_extended_operation(xid: str, config: Any) -> None:
    """Register ``config`` under ``xid`` in the process-wide registry, replacing any previous entry."""

    DEFAULT_REGISTRY.register(xid, config)


def has_extended_operation(xid: str) -> bool:
    return DEFAULT_REGISTRY.has(xid)


def clear_extended_operations() -> None:
    DEFAULT_REGISTRY.clear()


__all__ = [
    "DEFAULT_REGISTRY",
    "ExtendedOperationConfig",
    "ExtendedOperationRegistry",
    "clear_extended_operations",
    "has_extended_operation",
    "register_extended_operation",
]
