"""
Helpers shared by model lifecycle hooks.
Covers status-transition whitelists and attribute change detection during flush.
"""

import enum
import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy import inspect

logger = logging.getLogger(__name__)


class StatusTransitionError(ValueError):
    """Raised when a status change is not in the entity's whitelist."""

    def __init__(self, entity: str, previous: Any, current: Any):
        self.entity = entity
        self.previous = previous
        self.current = current
        super().__init__(
            f"Invalid {entity} status transition from {_label(previous)} to {_label(current)}"
        )


def _label(value: Any) -> str:
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value)


def attribute_change(target: Any, attribute: str) -> Optional[Tuple[Any, Any]]:
    """
    Return (previous, current) when an attribute changed in the pending flush.

    Args:
        target: Mapped instance being flushed
        attribute: Attribute name to inspect

    Returns:
        Tuple of previous and current values, or None when unchanged
    """
    history = inspect(target).attrs[attribute].history
    if not history.has_changes():
        return None
    previous = history.deleted[0] if history.deleted else None
    current = history.added[0] if history.added else getattr(target, attribute)
    if previous == current:
        return None
    return previous, current


def check_transition(
    entity: str,
    transitions: Dict[Any, Iterable[Any]],
    previous: Any,
    current: Any,
    initial: Any,
) -> None:
    """
    Validate a status change against a whitelist.

    Args:
        entity: Entity label for error messages
        transitions: Mapping of status to the statuses it may move to
        previous: Status before the change (None falls back to ``initial``)
        current: Requested status
        initial: Status a new row starts in

    Raises:
        StatusTransitionError: If the move is not allowed
    """
    previous = initial if previous is None else previous
    if current not in transitions.get(previous, ()):
        raise StatusTransitionError(entity, previous, current)
    logger.info(f"{entity} status transition {_label(previous)} -> {_label(current)}")


