"""Translate pointer geometry into a drop placement."""

from typing import Optional

from models.enums import Placement

# Fraction of the target's height above which a drop lands BEFORE it
BEFORE_THRESHOLD = 0.5


def resolve_placement(
    dragged_id: str,
    target_id: str,
    offset_y: float,
    height: float,
) -> Optional[Placement]:
    """Placement for a pointer hovering a sibling item.

    Args:
        dragged_id: Id of the item being dragged.
        target_id: Id of the hovered item.
        offset_y: Pointer offset from the top edge of the hovered item.
        height: Rendered height of the hovered item.

    Returns:
        BEFORE for the top half, AFTER for the bottom half including the
        exact midpoint, or None when hovering the dragged item itself.
    """
    if dragged_id == target_id:
        return None
    if height <= 0:
        return Placement.AFTER
    return Placement.BEFORE if offset_y < height * BEFORE_THRESHOLD else Placement.AFTER


def resolve_container_placement(dragged_id: str, volume_id: str) -> Optional[Placement]:
    """Placement for a pointer over a volume's empty chapter list."""
    if dragged_id == volume_id:
        return None
    return Placement.INSIDE
