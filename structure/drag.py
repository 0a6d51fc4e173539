"""Drag-and-drop state machine for the structure sidebar.

Pointer events arrive in order: ``start`` → any number of ``hover*`` /
``leave`` → one of the ``drop*`` calls or ``cancel``. The controller
resolves every hover into a placement and, on drop, dispatches the edit to
``NovelStructure``. Only one drag is active at a time.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Union

from models.enums import DragPhase, DragSource, ItemType, Placement
from structure.engine import NovelStructure, OperationResult
from structure.resolver import resolve_container_placement, resolve_placement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DragState:
    """Snapshot of the drag in progress, read by renderers for drop indicators."""
    phase: DragPhase = DragPhase.IDLE
    dragged_id: Optional[str] = None
    dragged_type: Optional[ItemType] = None
    source: Optional[DragSource] = None
    over_id: Optional[str] = None
    placement: Optional[Placement] = None
    over_root_end: bool = False

    @property
    def is_active(self) -> bool:
        return self.phase in (DragPhase.DRAGGING, DragPhase.HOVERING)

    def indicator_for(self, item_id: str) -> Optional[Placement]:
        """Placement to highlight on ``item_id``, if it is the current target."""
        if self.over_id == item_id:
            return self.placement
        return None


IDLE = DragState()


@dataclass(frozen=True)
class DropResult:
    """How a drag ended, plus the engine result when an edit was dispatched."""
    outcome: DragPhase
    result: Optional[OperationResult] = None

    @property
    def dropped(self) -> bool:
        return self.outcome is DragPhase.DROPPED


class DragController:
    """Tracks one pointer drag and turns its drop into a structural edit."""

    def __init__(self, structure: NovelStructure):
        self._structure = structure
        self._state = IDLE

    @property
    def state(self) -> DragState:
        return self._state

    # ---- Transitions ----

    def start(
        self,
        item_id: str,
        item_type: Union[ItemType, str],
        source: Union[DragSource, str] = DragSource.TREE,
    ) -> DragState:
        """Begin dragging a tree item or a trash entry.

        An unknown item type or source is ignored and the current state is kept.
        """
        try:
            dragged_type = ItemType(item_type)
            drag_source = DragSource(source)
        except ValueError:
            logger.debug("Ignoring drag start for %s: type=%r source=%r", item_id, item_type, source)
            return self._state
        if self._state.is_active:
            logger.debug("Drag start while dragging %s; restarting", self._state.dragged_id)
            self._state = IDLE
        self._state = DragState(
            phase=DragPhase.DRAGGING,
            dragged_id=item_id,
            dragged_type=dragged_type,
            source=drag_source,
        )
        logger.debug("Drag start: id=%s source=%s", item_id, self._state.source.value)
        return self._state

    def hover(self, target_id: str, offset_y: float, height: float) -> DragState:
        """Pointer moved over a sibling item; ``offset_y`` is measured from its top edge."""
        if not self._state.is_active:
            return self._state
        placement = resolve_placement(self._state.dragged_id, target_id, offset_y, height)
        return self._set_target(target_id if placement else None, placement)

    def hover_container(self, volume_id: str) -> DragState:
        """Pointer moved over a volume's empty chapter list."""
        if not self._state.is_active:
            return self._state
        placement = resolve_container_placement(self._state.dragged_id, volume_id)
        return self._set_target(volume_id if placement else None, placement)

    def hover_root_end(self) -> DragState:
        """Pointer moved over the empty region below all items."""
        if not self._state.is_active:
            return self._state
        self._state = replace(
            self._state,
            phase=DragPhase.HOVERING,
            over_id=None,
            placement=Placement.AFTER,
            over_root_end=True,
        )
        return self._state

    def leave(self) -> DragState:
        """Pointer left the current target without entering another."""
        if not self._state.is_active:
            return self._state
        return self._set_target(None, None)

    def drop(self) -> DropResult:
        """Pointer released over the tree."""
        state = self._state
        if not state.is_active:
            return DropResult(DragPhase.CANCELLED)
        if state.over_root_end:
            return self._dispatch_placement(None, Placement.AFTER)
        if state.over_id and state.placement:
            return self._dispatch_placement(state.over_id, state.placement)
        return self.cancel()

    def drop_on_trash(self) -> DropResult:
        """Pointer released over the trash destination."""
        state = self._state
        if not state.is_active or state.source is not DragSource.TREE:
            return self.cancel()
        result = self._structure.delete_item(state.dragged_id, state.dragged_type)
        return self._finish(result)

    def drop_on_outline(self) -> DropResult:
        """Pointer released over the outline tab; restores trash entries to the root end."""
        state = self._state
        if not state.is_active or state.source is not DragSource.TRASH:
            return self.cancel()
        result = self._structure.restore_item(state.dragged_id)
        return self._finish(result)

    def cancel(self) -> DropResult:
        if self._state.is_active:
            logger.debug("Drag cancelled: id=%s", self._state.dragged_id)
        self._state = IDLE
        return DropResult(DragPhase.CANCELLED)

    # ---- Internal helpers ----

    def _set_target(self, over_id: Optional[str], placement: Optional[Placement]) -> DragState:
        self._state = replace(
            self._state,
            phase=DragPhase.HOVERING if placement else DragPhase.DRAGGING,
            over_id=over_id,
            placement=placement,
            over_root_end=False,
        )
        return self._state

    def _dispatch_placement(self, target_id: Optional[str], placement: Placement) -> DropResult:
        state = self._state
        if state.source is DragSource.TRASH:
            result = self._structure.restore_item_to_location(state.dragged_id, target_id, placement)
        else:
            result = self._structure.move_item(state.dragged_id, target_id, placement)
        return self._finish(result)

    def _finish(self, result: OperationResult) -> DropResult:
        logger.debug("Drag dropped: id=%s success=%s", self._state.dragged_id, result.success)
        self._state = IDLE
        return DropResult(DragPhase.DROPPED, result)
