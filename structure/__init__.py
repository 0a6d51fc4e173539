"""Structure package — tree model, move resolver, drag state machine, and mutation engine."""

from structure.callbacks import (
    NoticeLevel,
    Notification,
    Notifier,
    LoggingNotifier,
    NotificationBus,
    SelectionState,
    NovelSelection,
)
from structure.context_menu import ContextMenu, ContextMenuController
from structure.drag import DragController, DragState, DropResult
from structure.engine import NovelStructure, OperationResult
from structure.resolver import resolve_placement, resolve_container_placement
from structure.trash import structure_items
from structure.tree import TreeDraft, check_invariants, tree_violations, walk

__all__ = [
    "NoticeLevel",
    "Notification",
    "Notifier",
    "LoggingNotifier",
    "NotificationBus",
    "SelectionState",
    "NovelSelection",
    "ContextMenu",
    "ContextMenuController",
    "DragController",
    "DragState",
    "DropResult",
    "NovelStructure",
    "OperationResult",
    "resolve_placement",
    "resolve_container_placement",
    "structure_items",
    "TreeDraft",
    "check_invariants",
    "tree_violations",
    "walk",
]
