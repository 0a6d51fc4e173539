"""Enumerations for the novel structure tree."""

from enum import Enum


class ItemType(str, Enum):
    VOLUME = "VOLUME"
    CHAPTER = "CHAPTER"


class ChapterStatus(str, Enum):
    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    DONE = "DONE"


class Placement(str, Enum):
    """Where a dropped item lands relative to its target."""
    BEFORE = "BEFORE"
    AFTER = "AFTER"
    INSIDE = "INSIDE"


class DragSource(str, Enum):
    TREE = "TREE"
    TRASH = "TRASH"


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    HOVERING = "hovering"
    DROPPED = "dropped"
    CANCELLED = "cancelled"


class TrashKind(str, Enum):
    """Kinds of trashed entities that live outside the volume/chapter tree."""
    SECTION = "SECTION"
    ENTITY = "ENTITY"
    RULE = "RULE"
