"""Models package — tree entities, enums, and SQLite persistence."""

from models.database import Database
from models.novel import Novel, Volume, NovelItem, item_from_dict
from models.chapter import Chapter
from models.trash import TrashItem, TrashEntry
from models.enums import (
    ItemType,
    ChapterStatus,
    Placement,
    DragSource,
    DragPhase,
    TrashKind,
)

__all__ = [
    "Database",
    "Novel",
    "Volume",
    "NovelItem",
    "item_from_dict",
    "Chapter",
    "TrashItem",
    "TrashEntry",
    "ItemType",
    "ChapterStatus",
    "Placement",
    "DragSource",
    "DragPhase",
    "TrashKind",
]
