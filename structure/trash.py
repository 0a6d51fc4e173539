"""Trash helpers: soft-delete wrapping and structural filtering."""

from models.enums import ItemType
from models.novel import NovelItem
from models.trash import TrashItem
from structure.tree import TrashList


def to_trash(item: NovelItem, deleted_at: int) -> TrashItem:
    """Wrap a live volume or chapter for the trash. A volume keeps its chapters."""
    return TrashItem(item=item, deleted_at=deleted_at)


def structure_items(trash: TrashList) -> list[TrashItem]:
    """Trashed volumes and chapters in trash order; other kinds are skipped."""
    return [
        entry for entry in trash
        if isinstance(entry, TrashItem) and entry.type in (ItemType.VOLUME, ItemType.CHAPTER)
    ]


def is_trashed(trash: TrashList, item_id: str) -> bool:
    """True if ``item_id`` is a trash entry or a chapter nested in a trashed volume."""
    for entry in trash:
        if entry.id == item_id:
            return True
        if isinstance(entry, TrashItem) and entry.type is ItemType.VOLUME:
            if any(c.id == item_id for c in entry.item.chapters):
                return True
    return False
