"""Novel and volume data models."""

from dataclasses import dataclass, field
from typing import Optional, Union

from models.chapter import Chapter
from models.enums import ItemType
from models.trash import TrashEntry, TrashItem


@dataclass
class Volume:
    """A named, ordered container of chapters (one level below the root)."""
    id: str
    title: str = ""
    chapters: list[Chapter] = field(default_factory=list)
    type: ItemType = field(default=ItemType.VOLUME, init=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "chapters": [c.to_dict() for c in self.chapters],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Volume":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            chapters=[Chapter.from_dict(c) for c in data.get("chapters", [])],
        )


NovelItem = Union[Volume, Chapter]


def item_from_dict(data: dict) -> NovelItem:
    """Rebuild a Volume or Chapter from its ``to_dict`` form."""
    if data.get("type") == ItemType.VOLUME.value:
        return Volume.from_dict(data)
    return Chapter.from_dict(data)


@dataclass
class Novel:
    """A novel's structure: ordered root items plus the trash.

    ``collapsed_volume_ids`` is presentation state keyed by volume id and is
    kept apart from the structural records.
    """
    id: str
    title: str = ""
    items: list[NovelItem] = field(default_factory=list)
    trash: list[Union[TrashItem, TrashEntry]] = field(default_factory=list)
    active_chapter_id: Optional[str] = None
    collapsed_volume_ids: set[str] = field(default_factory=set)
    created_at: int = 0  # ms since epoch
