"""Trash entry models."""

from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from models.enums import ItemType, TrashKind

if TYPE_CHECKING:
    from models.novel import NovelItem


@dataclass
class TrashItem:
    """A soft-deleted volume or chapter.

    A trashed volume keeps its chapters nested inside ``item``.
    """
    item: "NovelItem"
    deleted_at: int  # ms since epoch

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def type(self) -> ItemType:
        return self.item.type

    @property
    def title(self) -> str:
        return self.item.title

    def to_dict(self) -> dict:
        data = self.item.to_dict()
        data["deleted_at"] = self.deleted_at
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "TrashItem":
        from models.novel import item_from_dict

        body = {k: v for k, v in data.items() if k != "deleted_at"}
        return cls(item=item_from_dict(body), deleted_at=int(data["deleted_at"]))


@dataclass
class TrashEntry:
    """A trashed entity that is not part of the volume/chapter tree.

    Sections, world entities and rules share the trash list with structural
    items; they are carried opaquely here.
    """
    kind: TrashKind
    id: str
    deleted_at: int
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "deleted_at": self.deleted_at,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrashEntry":
        return cls(
            kind=TrashKind(data["kind"]),
            id=data["id"],
            deleted_at=int(data["deleted_at"]),
            data=dict(data.get("data") or {}),
        )
