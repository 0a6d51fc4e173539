"""Chapter data model."""

from dataclasses import dataclass, field
from typing import Any

from models.enums import ChapterStatus, ItemType


@dataclass
class Chapter:
    """A leaf content unit of the novel.

    ``payload`` carries the editor-owned fields (sections, outline, chat
    history, ...) verbatim; nothing in the structure tree inspects it.
    """
    id: str
    title: str = ""
    status: ChapterStatus = ChapterStatus.DRAFT
    payload: dict[str, Any] = field(default_factory=dict)
    last_modified: int = 0  # ms since epoch
    type: ItemType = field(default=ItemType.CHAPTER, init=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "status": self.status.value,
            "payload": self.payload,
            "last_modified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Chapter":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            status=ChapterStatus(data.get("status", ChapterStatus.DRAFT.value)),
            payload=dict(data.get("payload") or {}),
            last_modified=int(data.get("last_modified", 0)),
        )
