"""Mutation engine for the volume/chapter tree.

``NovelStructure`` is the command surface the host UI calls on user
gestures. Every command is atomic: it builds a ``TreeDraft``, validates it
and swaps it into the novel, or leaves the novel untouched and returns a
failed ``OperationResult``. Commands never raise for malformed input.

Example:

    structure = NovelStructure(novel)
    result = structure.move_item("chap-3", "chap-1", Placement.AFTER)
    if not result.success:
        print(result.details["reason"])
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from config.exceptions import InvariantViolationError
from config.settings import Settings, get_settings
from models.chapter import Chapter
from models.enums import ChapterStatus, ItemType, Placement
from models.novel import Novel, NovelItem, Volume
from models.trash import TrashItem
from structure.callbacks import (
    LoggingNotifier,
    NoticeLevel,
    Notification,
    Notifier,
    NovelSelection,
    SelectionState,
)
from structure.trash import is_trashed, to_trash
from structure.tree import ItemLocation, TreeDraft, all_ids, locate, trash_entry_ids
from tools.ids import IdGenerator, now_ms

__all__ = ["OperationResult", "NovelStructure", "rejected"]

logger = logging.getLogger(__name__)

_UNCHANGED = object()


@dataclass(frozen=True)
class OperationResult:
    """Result of a structural command.

    Attributes:
        success: Whether the novel was changed.
        message: Human-readable summary suitable for logs or UI display.
        details: Structured details; rejections always carry ``reason``.
    """
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None

    @property
    def reason(self) -> Optional[str]:
        return (self.details or {}).get("reason")


def rejected(message: str, reason: str, **details) -> OperationResult:
    return OperationResult(False, message, {"reason": reason, **details})


class NovelStructure:
    """Structural commands over one novel's tree and trash."""

    def __init__(
        self,
        novel: Novel,
        notifier: Optional[Notifier] = None,
        selection: Optional[SelectionState] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], int] = now_ms,
        id_generator: Optional[IdGenerator] = None,
    ):
        self.novel = novel
        self.settings = settings or get_settings()
        self._notifier = notifier or LoggingNotifier()
        self._selection = selection or NovelSelection(novel)
        self._clock = clock
        self._ids = id_generator or IdGenerator(clock)

        active = self._selection.active_chapter_id
        if active and not isinstance(self._live(active), Chapter):
            logger.warning("Active chapter %s is not a live chapter; clearing selection", active)
            self._selection.clear()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def find(self, item_id: str) -> Optional[ItemLocation]:
        """Locate a live (non-trashed) item."""
        return locate(self.novel.items, item_id)

    def get_item(self, item_id: str) -> Optional[NovelItem]:
        return self._live(item_id)

    def is_collapsed(self, volume_id: str) -> bool:
        return volume_id in self.novel.collapsed_volume_ids

    @property
    def active_chapter_id(self) -> Optional[str]:
        return self._selection.active_chapter_id

    # -------------------------------------------------------------------------
    # Reordering
    # -------------------------------------------------------------------------

    def move_item(
        self,
        dragged_id: str,
        target_id: Optional[str],
        placement: Union[Placement, str],
    ) -> OperationResult:
        """Move a live item next to ``target_id`` or to the root ends.

        BEFORE/AFTER insert into whichever sequence holds the target, which
        is how chapters change volumes. INSIDE appends to a volume's chapters.
        A ``None`` target prepends (BEFORE) or appends (AFTER) at the root;
        INSIDE needs a volume target.
        """
        logger.info("Edit: move dragged=%s target=%s placement=%s", dragged_id, target_id, placement)
        placement = self._placement(placement)
        if placement is None:
            return self._reject("move", "invalid_placement", "Unknown placement.", dragged_id=dragged_id)
        if dragged_id == target_id:
            return self._reject("move", "self_drop", "Cannot drop an item onto itself.", dragged_id=dragged_id)

        draft = TreeDraft(self.novel)
        source = draft.locate(dragged_id)
        if source is None:
            return self._reject("move", "not_found", f"Item not found: {dragged_id}", dragged_id=dragged_id)
        item = source.container.pop(source.index)

        reason = self._insert(draft, item, target_id, placement)
        if reason:
            return self._reject("move", reason, _PLACEMENT_MESSAGES[reason],
                                dragged_id=dragged_id, target_id=target_id)

        failure = self._commit("move", draft)
        if failure:
            return failure
        logger.info("Edit OK: move dragged=%s target=%s placement=%s", dragged_id, target_id, placement.value)
        self._notify(NoticeLevel.ACTION, "Moved item",
                     dragged_id=dragged_id, target_id=target_id, placement=placement.value)
        return OperationResult(True, "Item moved.",
                               {"id": dragged_id, "target_id": target_id, "placement": placement.value})

    # -------------------------------------------------------------------------
    # Item edits
    # -------------------------------------------------------------------------

    def rename_item(self, item_id: str, new_title: str) -> OperationResult:
        """Set a live item's title; blank titles are ignored."""
        logger.info("Edit: rename item=%s", item_id)
        if not (new_title or "").strip():
            return self._reject("rename", "empty_title", "Title must not be empty.", id=item_id)
        item = self._live(item_id)
        if item is None:
            return self._reject("rename", "not_found", f"Item not found: {item_id}", id=item_id)
        old_title = item.title
        item.title = new_title
        logger.info("Edit OK: rename item=%s", item_id)
        self._notify(NoticeLevel.ACTION, "Renamed item", id=item_id, old_title=old_title, title=new_title)
        return OperationResult(True, "Item renamed.", {"id": item_id, "title": new_title})

    def update_chapter_status(self, chapter_id: str, status: Union[ChapterStatus, str]) -> OperationResult:
        logger.info("Edit: status chapter=%s status=%s", chapter_id, status)
        try:
            status = ChapterStatus(status)
        except ValueError:
            return self._reject("status", "invalid_status", f"Unknown status: {status}", id=chapter_id)
        chapter = self._live(chapter_id)
        if not isinstance(chapter, Chapter):
            reason = "not_found" if chapter is None else "not_chapter"
            return self._reject("status", reason, f"Chapter not found: {chapter_id}", id=chapter_id)
        chapter.status = status
        logger.info("Edit OK: status chapter=%s status=%s", chapter_id, status.value)
        self._notify(NoticeLevel.ACTION, "Changed chapter status", id=chapter_id, status=status.value)
        return OperationResult(True, "Chapter status updated.", {"id": chapter_id, "status": status.value})

    def toggle_volume(self, volume_id: str) -> OperationResult:
        """Flip a live volume's collapsed flag (presentation state only)."""
        volume = self._live(volume_id)
        if not isinstance(volume, Volume):
            reason = "not_found" if volume is None else "not_volume"
            return self._reject("toggle", reason, f"Volume not found: {volume_id}", id=volume_id)
        collapsed = self.novel.collapsed_volume_ids
        if volume_id in collapsed:
            collapsed.discard(volume_id)
        else:
            collapsed.add(volume_id)
        is_collapsed = volume_id in collapsed
        logger.debug("Volume %s collapsed=%s", volume_id, is_collapsed)
        self._notify(NoticeLevel.ACTION, "Toggled volume", id=volume_id, collapsed=is_collapsed)
        return OperationResult(True, "Volume toggled.", {"id": volume_id, "collapsed": is_collapsed})

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_chapter(self, parent_id: Optional[str] = None, title: Optional[str] = None) -> OperationResult:
        """Append a new chapter to a volume (or the root when ``parent_id`` is None)."""
        logger.info("Edit: create_chapter parent=%s", parent_id)
        draft = TreeDraft(self.novel)
        if parent_id is None:
            container = draft.items
        else:
            parent = draft.locate(parent_id)
            if parent is None:
                return self._reject("create_chapter", "not_found", f"Volume not found: {parent_id}", parent_id=parent_id)
            if not isinstance(parent.item, Volume):
                return self._reject("create_chapter", "not_volume", "Chapters can only be created inside volumes.",
                                    parent_id=parent_id)
            container = draft.chapters_of(parent.item)

        chapter = Chapter(
            id=self._new_id(self.settings.chapter_id_prefix),
            title=title if title and title.strip() else self.settings.default_chapter_title,
            last_modified=self._clock(),
        )
        container.append(chapter)

        failure = self._commit("create_chapter", draft, added={chapter.id})
        if failure:
            return failure
        if self.settings.select_created_chapter:
            self._selection.select(chapter.id)
        logger.info("Edit OK: create_chapter id=%s parent=%s", chapter.id, parent_id)
        self._notify(NoticeLevel.SUCCESS, "新章节已创建", id=chapter.id, parent_id=parent_id)
        return OperationResult(True, "Chapter created.", {"id": chapter.id, "parent_id": parent_id})

    def create_volume(self, title: Optional[str] = None) -> OperationResult:
        """Append a new, empty volume to the root sequence."""
        logger.info("Edit: create_volume")
        draft = TreeDraft(self.novel)
        volume = Volume(
            id=self._new_id(self.settings.volume_id_prefix),
            title=title if title and title.strip() else self.settings.default_volume_title,
        )
        draft.items.append(volume)

        failure = self._commit("create_volume", draft, added={volume.id})
        if failure:
            return failure
        logger.info("Edit OK: create_volume id=%s", volume.id)
        self._notify(NoticeLevel.SUCCESS, "新分卷已创建", id=volume.id)
        return OperationResult(True, "Volume created.", {"id": volume.id})

    # -------------------------------------------------------------------------
    # Trash
    # -------------------------------------------------------------------------

    def delete_item(self, item_id: str, item_type: Union[ItemType, str, None] = None) -> OperationResult:
        """Soft-delete a live item; a volume goes to the trash with its chapters.

        ``details["removed_chapter_ids"]`` lists every chapter that left the
        live tree. If it includes the active chapter, the selection is cleared.
        """
        logger.info("Edit: delete item=%s type=%s", item_id, item_type)
        draft = TreeDraft(self.novel)
        source = draft.locate(item_id)
        if source is None:
            return self._reject("delete", "not_found", f"Item not found: {item_id}", id=item_id)
        if item_type is not None:
            try:
                item_type = ItemType(item_type)
            except ValueError:
                return self._reject("delete", "type_mismatch", f"Unknown item type: {item_type}", id=item_id)
            if source.item.type is not item_type:
                return self._reject("delete", "type_mismatch",
                                    f"Item {item_id} is a {source.item.type.value}, not {item_type.value}.",
                                    id=item_id)

        item = source.container.pop(source.index)
        draft.trash.append(to_trash(item, self._clock()))
        removed_chapters = [c.id for c in item.chapters] if isinstance(item, Volume) else [item.id]

        active = self._selection.active_chapter_id
        clears_active = active is not None and active in removed_chapters
        failure = self._commit("delete", draft, active_chapter_id=None if clears_active else active)
        if failure:
            return failure
        if clears_active:
            self._selection.clear()

        logger.info("Edit OK: delete item=%s removed_chapters=%d", item_id, len(removed_chapters))
        message = "分卷已移至回收站" if isinstance(item, Volume) else "章节已移至回收站"
        self._notify(NoticeLevel.INFO, message, id=item_id)
        return OperationResult(True, "Item moved to trash.", {
            "id": item_id,
            "type": item.type.value,
            "removed_chapter_ids": removed_chapters,
            "active_cleared": clears_active,
        })

    def restore_item(self, item_id: str) -> OperationResult:
        """Move a trashed volume or chapter back to the end of the root sequence."""
        logger.info("Edit: restore item=%s", item_id)
        draft = TreeDraft(self.novel)
        entry, failure = self._take_from_trash("restore", draft, item_id)
        if failure:
            return failure
        draft.items.append(entry.item)

        failure = self._commit("restore", draft)
        if failure:
            return failure
        logger.info("Edit OK: restore item=%s", item_id)
        self._notify(NoticeLevel.SUCCESS, _restored_message(entry.item), id=item_id)
        return OperationResult(True, "Item restored.", {"id": item_id, "type": entry.type.value})

    def restore_item_to_location(
        self,
        item_id: str,
        target_id: Optional[str],
        placement: Union[Placement, str],
    ) -> OperationResult:
        """Restore a trashed item to a position in the live tree.

        Placement follows ``move_item``. The target must be a live item; a
        target that is itself in the trash leaves the item where it is.
        """
        logger.info("Edit: restore_to item=%s target=%s placement=%s", item_id, target_id, placement)
        placement = self._placement(placement)
        if placement is None:
            return self._reject("restore_to", "invalid_placement", "Unknown placement.", id=item_id)
        if item_id == target_id:
            return self._reject("restore_to", "self_drop", "Cannot drop an item onto itself.", id=item_id)
        if target_id is not None and is_trashed(self.novel.trash, target_id):
            return self._reject("restore_to", "target_in_trash", "Cannot restore next to a trashed item.",
                                id=item_id, target_id=target_id)

        draft = TreeDraft(self.novel)
        entry, failure = self._take_from_trash("restore_to", draft, item_id)
        if failure:
            return failure

        reason = self._insert(draft, entry.item, target_id, placement)
        if reason:
            return self._reject("restore_to", reason, _PLACEMENT_MESSAGES[reason],
                                id=item_id, target_id=target_id)

        failure = self._commit("restore_to", draft)
        if failure:
            return failure
        logger.info("Edit OK: restore_to item=%s target=%s placement=%s", item_id, target_id, placement.value)
        self._notify(NoticeLevel.SUCCESS, _restored_message(entry.item, moved=True),
                     id=item_id, target_id=target_id, placement=placement.value)
        return OperationResult(True, "Item restored.",
                               {"id": item_id, "target_id": target_id, "placement": placement.value})

    def permanent_delete_item(self, item_id: str) -> OperationResult:
        """Remove an entry from the trash for good. Irreversible."""
        logger.info("Edit: purge item=%s", item_id)
        draft = TreeDraft(self.novel)
        index = draft.trash_index(item_id)
        if index is None:
            return self._reject("purge", "not_found", f"Item not in trash: {item_id}", id=item_id)
        entry = draft.trash.pop(index)
        removed = set(trash_entry_ids(entry))

        failure = self._commit("purge", draft, removed=removed)
        if failure:
            return failure
        self.novel.collapsed_volume_ids -= removed
        logger.info("Edit OK: purge item=%s", item_id)
        self._notify(NoticeLevel.INFO, "已彻底删除", id=item_id)
        return OperationResult(True, "Item permanently deleted.", {"id": item_id, "removed_ids": sorted(removed)})

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _live(self, item_id: str) -> Optional[NovelItem]:
        location = self.find(item_id)
        return location.item if location else None

    @staticmethod
    def _placement(placement) -> Optional[Placement]:
        try:
            return Placement(placement)
        except ValueError:
            return None

    @staticmethod
    def _insert(draft: TreeDraft, item: NovelItem, target_id: Optional[str], placement: Placement) -> Optional[str]:
        """Insert ``item`` into the draft; return a rejection reason or None."""
        if target_id is None:
            if placement is Placement.INSIDE:
                return "inside_requires_volume"
            if placement is Placement.BEFORE:
                draft.items.insert(0, item)
            else:
                draft.items.append(item)
            return None

        target = draft.locate(target_id)
        if target is None:
            return "target_not_found"

        if placement is Placement.INSIDE:
            if not isinstance(target.item, Volume):
                return "inside_requires_volume"
            if isinstance(item, Volume):
                return "volume_into_volume"
            draft.chapters_of(target.item).append(item)
            return None

        if isinstance(item, Volume) and target.parent is not None:
            return "volume_into_volume"
        offset = 0 if placement is Placement.BEFORE else 1
        target.container.insert(target.index + offset, item)
        return None

    def _take_from_trash(self, operation: str, draft: TreeDraft, item_id: str):
        index = draft.trash_index(item_id)
        if index is None:
            return None, self._reject(operation, "not_found", f"Item not in trash: {item_id}", id=item_id)
        if not isinstance(draft.trash[index], TrashItem):
            return None, self._reject(operation, "not_structural",
                                      "Only volumes and chapters can be restored here.", id=item_id)
        return draft.trash.pop(index), None

    def _commit(
        self,
        operation: str,
        draft: TreeDraft,
        active_chapter_id: Any = _UNCHANGED,
        added: frozenset | set = frozenset(),
        removed: frozenset | set = frozenset(),
    ) -> Optional[OperationResult]:
        """Validate the draft and swap it in. Returns a failed result on rejection."""
        if active_chapter_id is _UNCHANGED:
            active_chapter_id = self._selection.active_chapter_id

        violations = draft.violations(active_chapter_id)
        before = set(all_ids(self.novel.items, self.novel.trash))
        expected = (before - set(removed)) | set(added)
        after = set(draft.ids())
        lost = expected - after
        if lost:
            violations.append(f"items lost: {sorted(lost)}")
        extra = after - expected
        if extra:
            violations.append(f"unexpected items: {sorted(extra)}")

        if violations:
            if self.settings.strict_invariants:
                raise InvariantViolationError(violations, operation)
            logger.error("Edit FAIL: %s rejected, invariants violated: %s", operation, "; ".join(violations))
            return rejected("Edit would break the tree structure.", "invariant_violation", violations=violations)

        draft.apply()
        return None

    def _new_id(self, prefix: str) -> str:
        existing = set(all_ids(self.novel.items, self.novel.trash))
        return self._ids.new_id(prefix, taken=existing.__contains__)

    def _reject(self, operation: str, reason: str, message: str, **details) -> OperationResult:
        logger.info("Edit noop: %s reason=%s %s", operation, reason, details)
        return rejected(message, reason, **details)

    def _notify(self, level: NoticeLevel, message: str, **details) -> None:
        self._notifier.notify(Notification(level, message, details, self._clock()))


_PLACEMENT_MESSAGES = {
    "target_not_found": "Drop target not found.",
    "inside_requires_volume": "Items can only be dropped inside a volume.",
    "volume_into_volume": "Volumes cannot be nested inside volumes.",
}


def _restored_message(item: NovelItem, moved: bool = False) -> str:
    noun = "分卷" if isinstance(item, Volume) else "章节"
    return f"{noun}已还原并移动" if moved else f"{noun}已还原"
