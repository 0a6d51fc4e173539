"""Tree model helpers: lookup, traversal, drafts and invariant checks.

The novel tree has exactly two levels. Root items are volumes or chapters;
volumes hold chapters only. Every edit is built on a ``TreeDraft`` (copies
of the sequences it touches) and only applied to the novel once the draft
passes ``tree_violations``.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Union

from config.exceptions import InvariantViolationError
from models.chapter import Chapter
from models.novel import Novel, NovelItem, Volume
from models.trash import TrashEntry, TrashItem

logger = logging.getLogger(__name__)

TrashList = list[Union[TrashItem, TrashEntry]]
ChaptersOf = Callable[[Volume], list[Chapter]]


def _own_chapters(volume: Volume) -> list[Chapter]:
    return volume.chapters


@dataclass
class ItemLocation:
    """Where an item currently lives: a sequence, an index, and the owning volume."""
    container: list
    index: int
    parent: Optional[Volume] = None

    @property
    def item(self) -> NovelItem:
        return self.container[self.index]


def locate(items: list[NovelItem], item_id: str,
           chapters_of: ChaptersOf = _own_chapters) -> Optional[ItemLocation]:
    """Find a live item at the root or nested in a volume."""
    for index, item in enumerate(items):
        if item.id == item_id:
            return ItemLocation(items, index, None)
    for item in items:
        if isinstance(item, Volume):
            chapters = chapters_of(item)
            for index, chapter in enumerate(chapters):
                if chapter.id == item_id:
                    return ItemLocation(chapters, index, item)
    return None


def walk(items: list[NovelItem],
         chapters_of: ChaptersOf = _own_chapters) -> Iterator[tuple[NovelItem, Optional[Volume], int]]:
    """Yield ``(item, parent_volume, depth)`` in document order."""
    for item in items:
        yield item, None, 1
        if isinstance(item, Volume):
            for chapter in chapters_of(item):
                yield chapter, item, 2


def subtree_ids(item: NovelItem) -> list[str]:
    """The item's id followed by its nested chapter ids, if any."""
    if isinstance(item, Volume):
        return [item.id] + [c.id for c in item.chapters]
    return [item.id]


def trash_entry_ids(entry: Union[TrashItem, TrashEntry]) -> list[str]:
    if isinstance(entry, TrashItem):
        return subtree_ids(entry.item)
    return [entry.id]


def all_ids(items: list[NovelItem], trash: TrashList,
            chapters_of: ChaptersOf = _own_chapters) -> list[str]:
    """Every id in the live tree and the trash, duplicates included."""
    ids = [item.id for item, _, _ in walk(items, chapters_of)]
    for entry in trash:
        ids.extend(trash_entry_ids(entry))
    return ids


def live_chapter_ids(items: list[NovelItem], chapters_of: ChaptersOf = _own_chapters) -> set[str]:
    return {item.id for item, _, _ in walk(items, chapters_of) if isinstance(item, Chapter)}


def tree_violations(
    items: list[NovelItem],
    trash: TrashList,
    active_chapter_id: Optional[str] = None,
    chapters_of: ChaptersOf = _own_chapters,
) -> list[str]:
    """Return a description of every broken invariant (empty when well formed)."""
    violations: list[str] = []

    for item in items:
        if isinstance(item, Volume):
            violations.extend(_nesting_violations(item, chapters_of(item), "volume"))
        elif not isinstance(item, Chapter):
            violations.append(f"unknown root item {item!r}")

    for entry in trash:
        if isinstance(entry, TrashItem):
            if isinstance(entry.item, Volume):
                violations.extend(_nesting_violations(entry.item, entry.item.chapters, "trashed volume"))
            elif not isinstance(entry.item, Chapter):
                violations.append(f"unknown trashed item {entry.item!r}")
        elif not isinstance(entry, TrashEntry):
            violations.append(f"unknown trash entry {entry!r}")

    counts = Counter(all_ids(items, trash, chapters_of))
    for item_id, count in counts.items():
        if count > 1:
            violations.append(f"id {item_id} appears {count} times")

    if active_chapter_id and active_chapter_id not in live_chapter_ids(items, chapters_of):
        violations.append(f"active chapter {active_chapter_id} is not a live chapter")

    return violations


def _nesting_violations(volume: Volume, chapters: list, label: str) -> list[str]:
    return [
        f"{label} {volume.id} contains non-chapter {getattr(child, 'id', child)!r}"
        for child in chapters
        if not isinstance(child, Chapter)
    ]


def check_invariants(novel: Novel) -> None:
    """Raise InvariantViolationError if the novel's tree is malformed."""
    violations = tree_violations(novel.items, novel.trash, novel.active_chapter_id)
    if violations:
        raise InvariantViolationError(violations)


class TreeDraft:
    """Working copy of a novel's sequences.

    The root list and trash list are copied up front; a volume's chapter
    list is copied the first time the draft touches it. Item objects are
    shared with the novel, so an applied draft keeps unchanged items
    identical.
    """

    def __init__(self, novel: Novel):
        self._novel = novel
        self.items: list[NovelItem] = list(novel.items)
        self.trash: TrashList = list(novel.trash)
        self._chapters: dict[str, list[Chapter]] = {}

    def chapters_of(self, volume: Volume) -> list[Chapter]:
        if volume.id not in self._chapters:
            self._chapters[volume.id] = list(volume.chapters)
        return self._chapters[volume.id]

    def locate(self, item_id: str) -> Optional[ItemLocation]:
        return locate(self.items, item_id, self.chapters_of)

    def trash_index(self, item_id: str) -> Optional[int]:
        for index, entry in enumerate(self.trash):
            if entry.id == item_id:
                return index
        return None

    def violations(self, active_chapter_id: Optional[str]) -> list[str]:
        return tree_violations(self.items, self.trash, active_chapter_id, self.chapters_of)

    def ids(self) -> list[str]:
        return all_ids(self.items, self.trash, self.chapters_of)

    def apply(self) -> None:
        """Swap the draft sequences into the novel."""
        for item in self.items:
            if isinstance(item, Volume) and item.id in self._chapters:
                item.chapters = self._chapters[item.id]
        self._novel.items = self.items
        self._novel.trash = self.trash
