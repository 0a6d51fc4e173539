"""Context menu and inline-rename state for the structure sidebar."""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from models.enums import ChapterStatus
from models.novel import Volume
from structure.engine import NovelStructure, OperationResult, rejected

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextMenu:
    x: int
    y: int
    item_id: Optional[str] = None

    @property
    def is_background(self) -> bool:
        return self.item_id is None


class ContextMenuController:
    """Dispatches menu commands to ``NovelStructure``.

    At most one menu is open. Any background click closes it, and every
    action closes it once dispatched, whether or not the edit succeeded.
    """

    def __init__(self, structure: NovelStructure):
        self._structure = structure
        self.menu: Optional[ContextMenu] = None
        self.editing_item_id: Optional[str] = None
        self.edit_title: str = ""

    @property
    def is_open(self) -> bool:
        return self.menu is not None

    # ---- Open / close ----

    def open_for_item(self, x: int, y: int, item_id: str) -> ContextMenu:
        self.menu = ContextMenu(x, y, item_id)
        return self.menu

    def open_for_background(self, x: int, y: int) -> ContextMenu:
        self.menu = ContextMenu(x, y, None)
        return self.menu

    def close(self) -> None:
        self.menu = None

    def background_click(self) -> None:
        self.close()

    # ---- Inline rename ----

    def start_editing(self, item_id: Optional[str] = None) -> bool:
        """Begin renaming ``item_id`` (or the menu's item) with its current title."""
        item_id = item_id or (self.menu.item_id if self.menu else None)
        self.close()
        item = self._structure.get_item(item_id) if item_id else None
        if item is None:
            return False
        self.editing_item_id = item.id
        self.edit_title = item.title
        return True

    def set_edit_title(self, text: str) -> None:
        self.edit_title = text

    def save_editing(self) -> Optional[OperationResult]:
        """Commit the inline edit. Blank input just ends editing."""
        item_id, title = self.editing_item_id, self.edit_title
        self.cancel_editing()
        if item_id is None or not title.strip():
            return None
        return self._structure.rename_item(item_id, title)

    def cancel_editing(self) -> None:
        self.editing_item_id = None
        self.edit_title = ""

    # ---- Menu actions ----

    def create_chapter(self, title: Optional[str] = None) -> OperationResult:
        """New chapter in the menu's volume, beside the menu's chapter, or at the root."""
        menu = self.menu
        self.close()
        parent_id = None
        if menu and menu.item_id:
            location = self._structure.find(menu.item_id)
            if location is not None:
                if isinstance(location.item, Volume):
                    parent_id = location.item.id
                elif location.parent is not None:
                    parent_id = location.parent.id
        return self._structure.create_chapter(parent_id, title)

    def create_volume(self, title: Optional[str] = None) -> OperationResult:
        self.close()
        return self._structure.create_volume(title)

    def rename(self, new_title: str) -> OperationResult:
        item_id = self._take_item_id()
        if item_id is None:
            return rejected("No item selected.", "no_item")
        return self._structure.rename_item(item_id, new_title)

    def set_status(self, status: Union[ChapterStatus, str]) -> OperationResult:
        item_id = self._take_item_id()
        if item_id is None:
            return rejected("No item selected.", "no_item")
        return self._structure.update_chapter_status(item_id, status)

    def delete(self) -> OperationResult:
        item_id = self._take_item_id()
        if item_id is None:
            return rejected("No item selected.", "no_item")
        result = self._structure.delete_item(item_id)
        if result.success and self.editing_item_id == item_id:
            self.cancel_editing()
        return result

    def toggle_collapsed(self) -> OperationResult:
        item_id = self._take_item_id()
        if item_id is None:
            return rejected("No item selected.", "no_item")
        return self._structure.toggle_volume(item_id)

    def _take_item_id(self) -> Optional[str]:
        menu = self.menu
        self.close()
        if menu is None or menu.is_background:
            logger.debug("Item action without an item menu ignored")
            return None
        return menu.item_id
