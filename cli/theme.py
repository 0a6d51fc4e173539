"""Unified Rich theme and reusable UI helper functions for the CLI."""

from datetime import datetime

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text
from rich.theme import Theme
from rich.tree import Tree

from models.chapter import Chapter
from models.enums import ChapterStatus
from models.novel import Novel, Volume
from structure.callbacks import NoticeLevel, Notification
from structure.trash import structure_items

NOVEL_THEME = Theme({
    "app.title": "bold",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "blue",
    "muted": "dim",
    "accent": "cyan",
    "volume": "bold cyan",
    "stat.label": "dim",
    "stat.value": "bold",
    "status.draft": "dim",
    "status.review": "yellow",
    "status.done": "green",
})

_STATUS_LABELS = {
    ChapterStatus.DRAFT: ("草稿", "status.draft"),
    ChapterStatus.REVIEW: ("审阅", "status.review"),
    ChapterStatus.DONE: ("完成", "status.done"),
}

_NOTICE_STYLES = {
    NoticeLevel.SUCCESS: ("✓", "success"),
    NoticeLevel.INFO: ("•", "info"),
    NoticeLevel.WARNING: ("!", "warning"),
    NoticeLevel.ERROR: ("✗", "error"),
}


def get_console() -> Console:
    """Return a Console instance with the novel theme applied."""
    return Console(theme=NOVEL_THEME)


def app_header(title: str = "novel-tree") -> Rule:
    """Return a Rule element for the application header banner."""
    return Rule(title=f"[bold]{escape(title)}[/]", style="dim")


def success_panel(title: str, body: str) -> Panel:
    """Return a green-bordered Panel for success results."""
    return Panel(body, title=f"[success]{title}[/]", box=box.ROUNDED, border_style="green", padding=(0, 2))


def chapter_label(chapter: Chapter, active_chapter_id: str | None = None) -> str:
    status_text, status_style = _STATUS_LABELS[chapter.status]
    marker = "[accent]●[/] " if chapter.id == active_chapter_id else ""
    return f"{marker}{escape(chapter.title)} [{status_style}]{status_text}[/] [muted]{escape(chapter.id)}[/]"


def novel_tree(novel: Novel) -> Tree:
    """Build a Rich Tree of the live volume/chapter structure.

    Collapsed volumes show a chapter count instead of their chapters.
    """
    tree = Tree(f"[bold]{escape(novel.title)}[/] [muted](ID: {escape(novel.id)})[/]")
    for item in novel.items:
        if isinstance(item, Volume):
            collapsed = item.id in novel.collapsed_volume_ids
            arrow = "▸" if collapsed else "▾"
            branch = tree.add(f"[volume]{arrow} {escape(item.title)}[/] [muted]{escape(item.id)}[/]")
            if collapsed:
                if item.chapters:
                    branch.add(f"[muted]... (共{len(item.chapters)}章)[/]")
                continue
            for chapter in item.chapters:
                branch.add(chapter_label(chapter, novel.active_chapter_id))
            if not item.chapters:
                branch.add("[muted](空)[/]")
        else:
            tree.add(chapter_label(item, novel.active_chapter_id))
    if not novel.items:
        tree.add("[muted](暂无章节)[/]")
    return tree


def trash_table(novel: Novel) -> Table:
    """Build a Rich Table of trashed volumes and chapters, oldest first."""
    table = Table(box=box.ROUNDED, border_style="dim", show_header=True, padding=(0, 1))
    table.add_column("类型", style="muted")
    table.add_column("标题")
    table.add_column("ID", style="muted")
    table.add_column("删除时间", style="muted")

    for entry in structure_items(novel.trash):
        if isinstance(entry.item, Volume):
            kind = f"分卷 ({len(entry.item.chapters)}章)"
        else:
            kind = "章节"
        deleted = datetime.fromtimestamp(entry.deleted_at / 1000).strftime("%m-%d %H:%M")
        table.add_row(kind, Text(entry.title), Text(entry.id), deleted)

    return table


class ConsoleNotifier:
    """Notifier that prints user-facing notifications to a Rich console.

    ACTION notices are audit entries and are left to the log.
    """

    def __init__(self, console: Console | None = None):
        self._console = console or get_console()

    def notify(self, notification: Notification) -> None:
        style = _NOTICE_STYLES.get(notification.level)
        if style is None:
            return
        icon, color = style
        self._console.print(f"[{color}]{icon} {escape(notification.message)}[/]")
