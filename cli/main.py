"""CLI entry point — novel-tree 卷章结构管理。

用法：
  novel-tree init "我的小说"                 创建小说
  novel-tree show NOVEL_ID                   查看卷章结构
  novel-tree move NOVEL_ID ITEM --after X    移动章节/分卷
  novel-tree delete NOVEL_ID ITEM            移至回收站
  novel-tree restore NOVEL_ID ITEM           从回收站还原
  novel-tree --help                          查看所有命令
"""

import logging
import os
import sys
from pathlib import Path
from typing import Callable, Optional

# Ensure UTF-8 output on Windows to avoid GBK encoding errors with Rich
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

import click
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from cli.theme import (
    ConsoleNotifier,
    app_header,
    get_console,
    novel_tree,
    success_panel,
    trash_table,
)
from config.exceptions import DatabaseError, InvalidConfigError, NovelNotFoundError
from config.logging_config import setup_logging
from config.settings import Settings, load_settings
from models.database import Database
from models.enums import ChapterStatus, Placement
from models.novel import Novel
from structure.engine import NovelStructure, OperationResult
from structure.trash import structure_items
from tools.ids import IdGenerator, now_ms

console = get_console()
logger = logging.getLogger(__name__)


def _init_logging(settings: Settings, verbose: bool):
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    setup_logging(level=level, log_dir=settings.log_dir, console_enabled=verbose)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--db", "db_path", default=None, type=click.Path(path_type=Path), help="数据库路径（默认读取配置）")
@click.pass_context
def cli(ctx, verbose, db_path):
    """novel-tree — 小说卷章结构与回收站管理

    \b
    章节与分卷可以排序、跨卷移动、删除到回收站并还原到任意位置：
      novel-tree add-volume 1a2b
      novel-tree move 1a2b chap-1 --inside vol-2
      novel-tree restore 1a2b chap-3 --before chap-5
    """
    try:
        settings = load_settings()
    except InvalidConfigError as e:
        console.print(f"[error]配置无效：{escape(str(e))}[/]")
        sys.exit(1)
    _init_logging(settings, verbose)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["db"] = Database(db_path or settings.sqlite_db_path)


def _run(ctx, novel_id: str, operation: Callable[[NovelStructure], OperationResult]) -> OperationResult:
    """Load a novel, apply one structural command, save it when it succeeded."""
    db: Database = ctx.obj["db"]
    try:
        novel = db.require_novel(novel_id)
    except NovelNotFoundError:
        console.print(f"[error]未找到ID为 {escape(novel_id)} 的小说[/]")
        sys.exit(1)

    structure = NovelStructure(novel, notifier=ConsoleNotifier(console), settings=ctx.obj["settings"])
    result = operation(structure)
    if not result.success:
        console.print(f"[error]操作未执行：{escape(result.message)}[/] [muted]({result.reason})[/]")
        sys.exit(1)

    try:
        db.save_novel(novel)
    except DatabaseError as e:
        console.print(f"[error]保存失败：{escape(str(e))}[/]")
        logger.exception("Failed to save novel %s", novel_id)
        sys.exit(1)
    return result


def _resolve_position(
    before: Optional[str],
    after: Optional[str],
    inside: Optional[str],
    start: bool,
    end: bool,
) -> Optional[tuple[Optional[str], Placement]]:
    """Turn mutually exclusive position options into (target, placement)."""
    chosen = [
        (target, placement)
        for target, placement in (
            (before, Placement.BEFORE),
            (after, Placement.AFTER),
            (inside, Placement.INSIDE),
        )
        if target
    ]
    if start:
        chosen.append((None, Placement.BEFORE))
    if end:
        chosen.append((None, Placement.AFTER))
    if len(chosen) > 1:
        raise click.UsageError("--before/--after/--inside/--start/--end 只能选择一个")
    return chosen[0] if chosen else None


def _position_options(func):
    func = click.option("--end", is_flag=True, help="放到根目录末尾")(func)
    func = click.option("--start", is_flag=True, help="放到根目录开头")(func)
    func = click.option("--inside", default=None, help="放入该分卷末尾")(func)
    func = click.option("--after", default=None, help="放到该项目之后")(func)
    func = click.option("--before", default=None, help="放到该项目之前")(func)
    return func


# ---------------------------------------------------------------------------
# Novel commands
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("title")
@click.pass_context
def init(ctx, title):
    """创建一部空白小说。"""
    db: Database = ctx.obj["db"]
    novel = Novel(id=IdGenerator().new_id("novel"), title=title, created_at=now_ms())
    db.create_novel(novel)
    console.print(success_panel("小说已创建", f"  [stat.label]标题:[/] [stat.value]{escape(title)}[/]\n"
                                            f"  [stat.label]ID:[/] [stat.value]{escape(novel.id)}[/]"))


@cli.command(name="list")
@click.pass_context
def list_novels(ctx):
    """列出所有小说。"""
    db: Database = ctx.obj["db"]
    novels = db.list_novels()
    if not novels:
        console.print("[muted]暂无小说，使用 novel-tree init 创建[/]")
        return
    table = Table(show_header=True)
    table.add_column("ID", style="muted")
    table.add_column("标题")
    for novel in novels:
        table.add_row(Text(novel.id), Text(novel.title))
    console.print(table)


@cli.command()
@click.argument("novel_id")
@click.pass_context
def show(ctx, novel_id):
    """显示卷章结构与回收站概况。"""
    db: Database = ctx.obj["db"]
    novel = db.get_novel(novel_id)
    if novel is None:
        console.print(f"[error]未找到ID为 {escape(novel_id)} 的小说[/]")
        sys.exit(1)
    console.print(app_header(novel.title))
    console.print(novel_tree(novel))
    trashed = structure_items(novel.trash)
    if trashed:
        console.print(f"[muted]回收站中有 {len(trashed)} 个项目，使用 novel-tree trash {escape(novel_id)} 查看[/]")


# ---------------------------------------------------------------------------
# Structure commands
# ---------------------------------------------------------------------------

@cli.command(name="add-volume")
@click.argument("novel_id")
@click.option("--title", "-t", default=None, help="分卷标题")
@click.pass_context
def add_volume(ctx, novel_id, title):
    """在根目录末尾新建分卷。"""
    result = _run(ctx, novel_id, lambda s: s.create_volume(title))
    console.print(f"[muted]ID: {escape(result.details['id'])}[/]")


@cli.command(name="add-chapter")
@click.argument("novel_id")
@click.option("--volume", "volume_id", default=None, help="所属分卷ID（默认根目录）")
@click.option("--title", "-t", default=None, help="章节标题")
@click.pass_context
def add_chapter(ctx, novel_id, volume_id, title):
    """新建章节（追加到分卷或根目录末尾）。"""
    result = _run(ctx, novel_id, lambda s: s.create_chapter(volume_id, title))
    console.print(f"[muted]ID: {escape(result.details['id'])}[/]")


@cli.command()
@click.argument("novel_id")
@click.argument("item_id")
@_position_options
@click.pass_context
def move(ctx, novel_id, item_id, before, after, inside, start, end):
    """移动章节或分卷。"""
    position = _resolve_position(before, after, inside, start, end)
    if position is None:
        raise click.UsageError("请指定 --before/--after/--inside/--start/--end 之一")
    target_id, placement = position
    _run(ctx, novel_id, lambda s: s.move_item(item_id, target_id, placement))
    console.print("[success]✓ 已移动[/]")


@cli.command()
@click.argument("novel_id")
@click.argument("item_id")
@click.argument("title")
@click.pass_context
def rename(ctx, novel_id, item_id, title):
    """重命名章节或分卷。"""
    _run(ctx, novel_id, lambda s: s.rename_item(item_id, title))
    console.print("[success]✓ 已重命名[/]")


@cli.command()
@click.argument("novel_id")
@click.argument("chapter_id")
@click.argument("status", type=click.Choice([s.value for s in ChapterStatus], case_sensitive=False))
@click.pass_context
def status(ctx, novel_id, chapter_id, status):
    """设置章节状态（DRAFT / REVIEW / DONE）。"""
    _run(ctx, novel_id, lambda s: s.update_chapter_status(chapter_id, status.upper()))
    console.print("[success]✓ 状态已更新[/]")


@cli.command()
@click.argument("novel_id")
@click.argument("volume_id")
@click.pass_context
def toggle(ctx, novel_id, volume_id):
    """折叠/展开分卷。"""
    result = _run(ctx, novel_id, lambda s: s.toggle_volume(volume_id))
    console.print("[muted]已折叠[/]" if result.details["collapsed"] else "[muted]已展开[/]")


# ---------------------------------------------------------------------------
# Trash commands
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("novel_id")
@click.argument("item_id")
@click.pass_context
def delete(ctx, novel_id, item_id):
    """将章节或分卷移至回收站。"""
    result = _run(ctx, novel_id, lambda s: s.delete_item(item_id))
    if result.details.get("active_cleared"):
        console.print("[warning]当前章节已被删除，已取消选中[/]")


@cli.command()
@click.argument("novel_id")
@click.pass_context
def trash(ctx, novel_id):
    """查看回收站。"""
    db: Database = ctx.obj["db"]
    novel = db.get_novel(novel_id)
    if novel is None:
        console.print(f"[error]未找到ID为 {escape(novel_id)} 的小说[/]")
        sys.exit(1)
    if not structure_items(novel.trash):
        console.print("[muted]回收站为空[/]")
        return
    console.print(trash_table(novel))


@cli.command()
@click.argument("novel_id")
@click.argument("item_id")
@_position_options
@click.pass_context
def restore(ctx, novel_id, item_id, before, after, inside, start, end):
    """从回收站还原（默认放到根目录末尾）。"""
    position = _resolve_position(before, after, inside, start, end)
    if position is None:
        _run(ctx, novel_id, lambda s: s.restore_item(item_id))
    else:
        target_id, placement = position
        _run(ctx, novel_id, lambda s: s.restore_item_to_location(item_id, target_id, placement))


@cli.command()
@click.argument("novel_id")
@click.argument("item_id")
@click.option("--yes", "-y", is_flag=True, help="跳过确认")
@click.pass_context
def purge(ctx, novel_id, item_id, yes):
    """彻底删除回收站中的项目（不可恢复）。"""
    if not yes:
        click.confirm("确定要彻底删除此项目吗？无法恢复。", abort=True)
    _run(ctx, novel_id, lambda s: s.permanent_delete_item(item_id))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
