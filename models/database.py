"""SQLite persistence for novel structure trees."""

import json
import logging
import shutil
import sqlite3
from pathlib import Path
from typing import Optional, Union

from config.exceptions import DatabaseError, NovelNotFoundError
from models.chapter import Chapter
from models.enums import ChapterStatus, ItemType, TrashKind
from models.novel import Novel, NovelItem, Volume
from models.trash import TrashEntry, TrashItem

logger = logging.getLogger(__name__)

# SQL for creating all tables
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS novels (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    active_chapter_id TEXT,
    created_at INTEGER DEFAULT 0,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS items (
    novel_id TEXT NOT NULL REFERENCES novels(id),
    id TEXT NOT NULL,
    parent_id TEXT,
    position INTEGER NOT NULL,
    type TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    status TEXT,
    payload TEXT,
    last_modified INTEGER DEFAULT 0,
    PRIMARY KEY (novel_id, id)
);

CREATE TABLE IF NOT EXISTS trash_entries (
    novel_id TEXT NOT NULL REFERENCES novels(id),
    id TEXT NOT NULL,
    position INTEGER NOT NULL,
    kind TEXT NOT NULL,
    deleted_at INTEGER NOT NULL,
    data TEXT NOT NULL,
    PRIMARY KEY (novel_id, id)
);

CREATE TABLE IF NOT EXISTS collapsed_volumes (
    novel_id TEXT NOT NULL REFERENCES novels(id),
    volume_id TEXT NOT NULL,
    PRIMARY KEY (novel_id, volume_id)
);
"""

# Indexes added via migration (idempotent)
_MIGRATION_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_items_novel_parent ON items(novel_id, parent_id, position)",
    "CREATE INDEX IF NOT EXISTS idx_trash_novel_position ON trash_entries(novel_id, position)",
]

_STRUCTURAL_KINDS = {ItemType.VOLUME.value, ItemType.CHAPTER.value}


class Database:
    """SQLite database manager for novel structure trees.

    ``save_novel`` rewrites a novel's rows in a single transaction so a
    stored tree is always one that was consistent in memory.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def _init_db(self):
        with self._get_conn() as conn:
            conn.executescript(_CREATE_TABLES_SQL)
        self._migrate()

    def _migrate(self):
        """Apply idempotent schema migrations (indexes)."""
        with self._get_conn() as conn:
            for sql in _MIGRATION_SQL:
                try:
                    conn.execute(sql)
                except sqlite3.OperationalError as e:
                    logger.debug("Migration skipped (already applied): %s", e)

    def backup_database(self, target_path: str | Path) -> Path:
        """Create a backup copy of the database.

        Args:
            target_path: Path for the backup file.

        Returns:
            Path to the backup file.
        """
        target = Path(target_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(str(self.db_path), str(target))
        logger.info("Database backed up to %s", target)
        return target

    # ---- Novel CRUD ----

    def create_novel(self, novel: Novel) -> str:
        """Insert a novel header and its current tree. Returns the novel id."""
        try:
            with self._get_conn() as conn:
                conn.execute(
                    "INSERT INTO novels (id, title, active_chapter_id, created_at) VALUES (?, ?, ?, ?)",
                    (novel.id, novel.title, novel.active_chapter_id, novel.created_at),
                )
                self._write_tree(conn, novel)
        except sqlite3.IntegrityError as e:
            raise DatabaseError(f"Cannot create novel: {e}", {"novel_id": novel.id}) from e
        logger.info("Novel %s created", novel.id)
        return novel.id

    def get_novel(self, novel_id: str) -> Optional[Novel]:
        with self._get_conn() as conn:
            row = conn.execute("SELECT * FROM novels WHERE id = ?", (novel_id,)).fetchone()
            if not row:
                return None
            novel = Novel(
                id=row["id"],
                title=row["title"],
                active_chapter_id=row["active_chapter_id"],
                created_at=row["created_at"] or 0,
            )
            novel.items = self._read_items(conn, novel_id)
            novel.trash = self._read_trash(conn, novel_id)
            novel.collapsed_volume_ids = {
                r["volume_id"]
                for r in conn.execute(
                    "SELECT volume_id FROM collapsed_volumes WHERE novel_id = ?", (novel_id,)
                ).fetchall()
            }
            return novel

    def require_novel(self, novel_id: str) -> Novel:
        """Like ``get_novel`` but raises NovelNotFoundError when missing."""
        novel = self.get_novel(novel_id)
        if novel is None:
            raise NovelNotFoundError(novel_id)
        return novel

    def save_novel(self, novel: Novel):
        """Replace the stored tree, trash and view state of an existing novel."""
        with self._get_conn() as conn:
            cursor = conn.execute(
                "UPDATE novels SET title=?, active_chapter_id=?, "
                "updated_at=CURRENT_TIMESTAMP WHERE id=?",
                (novel.title, novel.active_chapter_id, novel.id),
            )
            if cursor.rowcount == 0:
                raise NovelNotFoundError(novel.id)
            self._clear_tree(conn, novel.id)
            self._write_tree(conn, novel)
        logger.debug("Novel %s saved (%d root items, %d trash)", novel.id, len(novel.items), len(novel.trash))

    def delete_novel(self, novel_id: str):
        """Delete a novel with its items, trash and view state."""
        with self._get_conn() as conn:
            self._clear_tree(conn, novel_id)
            conn.execute("DELETE FROM novels WHERE id = ?", (novel_id,))
        logger.info("Novel %s and all associated data deleted", novel_id)

    def list_novels(self) -> list[Novel]:
        """Return novel headers only (items and trash are not loaded)."""
        with self._get_conn() as conn:
            rows = conn.execute("SELECT * FROM novels ORDER BY created_at, id").fetchall()
            return [
                Novel(
                    id=r["id"], title=r["title"],
                    active_chapter_id=r["active_chapter_id"],
                    created_at=r["created_at"] or 0,
                )
                for r in rows
            ]

    # ---- Tree rows ----

    @staticmethod
    def _clear_tree(conn: sqlite3.Connection, novel_id: str):
        conn.execute("DELETE FROM items WHERE novel_id = ?", (novel_id,))
        conn.execute("DELETE FROM trash_entries WHERE novel_id = ?", (novel_id,))
        conn.execute("DELETE FROM collapsed_volumes WHERE novel_id = ?", (novel_id,))

    def _write_tree(self, conn: sqlite3.Connection, novel: Novel):
        for position, item in enumerate(novel.items):
            self._insert_item(conn, novel.id, item, None, position)
            if isinstance(item, Volume):
                for ch_position, chapter in enumerate(item.chapters):
                    self._insert_item(conn, novel.id, chapter, item.id, ch_position)

        for position, entry in enumerate(novel.trash):
            kind = entry.type.value if isinstance(entry, TrashItem) else entry.kind.value
            conn.execute(
                "INSERT INTO trash_entries (novel_id, id, position, kind, deleted_at, data) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (novel.id, entry.id, position, kind, entry.deleted_at,
                 json.dumps(entry.to_dict(), ensure_ascii=False)),
            )

        for volume_id in sorted(novel.collapsed_volume_ids):
            conn.execute(
                "INSERT INTO collapsed_volumes (novel_id, volume_id) VALUES (?, ?)",
                (novel.id, volume_id),
            )

    @staticmethod
    def _insert_item(conn: sqlite3.Connection, novel_id: str, item: NovelItem,
                     parent_id: Optional[str], position: int):
        if isinstance(item, Chapter):
            status = item.status.value
            payload = json.dumps(item.payload, ensure_ascii=False)
            last_modified = item.last_modified
        else:
            status, payload, last_modified = None, None, 0
        conn.execute(
            "INSERT INTO items (novel_id, id, parent_id, position, type, title, status, "
            "payload, last_modified) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (novel_id, item.id, parent_id, position, item.type.value, item.title,
             status, payload, last_modified),
        )

    def _read_items(self, conn: sqlite3.Connection, novel_id: str) -> list[NovelItem]:
        rows = conn.execute(
            "SELECT * FROM items WHERE novel_id = ? ORDER BY position", (novel_id,)
        ).fetchall()
        roots = [r for r in rows if r["parent_id"] is None]
        children: dict[str, list[Chapter]] = {}
        for r in rows:
            if r["parent_id"] is not None:
                children.setdefault(r["parent_id"], []).append(self._row_to_chapter(r))

        items: list[NovelItem] = []
        for r in roots:
            if r["type"] == ItemType.VOLUME.value:
                items.append(Volume(id=r["id"], title=r["title"], chapters=children.get(r["id"], [])))
            else:
                items.append(self._row_to_chapter(r))
        return items

    @staticmethod
    def _row_to_chapter(row) -> Chapter:
        return Chapter(
            id=row["id"],
            title=row["title"],
            status=ChapterStatus(row["status"] or ChapterStatus.DRAFT.value),
            payload=json.loads(row["payload"]) if row["payload"] else {},
            last_modified=row["last_modified"] or 0,
        )

    @staticmethod
    def _read_trash(conn: sqlite3.Connection, novel_id: str) -> list[Union[TrashItem, TrashEntry]]:
        rows = conn.execute(
            "SELECT * FROM trash_entries WHERE novel_id = ? ORDER BY position", (novel_id,)
        ).fetchall()
        trash: list[Union[TrashItem, TrashEntry]] = []
        for r in rows:
            data = json.loads(r["data"])
            if r["kind"] in _STRUCTURAL_KINDS:
                trash.append(TrashItem.from_dict(data))
            elif r["kind"] in {k.value for k in TrashKind}:
                trash.append(TrashEntry.from_dict(data))
            else:
                logger.warning("Skipping trash entry %s with unknown kind %s", r["id"], r["kind"])
        return trash
