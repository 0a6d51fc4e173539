"""Shared pytest fixtures for the novel-tree test suite."""

import pytest


# ---------------------------------------------------------------------------
# Settings / database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    """Return a Settings instance with all paths pointing to tmp_path."""
    from config.settings import Settings
    return Settings(
        _env_file=None,
        sqlite_db_path=tmp_path / "novels.db",
        log_dir=tmp_path / "logs",
        strict_invariants=True,
    )


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite database path."""
    return tmp_path / "test_novels.db"


@pytest.fixture
def db(tmp_db_path):
    """Return an initialized Database instance backed by a temp file."""
    from models.database import Database
    return Database(tmp_db_path)


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------

class FakeClock:
    """Millisecond clock that advances by one on every read."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


class RecordingNotifier:
    def __init__(self):
        self.notifications = []

    def notify(self, notification):
        self.notifications.append(notification)

    @property
    def messages(self):
        return [n.message for n in self.notifications]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_novel():
    """Two volumes and a root chapter; c1 is the active chapter.

    vol-a: [c1, c2]
    vol-b: [c3]
    c4 (root)
    """
    from models.chapter import Chapter
    from models.enums import ChapterStatus
    from models.novel import Novel, Volume

    c1 = Chapter(id="c1", title="第一章", status=ChapterStatus.DONE,
                 payload={"sections": [{"id": "s1", "content": "开篇"}], "outline": "相遇"},
                 last_modified=100)
    c2 = Chapter(id="c2", title="第二章", status=ChapterStatus.REVIEW,
                 payload={"sections": [{"id": "s2", "content": "冲突"}], "outline": "争执"},
                 last_modified=200)
    c3 = Chapter(id="c3", title="第三章", payload={"outline": "转折"})
    c4 = Chapter(id="c4", title="尾声")
    return Novel(
        id="novel-1",
        title="测试小说",
        items=[
            Volume(id="vol-a", title="第一卷", chapters=[c1, c2]),
            Volume(id="vol-b", title="第二卷", chapters=[c3]),
            c4,
        ],
        active_chapter_id="c1",
        created_at=1_690_000_000_000,
    )


@pytest.fixture
def structure(sample_novel, notifier, settings, clock):
    """NovelStructure over the sample novel, in strict invariant mode."""
    from structure.engine import NovelStructure
    return NovelStructure(sample_novel, notifier=notifier, settings=settings, clock=clock)


def tree_layout(novel):
    """Compact view of the live tree: volumes as (id, [chapter ids]), chapters as ids."""
    from models.novel import Volume
    return [
        (item.id, [c.id for c in item.chapters]) if isinstance(item, Volume) else item.id
        for item in novel.items
    ]


@pytest.fixture
def layout():
    return tree_layout
