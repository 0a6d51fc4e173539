"""Tests for the structure mutation engine."""

import random

import pytest

from config.exceptions import InvariantViolationError
from models.chapter import Chapter
from models.enums import ChapterStatus, ItemType, Placement
from models.novel import Novel, Volume
from models.trash import TrashItem
from structure.callbacks import NoticeLevel
from structure.engine import NovelStructure
from structure.tree import check_invariants


def _snapshot(novel):
    return (
        [item.to_dict() for item in novel.items],
        [entry.to_dict() for entry in novel.trash],
        novel.active_chapter_id,
        set(novel.collapsed_volume_ids),
    )


class TestMoveItem:
    def test_chapter_moves_into_other_volume_next_to_sibling(self, structure, sample_novel, layout):
        result = structure.move_item("c1", "c3", Placement.AFTER)
        assert result.success
        assert layout(sample_novel) == [("vol-a", ["c2"]), ("vol-b", ["c3", "c1"]), "c4"]

    def test_before_sibling_in_other_volume(self, structure, sample_novel, layout):
        structure.move_item("c2", "c3", Placement.BEFORE)
        assert layout(sample_novel) == [("vol-a", ["c1"]), ("vol-b", ["c2", "c3"]), "c4"]

    def test_nested_chapter_moves_to_root_next_to_root_chapter(self, structure, sample_novel, layout):
        structure.move_item("c2", "c4", Placement.AFTER)
        assert layout(sample_novel) == [("vol-a", ["c1"]), ("vol-b", ["c3"]), "c4", "c2"]

    def test_root_chapter_moves_into_volume(self, structure, sample_novel, layout):
        structure.move_item("c4", "c1", Placement.BEFORE)
        assert layout(sample_novel) == [("vol-a", ["c4", "c1", "c2"]), ("vol-b", ["c3"])]

    def test_reorder_within_volume(self, structure, sample_novel, layout):
        structure.move_item("c1", "c2", Placement.AFTER)
        assert layout(sample_novel)[0] == ("vol-a", ["c2", "c1"])

    def test_volume_reorder_at_root(self, structure, sample_novel, layout):
        structure.move_item("vol-b", "vol-a", Placement.BEFORE)
        assert layout(sample_novel) == [("vol-b", ["c3"]), ("vol-a", ["c1", "c2"]), "c4"]

    def test_volume_moves_with_its_chapters(self, structure, sample_novel, layout):
        structure.move_item("vol-a", "c4", Placement.AFTER)
        assert layout(sample_novel) == [("vol-b", ["c3"]), "c4", ("vol-a", ["c1", "c2"])]

    def test_null_target_after_appends_to_root(self, structure, sample_novel, layout):
        result = structure.move_item("c3", None, Placement.AFTER)
        assert result.success
        assert layout(sample_novel) == [("vol-a", ["c1", "c2"]), ("vol-b", []), "c4", "c3"]

    def test_null_target_before_prepends_to_root(self, structure, sample_novel, layout):
        structure.move_item("c4", None, Placement.BEFORE)
        assert layout(sample_novel)[0] == "c4"

    def test_inside_appends_to_volume(self, structure, sample_novel, layout):
        structure.move_item("c1", "vol-b", Placement.INSIDE)
        assert layout(sample_novel) == [("vol-a", ["c2"]), ("vol-b", ["c3", "c1"]), "c4"]

    def test_inside_empty_volume(self, structure, sample_novel, layout):
        structure.move_item("c3", "c4", Placement.AFTER)
        structure.move_item("c2", "vol-b", Placement.INSIDE)
        assert layout(sample_novel) == [("vol-a", ["c1"]), ("vol-b", ["c2"]), "c4", "c3"]

    def test_string_placement_accepted(self, structure, sample_novel, layout):
        assert structure.move_item("c4", "vol-a", "BEFORE").success
        assert layout(sample_novel)[0] == "c4"

    def test_other_siblings_keep_relative_order(self, structure, sample_novel):
        structure.move_item("vol-a", "c4", Placement.AFTER)
        others = [i.id for i in sample_novel.items if i.id != "vol-a"]
        assert others == ["vol-b", "c4"]

    def test_payload_carried_verbatim(self, structure, sample_novel):
        c1 = sample_novel.items[0].chapters[0]
        before = c1.to_dict()
        structure.move_item("c1", None, Placement.AFTER)
        moved = sample_novel.items[-1]
        assert moved is c1
        assert moved.to_dict() == before

    def test_emits_action_notification(self, structure, notifier):
        structure.move_item("c4", "vol-a", Placement.BEFORE)
        assert notifier.notifications[-1].level is NoticeLevel.ACTION
        assert notifier.notifications[-1].details["dragged_id"] == "c4"


class TestMoveItemRejections:
    def test_self_drop_leaves_tree_unchanged(self, structure, sample_novel, notifier):
        before = _snapshot(sample_novel)
        result = structure.move_item("c1", "c1", Placement.AFTER)
        assert not result.success
        assert result.reason == "self_drop"
        assert _snapshot(sample_novel) == before
        assert notifier.notifications == []

    def test_volume_next_to_nested_chapter_rejected(self, structure, sample_novel):
        before = _snapshot(sample_novel)
        result = structure.move_item("vol-b", "c1", Placement.AFTER)
        assert result.reason == "volume_into_volume"
        assert _snapshot(sample_novel) == before

    def test_volume_inside_volume_rejected(self, structure, sample_novel):
        before = _snapshot(sample_novel)
        result = structure.move_item("vol-b", "vol-a", Placement.INSIDE)
        assert result.reason == "volume_into_volume"
        assert _snapshot(sample_novel) == before

    def test_volume_onto_own_chapter_rejected(self, structure, sample_novel):
        before = _snapshot(sample_novel)
        result = structure.move_item("vol-a", "c1", Placement.BEFORE)
        assert not result.success
        assert _snapshot(sample_novel) == before

    def test_inside_chapter_rejected(self, structure, sample_novel):
        before = _snapshot(sample_novel)
        result = structure.move_item("c1", "c4", Placement.INSIDE)
        assert result.reason == "inside_requires_volume"
        assert _snapshot(sample_novel) == before

    def test_inside_without_target_rejected(self, structure, sample_novel):
        before = _snapshot(sample_novel)
        result = structure.move_item("c1", None, Placement.INSIDE)
        assert result.reason == "inside_requires_volume"
        assert _snapshot(sample_novel) == before

    def test_unknown_dragged_id(self, structure):
        assert structure.move_item("nope", "c1", Placement.AFTER).reason == "not_found"

    def test_unknown_target_keeps_item_in_place(self, structure, sample_novel):
        before = _snapshot(sample_novel)
        result = structure.move_item("c1", "nope", Placement.AFTER)
        assert result.reason == "target_not_found"
        assert _snapshot(sample_novel) == before

    def test_trashed_item_cannot_be_moved(self, structure):
        structure.delete_item("c4")
        assert structure.move_item("c4", None, Placement.AFTER).reason == "not_found"

    def test_trashed_target_rejected(self, structure, sample_novel):
        structure.delete_item("c4")
        before = _snapshot(sample_novel)
        assert structure.move_item("c1", "c4", Placement.AFTER).reason == "target_not_found"
        assert _snapshot(sample_novel) == before

    def test_invalid_placement(self, structure):
        assert structure.move_item("c1", "c2", "SIDEWAYS").reason == "invalid_placement"


class TestRenameAndStatus:
    def test_rename_chapter(self, structure, sample_novel):
        result = structure.rename_item("c2", "新的第二章")
        assert result.success
        assert sample_novel.items[0].chapters[1].title == "新的第二章"

    def test_rename_volume(self, structure, sample_novel):
        structure.rename_item("vol-b", "终卷")
        assert sample_novel.items[1].title == "终卷"

    @pytest.mark.parametrize("title", ["", "   ", "\t\n"])
    def test_blank_title_ignored(self, structure, sample_novel, title):
        result = structure.rename_item("c1", title)
        assert result.reason == "empty_title"
        assert sample_novel.items[0].chapters[0].title == "第一章"

    def test_rename_trashed_item_not_found(self, structure):
        structure.delete_item("c4")
        assert structure.rename_item("c4", "x").reason == "not_found"

    def test_update_status(self, structure, sample_novel):
        assert structure.update_chapter_status("c3", ChapterStatus.DONE).success
        assert sample_novel.items[1].chapters[0].status is ChapterStatus.DONE

    def test_update_status_from_string(self, structure, sample_novel):
        structure.update_chapter_status("c4", "REVIEW")
        assert sample_novel.items[2].status is ChapterStatus.REVIEW

    def test_unknown_status_rejected(self, structure, sample_novel):
        result = structure.update_chapter_status("c4", "PUBLISHED")
        assert result.reason == "invalid_status"
        assert sample_novel.items[2].status is ChapterStatus.DRAFT

    def test_status_on_volume_rejected(self, structure):
        assert structure.update_chapter_status("vol-a", ChapterStatus.DONE).reason == "not_chapter"


class TestToggleVolume:
    def test_toggle_flips_collapsed(self, structure, sample_novel):
        first = structure.toggle_volume("vol-a")
        assert first.details["collapsed"] is True
        assert "vol-a" in sample_novel.collapsed_volume_ids
        second = structure.toggle_volume("vol-a")
        assert second.details["collapsed"] is False
        assert not structure.is_collapsed("vol-a")

    def test_toggle_chapter_rejected(self, structure, sample_novel):
        assert structure.toggle_volume("c1").reason == "not_volume"
        assert sample_novel.collapsed_volume_ids == set()

    def test_toggle_does_not_touch_structure(self, structure, sample_novel, layout):
        before = layout(sample_novel)
        structure.toggle_volume("vol-b")
        assert layout(sample_novel) == before


class TestCreate:
    def test_create_root_chapter_selects_it(self, structure, sample_novel, notifier):
        result = structure.create_chapter()
        assert result.success
        new_id = result.details["id"]
        created = sample_novel.items[-1]
        assert isinstance(created, Chapter)
        assert created.id == new_id
        assert created.id.startswith("chap-")
        assert created.title == "新章节"
        assert sample_novel.active_chapter_id == new_id
        assert notifier.notifications[-1].level is NoticeLevel.SUCCESS

    def test_create_chapter_in_volume_appends(self, structure, sample_novel):
        result = structure.create_chapter("vol-b", title="第四章")
        chapters = sample_novel.items[1].chapters
        assert chapters[-1].id == result.details["id"]
        assert chapters[-1].title == "第四章"

    def test_create_chapter_under_chapter_rejected(self, structure, sample_novel, layout):
        before = layout(sample_novel)
        assert structure.create_chapter("c1").reason == "not_volume"
        assert layout(sample_novel) == before

    def test_create_chapter_under_unknown_parent(self, structure):
        assert structure.create_chapter("vol-x").reason == "not_found"

    def test_create_volume_appends_empty_volume(self, structure, sample_novel):
        result = structure.create_volume("第三卷")
        created = sample_novel.items[-1]
        assert isinstance(created, Volume)
        assert created.id == result.details["id"]
        assert created.id.startswith("vol-")
        assert created.chapters == []

    def test_ids_unique_with_frozen_clock(self, sample_novel, settings):
        structure = NovelStructure(sample_novel, settings=settings, clock=lambda: 1000)
        ids = {structure.create_chapter().details["id"] for _ in range(5)}
        assert len(ids) == 5
        check_invariants(sample_novel)

    def test_no_select_when_disabled(self, sample_novel, settings):
        settings.select_created_chapter = False
        structure = NovelStructure(sample_novel, settings=settings)
        structure.create_chapter()
        assert sample_novel.active_chapter_id == "c1"


class TestAtomicity:
    def _broken_novel(self):
        dup = Chapter(id="x", title="dup")
        return Novel(
            id="n",
            items=[Chapter(id="x", title="live"), Chapter(id="y")],
            trash=[TrashItem(item=dup, deleted_at=1)],
        )

    def test_violating_edit_rejected_without_partial_state(self, settings):
        settings.strict_invariants = False
        novel = self._broken_novel()
        items_before = novel.items
        structure = NovelStructure(novel, settings=settings)
        result = structure.move_item("x", None, Placement.AFTER)
        assert result.reason == "invariant_violation"
        assert novel.items is items_before
        assert [i.id for i in novel.items] == ["x", "y"]

    def test_strict_mode_raises(self, settings):
        novel = self._broken_novel()
        structure = NovelStructure(novel, settings=settings)
        with pytest.raises(InvariantViolationError) as exc_info:
            structure.move_item("x", None, Placement.AFTER)
        assert exc_info.value.operation == "move"
        assert any("x" in v for v in exc_info.value.violations)

    def test_dangling_active_chapter_cleared_on_load(self, sample_novel, settings):
        sample_novel.active_chapter_id = "ghost"
        NovelStructure(sample_novel, settings=settings)
        assert sample_novel.active_chapter_id is None


class TestInvariantPreservation:
    def test_random_edit_sequences_keep_tree_well_formed(self, structure, sample_novel):
        rng = random.Random(20240501)
        placements = list(Placement)
        all_known = {"vol-a", "vol-b", "c1", "c2", "c3", "c4"}

        for _ in range(300):
            live = [i.id for i in sample_novel.items] + [
                c.id for i in sample_novel.items if isinstance(i, Volume) for c in i.chapters
            ]
            trashed = [e.id for e in sample_novel.trash]
            op = rng.choice(["move", "delete", "restore", "restore_to"])
            if op == "move" and live:
                target = rng.choice(live + [None])
                structure.move_item(rng.choice(live), target, rng.choice(placements))
            elif op == "delete" and live:
                structure.delete_item(rng.choice(live))
            elif op == "restore" and trashed:
                structure.restore_item(rng.choice(trashed))
            elif op == "restore_to" and trashed:
                target = rng.choice(live + trashed + [None])
                structure.restore_item_to_location(rng.choice(trashed), target, rng.choice(placements))

            check_invariants(sample_novel)
            seen = {i.id for i in sample_novel.items}
            seen |= {c.id for i in sample_novel.items if isinstance(i, Volume) for c in i.chapters}
            for entry in sample_novel.trash:
                seen.add(entry.id)
                if entry.type is ItemType.VOLUME:
                    seen |= {c.id for c in entry.item.chapters}
            assert seen == all_known
