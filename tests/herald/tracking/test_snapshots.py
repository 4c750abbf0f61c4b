"""Unit tests for SnapshotStore capture and the per-tick diff."""
from __future__ import annotations

import random

import pytest

from herald.tracking.snapshots import Snapshot, SnapshotStore, diff, has_changed

pytestmark = pytest.mark.unit


def _store(entities) -> SnapshotStore:
    store = SnapshotStore()
    store.capture(entities)
    return store


class TestCapture:
    def test_one_snapshot_per_enabled_entity(self, entity_factory):
        entities = [entity_factory(1), entity_factory(2), entity_factory(3, enabled=False)]
        store = _store(entities)
        assert len(store) == 2
        assert "v-0003" not in store

    def test_capture_replaces_wholesale(self, entity_factory):
        store = _store([entity_factory(1), entity_factory(2)])
        before = store.current()
        store.capture([entity_factory(3)])
        assert set(store.current()) == {"v-0003"}
        # The earlier mapping is untouched
        assert set(before) == {"v-0001", "v-0002"}

    def test_mapping_is_read_only(self, entity_factory):
        store = _store([entity_factory(1)])
        with pytest.raises(TypeError):
            store.current()["x"] = None  # type: ignore[index]

    def test_snapshot_fields(self, entity_factory):
        e = entity_factory(1, job_description=None, residence=None, sick=True,
                           skills=["a", "b"], missed_meals=2, position=(3.0, 4.0))
        s = Snapshot.of(e)
        assert s.job_description == ""
        assert not s.has_home
        assert s.is_sick
        assert s.skill_count == 2
        assert s.missed_meals == 2
        assert s.position == (3.0, 4.0)

    def test_snapshot_is_frozen(self, entity_factory):
        s = Snapshot.of(entity_factory(1))
        with pytest.raises(Exception):
            s.name = "other"  # type: ignore[misc]


class TestHasChanged:
    def test_identical_is_unchanged(self, entity_factory):
        e = entity_factory(1)
        assert not has_changed(e, Snapshot.of(e))

    @pytest.mark.parametrize("overrides", [
        {"job_description": "Miller"},
        {"job_description": None},
        {"residence": None},
        {"sick": True},
        {"skills": ["Farming", "Fishing"]},
    ])
    def test_tracked_fields(self, entity_factory, overrides):
        snap = Snapshot.of(entity_factory(1))
        assert has_changed(entity_factory(1, **overrides), snap)

    def test_skill_composition_is_not_detected(self, entity_factory):
        snap = Snapshot.of(entity_factory(1, skills=["Farming"]))
        assert not has_changed(entity_factory(1, skills=["Masonry"]), snap)

    def test_untracked_fields_ignored(self, entity_factory):
        snap = Snapshot.of(entity_factory(1))
        assert not has_changed(entity_factory(1, health=0.1, thought="Hungry", name="X"), snap)

    def test_crossing_a_year_boundary(self, entity_factory):
        snap = Snapshot.of(entity_factory(1, age=29.9))
        assert has_changed(entity_factory(1, age=30.1), snap)

    def test_within_the_same_year(self, entity_factory):
        snap = Snapshot.of(entity_factory(1, age=29.1))
        assert not has_changed(entity_factory(1, age=29.9), snap)


class TestDiff:
    def test_new_entities_are_changed(self, entity_factory):
        store = _store([entity_factory(1)])
        result = diff([entity_factory(1), entity_factory(2)], store)
        assert [e.entity_id for e in result.changed] == ["v-0002"]
        assert result.unchanged_ids == ["v-0001"]

    def test_removed_ids(self, entity_factory):
        store = _store([entity_factory(1), entity_factory(2)])
        result = diff([entity_factory(2)], store)
        assert result.removed_ids == ["v-0001"]

    def test_disabled_entity_counts_as_removed(self, entity_factory):
        store = _store([entity_factory(1)])
        result = diff([entity_factory(1, enabled=False)], store)
        assert result.removed_ids == ["v-0001"]
        assert result.changed == []

    def test_full_update_marks_everyone_changed(self, entity_factory):
        entities = [entity_factory(i) for i in range(3)]
        store = _store(entities)
        result = diff(entities, store, full_update=True)
        assert len(result.changed) == 3
        assert result.unchanged_ids == []

    def test_age_boundary_flags_once(self, entity_factory):
        store = _store([entity_factory(1, age=29.9)])
        first = diff([entity_factory(1, age=30.1)], store)
        assert len(first.changed) == 1
        store.capture([entity_factory(1, age=30.1)])
        second = diff([entity_factory(1, age=30.6)], store)
        assert second.changed == []

    def test_empty_result(self, entity_factory):
        e = entity_factory(1)
        assert diff([e], _store([e])).empty

    def test_accepts_plain_mapping(self, entity_factory):
        e = entity_factory(1)
        result = diff([e], {e.entity_id: Snapshot.of(e)})
        assert result.unchanged_ids == [e.entity_id]

    def test_partition_property(self, entity_factory):
        rng = random.Random(11)
        for _ in range(50):
            prior = [entity_factory(i, age=rng.uniform(0, 80)) for i in rng.sample(range(40), 20)]
            store = _store(prior)
            current = [
                entity_factory(i, age=rng.uniform(0, 80), sick=rng.random() < 0.2,
                               enabled=rng.random() < 0.9)
                for i in rng.sample(range(40), 25)
            ]
            result = diff(current, store)
            changed = {e.entity_id for e in result.changed}
            unchanged = set(result.unchanged_ids)
            removed = set(result.removed_ids)
            live = {e.entity_id for e in current if e.enabled}

            assert not changed & unchanged
            assert not (changed | unchanged) & removed
            assert changed | unchanged == live
            assert changed | unchanged | removed == live | set(store.current())
            assert {i for i in live if i not in store} <= changed
