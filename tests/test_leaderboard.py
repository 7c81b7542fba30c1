"""Tests for the leaderboard module."""
import copy
import math

import pytest

from questrank.errors import InvalidInput
from questrank.leaderboard import (
    LeaderboardEntry,
    course_scope,
    find_entry,
    global_scope,
    load_leaderboard,
    make_scope,
    module_scope,
    rank_entries,
    rank_snapshot,
    snapshot_to_records,
    world_scope,
)
from questrank.sources import JsonDirectorySource, MemorySource


class TestScopes:
    def test_global(self):
        scope = global_scope()
        assert scope.kind == "global"
        assert scope.path == "leaderboards/globalXP"
        assert scope.metric == "xp"

    def test_course(self):
        assert course_scope("c1").path == "leaderboards/courses/c1"

    def test_module(self):
        assert module_scope("c1", "m2").path == "leaderboards/modules/c1_m2"

    def test_world(self):
        assert world_scope("w9").path == "leaderboards/worlds/w9"

    def test_custom_metric(self):
        assert course_scope("c1", metric="tasksCompleted").metric == "tasksCompleted"

    def test_empty_id_raises(self):
        with pytest.raises(InvalidInput):
            course_scope("")

    def test_slash_in_id_raises(self):
        with pytest.raises(InvalidInput):
            world_scope("a/b")

    def test_make_scope(self):
        assert make_scope("module", course_id="c", module_id="m") == module_scope("c", "m")
        assert make_scope("global", metric="level").metric == "level"

    def test_make_scope_missing_id_raises(self):
        with pytest.raises(InvalidInput):
            make_scope("world")

    def test_make_scope_unknown_kind_raises(self):
        with pytest.raises(InvalidInput, match="Unknown leaderboard scope"):
            make_scope("galaxy")


class TestSnapshotToRecords:
    def test_adds_uid(self):
        records = snapshot_to_records({"u1": {"xp": 10}, "u2": {"xp": 20}})
        assert {"uid": "u1", "xp": 10} in records
        assert {"uid": "u2", "xp": 20} in records

    def test_non_mapping_record_raises(self):
        with pytest.raises(InvalidInput):
            snapshot_to_records({"u1": 42})


class TestRankEntries:
    def test_ties_broken_by_uid(self):
        records = [
            {"uid": "b", "xp": 500},
            {"uid": "a", "xp": 500},
            {"uid": "c", "xp": 300},
        ]
        ranked = rank_entries(records)
        assert [e.uid for e in ranked] == ["a", "b", "c"]
        assert [e.rank for e in ranked] == [1, 2, 3]
        assert [e.metric("xp") for e in ranked] == [500, 500, 300]

    def test_ranks_by_xp_descending(self):
        records = [
            {"uid": "low", "xp": 100},
            {"uid": "high", "xp": 999},
            {"uid": "mid", "xp": 500},
        ]
        ranked = rank_entries(records)
        assert [e.uid for e in ranked] == ["high", "mid", "low"]

    def test_all_equal_scores_get_distinct_ranks(self):
        records = [{"uid": f"user{i:02d}", "xp": 10} for i in range(50)]
        ranked = rank_entries(reversed(records))
        assert [e.rank for e in ranked] == list(range(1, 51))
        assert [e.uid for e in ranked] == sorted(r["uid"] for r in records)

    def test_order_independent(self):
        records = [{"uid": "x", "xp": 5}, {"uid": "y", "xp": 5}, {"uid": "z", "xp": 7}]
        assert rank_entries(records) == rank_entries(list(reversed(records)))

    def test_stored_rank_is_ignored(self):
        records = [
            {"uid": "a", "xp": 10, "rank": 1},
            {"uid": "b", "xp": 20, "rank": 7},
        ]
        ranked = rank_entries(records)
        assert [(e.uid, e.rank) for e in ranked] == [("b", 1), ("a", 2)]
        assert "rank" not in ranked[0].metrics

    def test_secondary_metrics_carried_through(self):
        records = [{"uid": "a", "displayName": "Ada", "xp": 10, "level": 2, "tasksCompleted": 7}]
        entry = rank_entries(records)[0]
        assert entry.display_name == "Ada"
        assert entry.metrics == {"xp": 10, "level": 2, "tasksCompleted": 7}
        assert entry.to_dict() == {
            "uid": "a", "displayName": "Ada", "rank": 1, "xp": 10, "level": 2, "tasksCompleted": 7,
        }

    def test_display_name_falls_back_to_uid(self):
        assert rank_entries([{"uid": "solo", "xp": 1}])[0].display_name == "solo"

    def test_custom_metric(self):
        records = [
            {"uid": "a", "xp": 900, "tasksCompleted": 1},
            {"uid": "b", "xp": 100, "tasksCompleted": 30},
        ]
        ranked = rank_entries(records, metric="tasksCompleted")
        assert ranked[0].uid == "b"

    def test_missing_metric_counts_as_zero(self):
        ranked = rank_entries([{"uid": "a"}, {"uid": "b", "xp": 1}])
        assert [e.uid for e in ranked] == ["b", "a"]

    def test_non_numeric_metric_raises(self):
        with pytest.raises(InvalidInput):
            rank_entries([{"uid": "a", "xp": "lots"}])

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_metric_raises(self, value):
        for records in (
            [{"uid": "a", "xp": value}, {"uid": "b", "xp": 5}, {"uid": "c", "xp": 10}],
            [{"uid": "b", "xp": 5}, {"uid": "c", "xp": 10}, {"uid": "a", "xp": value}],
        ):
            with pytest.raises(InvalidInput, match="finite"):
                rank_entries(records)

    def test_nan_literal_from_json_directory_raises(self, tmp_path):
        (tmp_path / "leaderboards").mkdir()
        (tmp_path / "leaderboards" / "globalXP.json").write_text(
            '{"a": {"xp": NaN}, "b": {"xp": 5}}', encoding="utf-8"
        )
        with pytest.raises(InvalidInput):
            load_leaderboard(JsonDirectorySource(tmp_path), global_scope())

    def test_missing_uid_raises(self):
        with pytest.raises(InvalidInput, match="no uid"):
            rank_entries([{"xp": 10}])

    def test_input_not_mutated(self):
        records = [{"uid": "a", "xp": 1, "rank": 9}, {"uid": "b", "xp": 2}]
        before = copy.deepcopy(records)
        rank_entries(records)
        assert records == before

    def test_empty(self):
        assert rank_entries([]) == []


class TestRankSnapshot:
    def test_none_means_no_data(self):
        assert rank_snapshot(None, global_scope()) is None

    def test_empty_snapshot(self):
        assert rank_snapshot({}, global_scope()) == []

    def test_uses_scope_metric(self):
        snapshot = {"a": {"xp": 1, "bossesDefeated": 3}, "b": {"xp": 9, "bossesDefeated": 1}}
        ranked = rank_snapshot(snapshot, world_scope("w1", metric="bossesDefeated"))
        assert ranked[0].uid == "a"


class TestLoadLeaderboard:
    def test_reads_and_ranks(self):
        source = MemorySource({
            "leaderboards/courses/c1": {"u1": {"xp": 5}, "u2": {"xp": 50}},
        })
        ranked = load_leaderboard(source, course_scope("c1"))
        assert [e.uid for e in ranked] == ["u2", "u1"]

    def test_missing_path_returns_none(self):
        assert load_leaderboard(MemorySource(), global_scope()) is None


class TestFindEntry:
    def test_found(self):
        ranked = rank_entries([{"uid": "a", "xp": 1}, {"uid": "b", "xp": 2}])
        assert find_entry(ranked, "a") == LeaderboardEntry("a", "a", 2, {"xp": 1})

    def test_not_found(self):
        assert find_entry(rank_entries([{"uid": "a"}]), "zzz") is None

    def test_none_board(self):
        assert find_entry(None, "a") is None
