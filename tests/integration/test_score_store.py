"""Integration tests for the JSON score store

Covers persistence across instances, per-period upserts and snapshot isolation
while other threads are saving.
"""

import json
import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from credit_engine.models.leaderboard import LeaderboardBuilder
from credit_engine.utils.score_store import ScoreStore
from tests.fixtures.sample_scores import make_record


class TestPersistence:
    """Tests for reading and writing the scores file"""

    def test_reload_from_disk(self, tmp_path):
        """Test records saved by one store are read by the next"""
        path = tmp_path / "data" / "scores.json"
        store = ScoreStore(path)
        store.save(make_record("emp-001", "2025-W06", wcs=0.7))
        store.save(make_record("emp-001", "2025-W07", wcs=0.9, multiplier=1.1, final_score=0.99))

        reloaded = ScoreStore(path)
        history = reloaded.history("emp-001")

        assert [r.period_id for r in history] == ["2025-W07", "2025-W06"]
        assert history[0].final_score == 0.99
        assert history[0] == store.get("emp-001", "2025-W07")

    def test_file_format(self, tmp_path):
        """Test the file groups records per employee, most recent first"""
        path = tmp_path / "scores.json"
        store = ScoreStore(path)
        store.save_many([make_record("emp-001", "2025-W01"), make_record("emp-001", "2025-W02")])

        data = json.loads(path.read_text())
        assert [r["period_id"] for r in data["scores"]["emp-001"]] == ["2025-W02", "2025-W01"]

    def test_save_replaces_same_period(self, tmp_path):
        """Test re-scoring a period replaces the stored record"""
        store = ScoreStore(tmp_path / "scores.json")
        store.save(make_record("emp-001", "2025-W07", wcs=0.4))
        store.save(make_record("emp-001", "2025-W07", wcs=0.8))

        assert len(store.history("emp-001")) == 1
        assert ScoreStore(tmp_path / "scores.json").get("emp-001", "2025-W07").wcs == 0.8

    def test_no_persist(self, tmp_path):
        """Test a non-persisting store reads history but never writes"""
        path = tmp_path / "scores.json"
        ScoreStore(path).save(make_record("emp-001", "2025-W06"))

        dry = ScoreStore(path, persist=False)
        dry.save(make_record("emp-001", "2025-W07"))

        assert len(dry.history("emp-001")) == 2
        assert len(ScoreStore(path).history("emp-001")) == 1

    def test_unreadable_records_skipped(self, tmp_path, caplog):
        """Test a broken record is skipped with a warning instead of failing the load"""
        path = tmp_path / "scores.json"
        good = make_record("emp-001", "2025-W07").to_dict()
        path.write_text(json.dumps({"scores": {"emp-001": [good, {"employee_id": "emp-001", "wcs": 0.5}]}}))

        store = ScoreStore(path)

        assert len(store.history("emp-001")) == 1
        assert "Skipping unreadable score record" in caplog.text

    def test_missing_file_is_empty(self, tmp_path):
        store = ScoreStore(tmp_path / "nothing.json")
        assert store.snapshot() == {}
        assert store.history("emp-001") == []

    def test_failed_write_keeps_previous_record(self, tmp_path, monkeypatch):
        """Test a save whose file write fails leaves memory and disk on the old record"""
        path = tmp_path / "scores.json"
        store = ScoreStore(path)
        store.save(make_record("emp-001", "2025-W07", wcs=0.4))

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)
        with pytest.raises(OSError, match="disk full"):
            store.save(make_record("emp-001", "2025-W07", wcs=0.8))
        with pytest.raises(OSError):
            store.save_many([make_record("emp-002", "2025-W07"), make_record("emp-001", "2025-W08")])
        monkeypatch.undo()

        assert store.get("emp-001", "2025-W07").wcs == 0.4
        assert store.employee_ids() == ["emp-001"]
        assert len(store.history("emp-001")) == 1
        assert ScoreStore(path).get("emp-001", "2025-W07").wcs == 0.4
        assert list(tmp_path.glob("*.tmp")) == []


class TestSnapshots:
    """Tests for copy-on-read access"""

    def test_snapshot_is_a_copy(self, tmp_path):
        """Test later saves don't show up in an earlier snapshot"""
        store = ScoreStore(tmp_path / "scores.json")
        store.save(make_record("emp-001", "2025-W06"))
        snapshot = store.snapshot()

        store.save(make_record("emp-001", "2025-W07"))

        assert len(snapshot["emp-001"]) == 1
        assert len(store.snapshot()["emp-001"]) == 2

    def test_concurrent_saves_and_leaderboard_builds(self, tmp_path):
        """Test building leaderboards while other threads save"""
        store = ScoreStore(tmp_path / "scores.json", persist=False)
        builder = LeaderboardBuilder()

        def save(i):
            store.save(make_record(f"emp-{i % 5}", f"2025-W{i // 5 + 1:02d}", wcs=0.9))

        def build(_):
            return builder.build_from_histories(store.snapshot())

        with ThreadPoolExecutor(max_workers=8) as executor:
            saves = [executor.submit(save, i) for i in range(50)]
            builds = [executor.submit(build, i) for i in range(20)]
            for future in saves + builds:
                future.result()

        assert sorted(store.employee_ids()) == [f"emp-{i}" for i in range(5)]
        assert all(len(store.history(f"emp-{i}")) == 10 for i in range(5))

    def test_to_dataframe(self, tmp_path):
        store = ScoreStore(tmp_path / "scores.json")
        store.save_many([make_record("emp-001", "2025-W01"), make_record("emp-002", "2025-W01")])

        df = store.to_dataframe()
        assert len(df) == 2
        assert set(df["employee_id"]) == {"emp-001", "emp-002"}
