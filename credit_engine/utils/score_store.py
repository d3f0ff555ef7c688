"""JSON file persistence for score records.

Records are keyed by ``(employee_id, period_id)``; saving a record for a period
that already has one replaces it. Readers get copies, so a leaderboard build
never iterates over a history that a concurrent save is mutating.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from credit_engine.models.records import ScoreRecord, ScoreRecordError, most_recent_first
from credit_engine.utils.logging import get_logger

DEFAULT_SCORES_FILE = Path("data/scores.json")


class ScoreStore:
    def __init__(self, path: Optional[Union[str, Path]] = None, persist: bool = True):
        """
        Args:
            path: JSON file to load from and write to (default data/scores.json)
            persist: write every change to disk; False keeps changes in memory
        """
        self.path = Path(path) if path else DEFAULT_SCORES_FILE
        self.persist = persist
        self._lock = threading.Lock()
        self._records: Dict[str, Dict[str, ScoreRecord]] = {}
        self.out = get_logger("credit_engine.store")
        self._load()

    def _load(self):
        if not self.path.exists():
            return

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        loaded = 0
        for employee_id, records in data.get("scores", {}).items():
            for raw in records:
                try:
                    record = ScoreRecord.from_dict(raw)
                except (ScoreRecordError, TypeError, ValueError) as e:
                    self.out.warning(f"Skipping unreadable score record for {employee_id}: {e}")
                    continue
                self._records.setdefault(record.employee_id, {})[record.period_id] = record
                loaded += 1

        self.out.debug(f"Loaded {loaded} score records from {self.path}")

    def _write(self, records: Dict[str, Dict[str, ScoreRecord]]):
        payload = {
            "scores": {
                employee_id: [r.to_dict() for r in most_recent_first(list(periods.values()))]
                for employee_id, periods in records.items()
            }
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _commit(self, records: List[ScoreRecord]):
        """Write the store with ``records`` applied, then swap it in.

        Caller holds the lock. A failed write leaves the in-memory store as it was.
        """
        updated = {employee_id: dict(periods) for employee_id, periods in self._records.items()}
        for record in records:
            updated.setdefault(record.employee_id, {})[record.period_id] = record
        if self.persist:
            self._write(updated)
        self._records = updated

    def save(self, record: ScoreRecord) -> ScoreRecord:
        """Insert or replace the record for its employee and period."""
        with self._lock:
            replaced = record.period_id in self._records.get(record.employee_id, {})
            self._commit([record])

        action = "Updated" if replaced else "Saved"
        self.out.debug(f"{action} score {record.employee_id} {record.period_id}")
        return record

    def save_many(self, records: List[ScoreRecord]) -> int:
        if not records:
            return 0
        with self._lock:
            self._commit(records)
        return len(records)

    def get(self, employee_id: str, period_id: str) -> Optional[ScoreRecord]:
        with self._lock:
            return self._records.get(employee_id, {}).get(period_id)

    def history(self, employee_id: str) -> List[ScoreRecord]:
        """The employee's records, most recent period first."""
        with self._lock:
            records = list(self._records.get(employee_id, {}).values())
        return most_recent_first(records)

    def snapshot(self) -> Dict[str, List[ScoreRecord]]:
        """Consistent copy of every history, most recent first."""
        with self._lock:
            copied = {employee_id: list(periods.values()) for employee_id, periods in self._records.items()}
        return {employee_id: most_recent_first(records) for employee_id, records in copied.items()}

    def employee_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._records)

    def to_dataframe(self) -> pd.DataFrame:
        rows = [r.to_dict() for records in self.snapshot().values() for r in records]
        return pd.DataFrame(rows)
