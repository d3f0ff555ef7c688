"""
Shared pytest fixtures for the credit engine tests
"""

import tempfile
from pathlib import Path

import pytest
import yaml

from credit_engine.models.records import ActivityRecord, CollaborationSignals, KeyResult


@pytest.fixture
def perfect_activity():
    """Full effort, one perfect key result, full collaboration"""
    return ActivityRecord(
        employee_id="emp-001",
        period_id="2025-W07",
        hours_worked=25,
        key_results=(KeyResult(score=1.0, weight=1),),
        collaboration=CollaborationSignals(peer_review_count=3, daily_posts_in_period=5, has_retro_insight=True),
    )


@pytest.fixture
def partial_activity():
    """Mid effort band, no key results, thin collaboration"""
    return ActivityRecord(
        employee_id="emp-002",
        period_id="2025-W07",
        hours_worked=12,
        key_results=(),
        collaboration=CollaborationSignals(peer_review_count=1, daily_posts_in_period=4, has_retro_insight=False),
    )


@pytest.fixture
def credit_config_dict():
    """Configuration dictionary with one weighted team, employees and a rating"""
    return {
        "credit_system": {
            "default_weights": {"EC": 40, "OC": 50, "CC": 10},
            "collaboration_period_days": 5,
            "check_mark_tolerance": 0.0,
            "multiplier_range": [0.5, 2.0],
        },
        "teams": [
            {"team_id": "platform", "name": "Platform Team", "credit_weights": {"EC": 30, "OC": 60, "CC": 10}},
            {"team_id": "broken", "name": "Broken Team", "credit_weights": "forty/fifty/ten"},
        ],
        "employees": [
            {"employee_id": "emp-001", "name": "Jane Smith", "team_id": "platform"},
            {"employee_id": "emp-002", "name": "John Doe", "team_id": "platform"},
            {"employee_id": "emp-003", "name": "Ana Lima"},
        ],
        "user_ratings": [
            {"employee_id": "emp-001", "performance_multiplier": 1.1, "notes": "Led the migration"},
        ],
        "leaderboard": {"window": 12, "streak_threshold": 0.8, "display_limit": 10},
        "parallel_scoring": {"enabled": True, "workers": 4},
    }


@pytest.fixture
def temp_config_file(credit_config_dict):
    """Temporary config.yaml built from credit_config_dict"""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(credit_config_dict, f)
        temp_path = f.name

    yield temp_path

    Path(temp_path).unlink(missing_ok=True)
