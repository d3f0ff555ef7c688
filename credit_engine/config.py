from pathlib import Path

import yaml

from credit_engine.models.personalization import ConfigRepository
from credit_engine.models.records import COLLABORATION_PERIOD_DAYS, DEFAULT_WEIGHTS, WEIGHT_KEYS


class Config(ConfigRepository):
    def __init__(self, config_path=None):
        if config_path is None:
            config_path = Path(__file__).parent.parent / "config" / "config.yaml"

        self.config_path = Path(config_path)
        self.config = self._load_config()

    def _load_config(self):
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at {self.config_path}. "
                f"Please copy config.example.yaml to config.yaml and update with your settings."
            )

        with open(self.config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _save(self):
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(self.config, f, default_flow_style=False, sort_keys=False)

    @property
    def credit_system(self):
        return self.config.get("credit_system") or {}

    @property
    def default_weights(self):
        """Default EC/OC/CC percentages when a team has none configured"""
        weights = self.credit_system.get("default_weights") or {}
        return {key: weights.get(key, DEFAULT_WEIGHTS[key]) for key in WEIGHT_KEYS}

    @property
    def collaboration_period_days(self):
        return int(self.credit_system.get("collaboration_period_days", COLLABORATION_PERIOD_DAYS))

    @property
    def check_mark_tolerance(self):
        return float(self.credit_system.get("check_mark_tolerance", 0.0))

    @property
    def multiplier_range(self):
        low, high = self.credit_system.get("multiplier_range", [0.5, 2.0])
        return float(low), float(high)

    @property
    def teams(self):
        """Get list of team configurations"""
        return self.config.get("teams") or []

    def get_team(self, team_id):
        for team in self.teams:
            if str(team.get("team_id")) == str(team_id):
                return team
        return None

    @property
    def user_ratings(self):
        return self.config.get("user_ratings") or []

    def get_user_rating(self, employee_id):
        for rating in self.user_ratings:
            if str(rating.get("employee_id")) == str(employee_id):
                return rating
        return None

    # ConfigRepository: raw values, validated by the personalizer

    def get_team_weights(self, team_id):
        team = self.get_team(team_id)
        return team.get("credit_weights") if team else None

    def get_user_multiplier(self, employee_id):
        rating = self.get_user_rating(employee_id)
        return rating.get("performance_multiplier") if rating else None

    def update_team_weights(self, team_id, weights, name=None):
        """Store credit weights for a team

        Args:
            team_id: Team identifier
            weights (dict): Whole-number percentages for EC, OC and CC
            name: Optional display name when the team is new

        Raises:
            ValueError: If a weight is missing, not a whole number in 0-100,
                or the weights don't total exactly 100
        """
        for key in WEIGHT_KEYS:
            value = weights.get(key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Weight for {key} must be a whole-number percentage, got {value!r}")
            if not (0 <= value <= 100):
                raise ValueError(f"Weight for {key} must be between 0 and 100, got {value}")

        total = sum(weights[key] for key in WEIGHT_KEYS)
        if total != 100:
            raise ValueError(f"Total weight must equal 100%, got {total}")

        team = self.get_team(team_id)
        if team is None:
            team = {"team_id": team_id, "name": name or team_id}
            self.config.setdefault("teams", []).append(team)
        team["credit_weights"] = {key: weights[key] for key in WEIGHT_KEYS}

        self._save()

    def update_user_multiplier(self, employee_id, multiplier, notes=None):
        """Store a performance multiplier for an employee

        Raises:
            ValueError: If the multiplier is outside ``multiplier_range``
        """
        low, high = self.multiplier_range
        multiplier = float(multiplier)
        if not (low <= multiplier <= high):
            raise ValueError(f"Performance multiplier must be between {low} and {high}, got {multiplier}")

        rating = self.get_user_rating(employee_id)
        if rating is None:
            rating = {"employee_id": employee_id}
            self.config.setdefault("user_ratings", []).append(rating)
        rating["performance_multiplier"] = multiplier
        if notes is not None:
            rating["notes"] = notes

        self._save()

    @property
    def leaderboard_config(self):
        """Get leaderboard configuration

        Returns:
            dict: window (12), streak_threshold (0.8), display_limit (10),
                  score_field ("wcs")
        """
        default_config = {"window": 12, "streak_threshold": 0.8, "display_limit": 10, "score_field": "wcs"}
        config_leaderboard = self.config.get("leaderboard") or {}
        return {key: config_leaderboard.get(key, default) for key, default in default_config.items()}

    @property
    def parallel_config(self):
        """Get parallel scoring configuration

        Returns:
            dict: enabled (True), workers (8)
        """
        config_parallel = self.config.get("parallel_scoring") or {}
        return {
            "enabled": config_parallel.get("enabled", True),
            "workers": config_parallel.get("workers", 8),
        }

    @property
    def dashboard_config(self):
        return self.config.get("dashboard", {"port": 5001, "debug": False})

    @property
    def scores_file(self):
        return (self.config.get("storage") or {}).get("scores_file", "data/scores.json")

    @property
    def employees(self):
        """Employee directory: employee_id, name, team_id"""
        return self.config.get("employees") or []

    def get_employee(self, employee_id):
        for employee in self.employees:
            if str(employee.get("employee_id")) == str(employee_id):
                return employee
        return None
