#!/usr/bin/env python3
"""Score a week of employee activity and update the leaderboard

Reads activity records from a YAML or JSON file, scores every employee with
their team's credit weights and performance multiplier, saves the records
(replacing earlier scores for the same week) and prints the leaderboard.
"""

import argparse
import sys

import yaml

from credit_engine.config import Config
from credit_engine.models.engine import ScoringEngine
from credit_engine.models.leaderboard import streak_badge, top
from credit_engine.models.records import ActivityRecord
from credit_engine.utils.logging import get_logger, setup_logging
from credit_engine.utils.periods import PeriodError, current_period_id, parse_period_id
from credit_engine.utils.score_store import ScoreStore


def load_activities(path, default_period=None):
    """Load activity records from a file

    The file holds either a list of records or a mapping with an
    ``activities`` list. Records without ``period_id`` get ``default_period``.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or []

    raw_records = data.get("activities", []) if isinstance(data, dict) else data
    activities = []
    for raw in raw_records:
        if default_period and not raw.get("period_id"):
            raw = {**raw, "period_id": default_period}
        activities.append(ActivityRecord.from_dict(raw))
    return activities


def print_leaderboard(out, entries, limit):
    out.section("Leaderboard")
    if not entries:
        out.info("No scored employees yet")
        return

    for entry in top(entries, limit):
        badge = streak_badge(entry.current_streak)
        name = (entry.employee or {}).get("name") or entry.employee_id
        out.info(
            f"#{entry.rank:<3} {name:<24} score {entry.ranking_score:7.1f}  "
            f"avg {entry.rolling_average_score:.2f}  streak {entry.current_streak}  "
            f"✓ {entry.check_mark_count}" + (f"  [{badge}]" if badge else ""),
            indent=1,
        )


parser = argparse.ArgumentParser(
    description="Score weekly activity records and update the credit leaderboard",
    formatter_class=argparse.RawDescriptionHelpFormatter,
    epilog="""
Examples:
  python score_week.py activities.yaml                  # Period ids taken from the file
  python score_week.py activities.yaml --period 2025-W07
  python score_week.py activities.json --dry-run        # Score without saving
  python score_week.py activities.yaml -v               # Verbose output
    """,
)
parser.add_argument("input", help="YAML or JSON file of activity records")
parser.add_argument("--period", type=str, help="Period id for records without one (default: current ISO week)")
parser.add_argument("--config", type=str, help="Path to config.yaml")
parser.add_argument("--scores-file", type=str, help="Override the score store location")
parser.add_argument("--dry-run", action="store_true", help="Score and print, but don't save")
parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity: -v (INFO), -vv (DEBUG)")
parser.add_argument("-q", "--quiet", action="store_true", help="Quiet mode (warnings and errors only)")
parser.add_argument("--log-file", type=str, help="Override log file location")


def main(argv=None):
    args = parser.parse_args(argv)

    if args.quiet:
        log_level = "WARNING"
    elif args.verbose >= 2:
        log_level = "DEBUG"
    else:
        log_level = "INFO"

    setup_logging(log_level=log_level, log_file=args.log_file, config_file="config/logging.yaml")
    out = get_logger("credit_engine.scoring")
    out.quiet = args.quiet

    try:
        config = Config(args.config)
    except FileNotFoundError as e:
        out.error(str(e))
        return 1

    period = args.period or current_period_id()
    try:
        parse_period_id(period)
    except PeriodError as e:
        out.error(f"Error: {e}")
        return 1

    out.section(f"Weekly Credit Scoring ({period})")

    try:
        activities = load_activities(args.input, default_period=period)
    except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError) as e:
        out.error(f"Could not read activities from {args.input}: {e}")
        return 1

    out.info(f"Loaded {len(activities)} activity records", emoji="📥")

    engine = ScoringEngine.from_config(config)
    parallel_cfg = config.parallel_config
    workers = parallel_cfg["workers"] if parallel_cfg["enabled"] else 1
    if workers > 1 and len(activities) > 1:
        out.info(f"Using parallel scoring ({min(workers, len(activities))} workers)", emoji="⚡")

    records, errors = engine.score_many(activities, workers=workers)

    for index, record in enumerate(sorted(records, key=lambda r: (r.employee_id, r.period_id)), start=1):
        mark = "✓" if record.check_mark else "·"
        out.progress(
            index,
            len(records),
            f"{record.employee_id} {record.period_id}: EC {record.ec} OC {record.oc:.2f} "
            f"CC {record.cc} WCS {record.wcs} final {record.final_score}",
            status_emoji=mark,
        )

    if errors:
        out.warning(f"{len(errors)} activity records rejected")
        for key, message in errors.items():
            out.info(message, indent=2)

    store = ScoreStore(args.scores_file or config.scores_file, persist=not args.dry_run)
    if args.dry_run:
        out.info("Dry run: scores not saved", emoji="ℹ️")
    store.save_many(records)
    if not args.dry_run:
        out.success(f"Saved {len(records)} scores to {store.path}")

    entries = engine.build_leaderboard(store.snapshot())
    print_leaderboard(out, entries, config.leaderboard_config["display_limit"])

    return 1 if errors and not records else 0


if __name__ == "__main__":
    sys.exit(main())
