from datetime import datetime

from flask import Flask, Response, jsonify, request

from credit_engine.config import Config
from credit_engine.models.engine import ScoringEngine
from credit_engine.models.leaderboard import VIEW_MODES, rank_of, sort_view, streak_badge, to_dataframe, top
from credit_engine.models.quarter import quarter_scores
from credit_engine.models.records import ActivityRecord, CreditValidationError
from credit_engine.utils.logging import get_logger
from credit_engine.utils.periods import PeriodError, parse_period_id
from credit_engine.utils.score_store import ScoreStore

app = Flask(__name__)
out = get_logger("credit_engine.dashboard")

# Lazily created on first request; tests replace these directly
state = {
    "config": None,
    "store": None,
    "engine": None,
}


def get_config():
    """Load configuration"""
    if state["config"] is None:
        state["config"] = Config()
    return state["config"]


def get_store():
    if state["store"] is None:
        state["store"] = ScoreStore(get_config().scores_file)
    return state["store"]


def get_engine():
    if state["engine"] is None:
        state["engine"] = ScoringEngine.from_config(get_config())
    return state["engine"]


def reset_state():
    """Drop cached config, store and engine (after config edits or in tests)"""
    for key in state:
        state[key] = None


def serialize_entry(entry):
    data = entry.to_dict()
    data["streak_badge"] = streak_badge(entry.current_streak)
    return data


@app.errorhandler(CreditValidationError)
@app.errorhandler(PeriodError)
def handle_validation_error(error):
    return jsonify({"error": str(error)}), 400


@app.route("/api/leaderboard")
def api_leaderboard():
    """Ranked leaderboard, optionally re-sorted for one of the display views"""
    view = request.args.get("view", "overall")
    if view not in VIEW_MODES:
        return jsonify({"error": f"Unknown view '{view}'. Expected one of: {', '.join(VIEW_MODES)}"}), 400

    config = get_config()
    limit = request.args.get("limit", type=int) or config.leaderboard_config["display_limit"]

    entries = get_engine().build_leaderboard(get_store().snapshot())
    employee_id = request.args.get("employee_id")

    return jsonify(
        {
            "view": view,
            "total": len(entries),
            "current_user_rank": rank_of(entries, employee_id) if employee_id else None,
            "entries": [serialize_entry(e) for e in top(sort_view(entries, view), limit)],
        }
    )


@app.route("/api/export/leaderboard/csv")
def api_export_leaderboard_csv():
    """Full leaderboard as CSV"""
    entries = get_engine().build_leaderboard(get_store().snapshot())
    csv_data = to_dataframe(entries).to_csv(index=False)

    filename = f"leaderboard_{datetime.now().strftime('%Y-%m-%d')}.csv"
    return Response(
        csv_data,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.route("/api/scores/<employee_id>")
def api_employee_scores(employee_id):
    """Score history (most recent first) and quarter scores for one employee"""
    history = get_store().history(employee_id)
    if not history:
        return jsonify({"error": f"No scores for {employee_id}"}), 404

    return jsonify(
        {
            "employee_id": employee_id,
            "scores": [r.to_dict() for r in history],
            "quarters": [vars(q) for q in quarter_scores(employee_id, history)],
        }
    )


@app.route("/api/scores", methods=["POST"])
def api_submit_score():
    """Score an activity record and save it, replacing any score for the same period"""
    payload = request.get_json(silent=True) or {}
    try:
        activity = ActivityRecord.from_dict(payload)
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid activity payload: {e}"}), 400

    parse_period_id(activity.period_id)
    record = get_store().save(get_engine().score(activity))
    out.info(f"Score saved for {record.employee_id} {record.period_id}: WCS {record.wcs}")
    return jsonify(record.to_dict()), 201


@app.route("/api/scores/<employee_id>/<period_id>", methods=["PUT"])
def api_edit_score(employee_id, period_id):
    """Edit hours, key-result score and CC; all derived fields are recomputed

    Hours are required since records keep only the EC band. An omitted
    key-result score or CC keeps the stored OC or CC.
    """
    store = get_store()
    record = store.get(employee_id, period_id)
    if record is None:
        return jsonify({"error": f"No score for {employee_id} in {period_id}"}), 404

    payload = request.get_json(silent=True) or {}
    if payload.get("hours_worked") is None:
        return jsonify({"error": "Invalid score edit: hours_worked is required"}), 400

    try:
        hours = float(payload["hours_worked"])
        kr_score = None if payload.get("key_result_score") is None else float(payload["key_result_score"])
        cc = None if payload.get("cc") is None else float(payload["cc"])
    except (TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid score edit: {e}"}), 400

    updated = store.save(get_engine().edit(record, hours, kr_score, cc))
    return jsonify(updated.to_dict())


@app.route("/api/config/teams/<team_id>/weights", methods=["PUT"])
def api_update_team_weights(team_id):
    payload = request.get_json(silent=True) or {}
    try:
        get_config().update_team_weights(team_id, payload.get("weights", {}), name=payload.get("name"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    state["engine"] = None
    return jsonify({"status": "success", "team_id": team_id, "weights": get_config().get_team_weights(team_id)})


@app.route("/api/config/users/<employee_id>/multiplier", methods=["PUT"])
def api_update_user_multiplier(employee_id):
    payload = request.get_json(silent=True) or {}
    try:
        get_config().update_user_multiplier(employee_id, payload.get("multiplier"), notes=payload.get("notes"))
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    state["engine"] = None
    return jsonify(
        {
            "status": "success",
            "employee_id": employee_id,
            "multiplier": get_config().get_user_multiplier(employee_id),
        }
    )


def main():
    config = get_config()
    dashboard_config = config.dashboard_config

    app.run(
        debug=dashboard_config.get("debug", False),
        port=dashboard_config.get("port", 5001),
        host="0.0.0.0",
    )


if __name__ == "__main__":
    main()
