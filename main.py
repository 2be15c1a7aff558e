import os
import logging
from flask import Flask, request, jsonify
from flask_cors import CORS
import league_scheduler as ls
import schedule_swap

app = Flask(__name__)
# Enable CORS for all routes, allowing requests from the league web app
CORS(app, resources={r"/api/*": {"origins": "*"}})

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _request_schedule(req_data):
    """Rebuild the caller's schedule; the service keeps no state of its own."""
    schedule_data = req_data.get('schedule')
    if not schedule_data:
        raise ValueError("Missing schedule")
    try:
        return ls.schedule_from_dict(schedule_data)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed schedule: {e}")


def _find_round(schedule, round_num):
    rnd = next((r for r in schedule.rounds if r.round_number == round_num), None)
    if rnd is None:
        raise ValueError(f"Round {round_num} not found")
    return rnd


@app.route('/api/health', methods=['GET'])
def health_check():
    return jsonify({"status": "ok"}), 200


@app.route('/api/schedule', methods=['POST'])
def create_schedule():
    """Generate a schedule for the given players and courts."""
    try:
        req_data = request.get_json(silent=True) or {}
        players = req_data.get('players')
        courts = req_data.get('courts')
        rounds_per_week = req_data.get('rounds_per_week')
        seed = req_data.get('seed')

        if not players or not courts:
            return jsonify({"error": "Missing players or courts"}), 400

        try:
            if rounds_per_week is not None:
                rounds_per_week = int(rounds_per_week)
            schedule = ls.generate_schedule(players, int(courts), rounds_per_week=rounds_per_week, seed=seed)
        except (ValueError, TypeError) as e:
            return jsonify({"error": str(e)}), 400

        if schedule.warnings:
            logger.info("Generated schedule with warnings: %s", "; ".join(schedule.warnings))

        return jsonify({
            "schedule": ls.schedule_to_dict(schedule),
            "summary": ls.schedule_summary(schedule, players),
        }), 200

    except Exception as e:
        logger.error(f"Error in schedule: {e}")
        return jsonify({"error": str(e)}), 500


@app.route('/api/validate', methods=['POST'])
def validate_schedule():
    """Re-check a (possibly hand-edited) schedule."""
    req_data = request.get_json(silent=True) or {}
    players = req_data.get('players')
    if not players:
        return jsonify({"error": "Missing players"}), 400

    try:
        schedule = _request_schedule(req_data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    violations = ls.validate_schedule_constraints(schedule, players)
    return jsonify({"violations": violations}), 200


@app.route('/api/swap/targets', methods=['POST'])
def swap_targets():
    """List the players the selected player may swap with."""
    req_data = request.get_json(silent=True) or {}
    round_num = req_data.get('round')
    player_id = req_data.get('player')

    if not round_num or not player_id:
        return jsonify({"error": "Missing round or player"}), 400

    try:
        schedule = _request_schedule(req_data)
        rnd = _find_round(schedule, round_num)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    if schedule_swap.find_player_position(player_id, rnd.games, rnd.byes) is None:
        return jsonify({"error": f"Player {player_id} not found in round {round_num}"}), 400

    targets = schedule_swap.get_valid_swap_targets(player_id, rnd.games, rnd.byes)
    return jsonify({"targets": targets}), 200


@app.route('/api/swap', methods=['POST'])
def swap():
    """Swap two players within a round and report week-wide fallout."""
    req_data = request.get_json(silent=True) or {}
    round_num = req_data.get('round')
    player1 = req_data.get('player1')
    player2 = req_data.get('player2')
    players = req_data.get('players')
    names = req_data.get('names')

    if not round_num or not player1 or not player2:
        return jsonify({"error": "Missing round, player1 or player2"}), 400

    try:
        schedule = _request_schedule(req_data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    updated, result, warnings = schedule_swap.swap_players(schedule, round_num, player1, player2,
                                                          players, names)
    if not result.success:
        return jsonify({"error": result.error}), 400

    logger.info("Swapped %s and %s in round %s", player1, player2, round_num)
    return jsonify({
        "schedule": ls.schedule_to_dict(updated),
        "warnings": warnings,
    }), 200


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 8080)))
