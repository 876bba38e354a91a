from flask import Blueprint, jsonify, request, current_app
from rackscore import socketio
from rackscore.services.games.errors import GameError, ValidationError


games = Blueprint('games', __name__)


def _engine():
    return current_app.extensions['scoring']


def _emit_state_update(game_id: int) -> None:
    socketio.emit('state_update', {'game_id': game_id}, to=f"game:{game_id}", namespace='/ws')


def _optional_int(data: dict, key: str):
    value = data.get(key)
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{key} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be an integer')


@games.errorhandler(GameError)
def handle_game_error(exc: GameError):
    current_app.logger.info(f"[rejected] {request.method} {request.path} {exc.status_code} {exc.reason}")
    return jsonify({'error': exc.reason}), exc.status_code


@games.route('', methods=['POST'])
def create_game():
    data = request.get_json(silent=True) or {}
    game = _engine().lifecycle.create_game(
        home_team_id=_optional_int(data, 'home_team_id'),
        away_team_id=_optional_int(data, 'away_team_id'),
        home_lineup_ids=data.get('home_lineup_ids') or [],
        away_lineup_ids=data.get('away_lineup_ids') or [],
        stats_source=data.get('stats_source') or 'TRACKED',
        location=data.get('location'),
        scheduled_at=data.get('scheduled_at'),
    )
    return jsonify({'id': game.id, 'status': game.status}), 201


@games.route('/<int:game_id>/start', methods=['POST'])
def start_game(game_id):
    game = _engine().lifecycle.start_game(game_id)
    _emit_state_update(game_id)
    return jsonify(game.to_dict())


@games.route('/<int:game_id>/events', methods=['POST'])
def append_event(game_id):
    data = request.get_json(silent=True) or {}
    if not data.get('result_type'):
        return jsonify({'error': 'result_type is required'}), 400
    event = _engine().projector.apply_event(
        game_id,
        data['result_type'],
        team_id=_optional_int(data, 'team_id'),
        shooter_id=_optional_int(data, 'shooter_id'),
        count=data.get('count'),
    )
    _emit_state_update(game_id)
    return jsonify({'event_id': event.id}), 201


@games.route('/<int:game_id>/undo', methods=['POST'])
def undo_event(game_id):
    _engine().projector.undo(game_id)
    _emit_state_update(game_id)
    return jsonify({'ok': True})


@games.route('/<int:game_id>/advance', methods=['POST'])
def advance_possession(game_id):
    _engine().projector.advance(game_id)
    _emit_state_update(game_id)
    return jsonify({'ok': True})


@games.route('/<int:game_id>/admin-adjust', methods=['POST'])
def admin_adjust(game_id):
    data = request.get_json(silent=True) or {}
    player_id = _optional_int(data, 'player_id')
    if player_id is None or not data.get('result_type') or not data.get('action'):
        return jsonify({'error': 'player_id, result_type and action are required'}), 400
    _engine().projector.adjust(
        game_id,
        player_id,
        data['result_type'],
        data['action'],
        actor=data.get('actor'),
    )
    _emit_state_update(game_id)
    return jsonify({'ok': True})


@games.route('/<int:game_id>/recompute', methods=['POST'])
def recompute_state(game_id):
    data = request.get_json(silent=True) or {}
    engine = _engine()
    engine.projector.recompute(game_id, preserve_final_status=bool(data.get('preserve_final_status')))
    _emit_state_update(game_id)
    return jsonify(engine.projector.describe(game_id))


@games.route('/<int:game_id>/finalize', methods=['POST'])
def finalize_game(game_id):
    data = request.get_json(silent=True) or {}
    _engine().projector.finalize(game_id, winner_team_id=_optional_int(data, 'winner_team_id'))
    _emit_state_update(game_id)
    return jsonify({'ok': True})


@games.route('/<int:game_id>/state', methods=['GET'])
def get_game_state(game_id):
    return jsonify(_engine().projector.describe(game_id))
