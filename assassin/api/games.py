from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from functools import partial
from typing import Any, Dict, Mapping, Optional

from assassin.services.games.codes import random_code
from assassin.services.games.engine import GameEngine
from assassin.services.games.errors import GameError, Outcome
from assassin.services.games.notifications import NotificationRouter
from assassin.services.games.repository import GameRepository
from assassin.services.games.service import GameService
from assassin.services.games.state import GameState, GameStatus


games = Blueprint('games', __name__)


def _game_service() -> GameService:
    cfg = current_app.config
    engine = GameEngine(
        min_players=int(cfg.get('MIN_PLAYERS', 3)),
        code_factory=partial(random_code, int(cfg.get('JOIN_CODE_LENGTH', 5))),
    )
    router = NotificationRouter(current_app.extensions['game_bus'])
    return GameService(GameRepository(), router, engine, max_retries=int(cfg.get('COMMIT_MAX_RETRIES', 5)))


def _caller_id() -> Optional[str]:
    return str(current_user.id) if current_user.is_authenticated else None


def _error(err: GameError):
    body = {'error': err.message, 'code': err.value}
    if err.retryable:
        body['retryable'] = True
    return jsonify(body), err.http_status


def _player(player_id: Optional[str], names: Mapping[str, str]) -> Optional[Dict[str, Any]]:
    if player_id is None:
        return None
    return {'id': player_id, 'name': names.get(player_id, player_id)}


def serialize_game(state: GameState, viewer_id: Optional[str], names: Mapping[str, str]) -> Dict[str, Any]:
    """Viewer-relative view of a game; only the viewer's own target is exposed."""
    eliminated = set(state.eliminated)
    me = None
    if viewer_id is not None and state.is_member(viewer_id):
        me = {
            'id': viewer_id,
            'dead': viewer_id in eliminated,
            'target': _player(state.target_of(viewer_id), names) if state.status is GameStatus.ACTIVE else None,
        }
    return {
        'game_id': state.id,
        'name': state.name,
        'code': state.code,
        'description': state.description,
        'owner': _player(state.owner, names),
        'status': state.status.value,
        'started': state.started,
        'completed': state.completed,
        'start_time': state.start_time.isoformat() if state.start_time else None,
        'winner': _player(state.winner, names),
        'me': me,
        'players': [
            {'id': pid, 'name': names.get(pid, pid), 'dead': pid in eliminated}
            for pid in state.roster
        ],
        'player_count': state.player_count,
        'alive_count': state.alive_count,
        'version': state.version,
    }


def _respond(outcome: Outcome, status: int = 200):
    if not outcome.ok:
        return _error(outcome.error)
    names = GameRepository().display_names(outcome.state.roster)
    return jsonify(serialize_game(outcome.state, _caller_id(), names)), status


@games.route('/create', methods=['POST'])
@login_required
def create_game():
    """
    Creates a new game lobby owned by the current user.
    """
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Game name is required'}), 400
    outcome = _game_service().create_game(_caller_id(), name, data.get('description') or '')
    return _respond(outcome, 201)


@games.route('/join', methods=['POST'])
@login_required
def join_game():
    """
    Allows a logged-in user to join a game using a game code.
    """
    data = request.get_json(silent=True) or {}
    code = data.get('code') or data.get('game_code')
    if not code:
        return jsonify({'error': 'Game code is required'}), 400
    return _respond(_game_service().join_game(_caller_id(), code))


@games.route('/<string:game_id>/start', methods=['POST'])
@login_required
def start_game(game_id):
    """
    Assigns targets and moves the game from the lobby to active.
    """
    return _respond(_game_service().start_game(_caller_id(), game_id))


@games.route('/<string:game_id>/surrender', methods=['POST'])
@login_required
def surrender(game_id):
    """
    Reports that the current user has been eliminated.
    """
    return _respond(_game_service().surrender(_caller_id(), game_id))


@games.route('/', methods=['GET'])
@login_required
def list_games():
    """
    Returns every game the current user has joined.
    """
    repo = GameRepository()
    states = repo.list_games_for_player(_caller_id())
    names = repo.display_names({pid for s in states for pid in s.roster})
    return jsonify([serialize_game(s, _caller_id(), names) for s in states])


@games.route('/<string:game_id>', methods=['GET'])
@login_required
def get_game(game_id):
    repo = GameRepository()
    state = repo.load_game(game_id)
    if state is None:
        return _error(GameError.GAME_NOT_FOUND)
    return jsonify(serialize_game(state, _caller_id(), repo.display_names(state.roster)))


@games.route('/code/<string:code>', methods=['GET'])
@login_required
def get_game_by_code(code):
    repo = GameRepository()
    state = repo.load_game_by_code(code)
    if state is None:
        return _error(GameError.INVALID_CODE)
    return jsonify(serialize_game(state, _caller_id(), repo.display_names(state.roster)))
