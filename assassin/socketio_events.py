from flask_socketio import emit
from flask import current_app, request
from flask_login import current_user
from typing import Dict

from assassin import socketio
from assassin.services.games.notifications import Subscription, may_receive

NAMESPACE = '/ws'

# sid -> what that socket is listening for
_subscriptions: Dict[str, Subscription] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


class SocketIOBus:
    """Publishes game events to connected sockets.

    Each event is checked against every socket's subscription, so who
    receives it is decided at delivery time rather than by room names.
    """

    def __init__(self, sio, namespace: str = NAMESPACE):
        self.sio = sio
        self.namespace = namespace

    def publish(self, topic: str, payload) -> None:
        message = payload.to_payload()
        for sid, subscription in list(_subscriptions.items()):
            if may_receive(subscription, payload):
                self.sio.emit(topic, message, to=sid, namespace=self.namespace)


def handle_connect(auth=None):
    if not current_user.is_authenticated:
        return False
    player_id = str(current_user.id)
    _subscriptions[_get_sid()] = Subscription(player_id=player_id)
    current_app.logger.info(f"[ws-connect] player={player_id}")
    emit('connected', {'player_id': player_id})


def handle_disconnect(*args):
    sub = _subscriptions.pop(_get_sid(), None)
    if sub:
        current_app.logger.info(f"[ws-disconnect] player={sub.player_id}")


def handle_watch_game(data):
    game_id = (data or {}).get('game_id')
    if not game_id:
        emit('error', {'message': 'game_id is required'})
        return
    sid = _get_sid()
    current = _subscriptions.get(sid)
    if current is None:
        emit('error', {'message': 'not connected'})
        return
    _subscriptions[sid] = Subscription(player_id=current.player_id, game_id=str(game_id))
    emit('watching', {'game_id': str(game_id)})


def handle_unwatch_game(data=None):
    sid = _get_sid()
    current = _subscriptions.get(sid)
    if current is not None:
        _subscriptions[sid] = Subscription(player_id=current.player_id)
    emit('unwatched', {})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('watch_game', handle_watch_game, namespace=NAMESPACE)
    socketio.on_event('unwatch_game', handle_unwatch_game, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
