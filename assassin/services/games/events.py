from dataclasses import dataclass
from typing import Any, Dict, Tuple

GAME_UPDATE = 'game_update'
NOTIFICATION = 'notification'


@dataclass(frozen=True)
class GameUpdated:
    """The game changed; clients should refetch it."""
    game_id: str
    code: str
    status: str
    roster: Tuple[str, ...]

    topic = GAME_UPDATE

    @classmethod
    def of(cls, state) -> 'GameUpdated':
        return cls(game_id=state.id, code=state.code, status=state.status.value, roster=state.roster)

    def to_payload(self) -> Dict[str, Any]:
        return {'game_id': self.game_id, 'game_code': self.code, 'status': self.status}


@dataclass(frozen=True)
class Notification:
    """A message for every player in the game."""
    game_id: str
    roster: Tuple[str, ...]
    message: str
    kind: str

    topic = NOTIFICATION

    @classmethod
    def of(cls, state, message: str, kind: str) -> 'Notification':
        return cls(game_id=state.id, roster=state.roster, message=message, kind=kind)

    def to_payload(self) -> Dict[str, Any]:
        return {'game_id': self.game_id, 'kind': self.kind, 'message': self.message}
