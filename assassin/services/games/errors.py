from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from .state import GameState


class GameError(str, Enum):
    """Every way a game operation can be refused.

    Each member carries the message shown to the player and the HTTP
    status the API answers with.
    """
    INVALID_CODE = 'invalid_code'
    GAME_NOT_FOUND = 'game_not_found'
    ALREADY_STARTED = 'already_started'
    ALREADY_JOINED = 'already_joined'
    NOT_OWNER = 'not_owner'
    INSUFFICIENT_PLAYERS = 'insufficient_players'
    NOT_STARTED = 'not_started'
    NOT_A_PARTICIPANT = 'not_a_participant'
    UNAUTHORIZED = 'unauthorized'
    COMMIT_CONFLICT = 'commit_conflict'

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    @property
    def http_status(self) -> int:
        return _STATUSES[self]

    @property
    def retryable(self) -> bool:
        return self is GameError.COMMIT_CONFLICT


_MESSAGES = {
    GameError.INVALID_CODE: 'Invalid game code.',
    GameError.GAME_NOT_FOUND: 'Invalid game id.',
    GameError.ALREADY_STARTED: 'This game has already started.',
    GameError.ALREADY_JOINED: 'Already part of this game.',
    GameError.NOT_OWNER: 'Must own game to start.',
    GameError.INSUFFICIENT_PLAYERS: 'Not enough players have joined to start.',
    GameError.NOT_STARTED: 'This game is not in progress.',
    GameError.NOT_A_PARTICIPANT: "Can't surrender to a game you aren't part of.",
    GameError.UNAUTHORIZED: 'You must be logged in.',
    GameError.COMMIT_CONFLICT: 'The game changed while your request was processed. Please retry.',
}

_STATUSES = {
    GameError.INVALID_CODE: 404,
    GameError.GAME_NOT_FOUND: 404,
    GameError.ALREADY_STARTED: 403,
    GameError.ALREADY_JOINED: 400,
    GameError.NOT_OWNER: 403,
    GameError.INSUFFICIENT_PLAYERS: 400,
    GameError.NOT_STARTED: 400,
    GameError.NOT_A_PARTICIPANT: 403,
    GameError.UNAUTHORIZED: 401,
    GameError.COMMIT_CONFLICT: 409,
}


@dataclass(frozen=True)
class Outcome:
    """Result of a game operation: a new state plus events, or an error."""
    state: Optional['GameState'] = None
    events: Tuple = field(default_factory=tuple)
    error: Optional[GameError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, state, *events) -> 'Outcome':
        return cls(state=state, events=tuple(events))

    @classmethod
    def failure(cls, error: GameError) -> 'Outcome':
        return cls(error=error)
