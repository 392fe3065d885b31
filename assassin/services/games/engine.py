import random
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from .assignment import assign_targets
from .codes import random_code
from .errors import GameError, Outcome
from .events import GameUpdated, Notification
from .state import GameState, GameStatus, normalize_code

DEFAULT_MIN_PLAYERS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameEngine:
    """Applies the game rules to a snapshot and reports what happened.

    The engine keeps no game state of its own and never touches storage:
    each operation takes a GameState, validates the caller against it and
    returns an Outcome holding either the new snapshot plus the events to
    publish, or the GameError that refused the request. The input snapshot
    is never modified.

    Randomness, time and join codes are injectable so tests can pin them:

        engine = GameEngine(rng=random.Random(7))
        outcome = engine.start(state, caller_id=state.owner)
    """

    def __init__(
        self,
        min_players: int = DEFAULT_MIN_PLAYERS,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
        code_factory: Callable[[], str] = random_code,
    ):
        self.min_players = min_players
        self.rng = rng
        self.clock = clock
        self.code_factory = code_factory

    def create(
        self,
        owner_id: str,
        name: str,
        description: str,
        code_in_use: Callable[[str], bool] = lambda code: False,
        game_id: Optional[str] = None,
    ) -> Outcome:
        while True:
            code = normalize_code(self.code_factory())
            if not code_in_use(code):
                break
        state = GameState(
            id=game_id or uuid.uuid4().hex,
            code=code,
            name=name,
            description=description or '',
            owner=owner_id,
            roster=(owner_id,),
            created_at=self.clock(),
        )
        return Outcome.success(state)

    def join(self, state: Optional[GameState], caller_id: str, code: str) -> Outcome:
        if state is None or state.code != normalize_code(code):
            return Outcome.failure(GameError.INVALID_CODE)
        if state.status is not GameStatus.LOBBY:
            return Outcome.failure(GameError.ALREADY_STARTED)
        if state.is_member(caller_id):
            return Outcome.failure(GameError.ALREADY_JOINED)
        new_state = state.with_player(caller_id)
        return Outcome.success(new_state, GameUpdated.of(new_state))

    def start(self, state: GameState, caller_id: str) -> Outcome:
        if caller_id != state.owner:
            return Outcome.failure(GameError.NOT_OWNER)
        if state.status is not GameStatus.LOBBY:
            return Outcome.failure(GameError.ALREADY_STARTED)
        if state.player_count < self.min_players:
            return Outcome.failure(GameError.INSUFFICIENT_PLAYERS)
        targets = assign_targets(state.roster, self.rng)
        new_state = state.activated(targets, self.clock())
        return Outcome.success(
            new_state,
            GameUpdated.of(new_state),
            Notification.of(new_state, f'{state.name} has started.', 'started'),
        )

    def surrender(
        self,
        state: GameState,
        caller_id: str,
        display_name: Callable[[str], str] = str,
    ) -> Outcome:
        if state.status is not GameStatus.ACTIVE:
            return Outcome.failure(GameError.NOT_STARTED)
        if not state.is_alive(caller_id):
            return Outcome.failure(GameError.NOT_A_PARTICIPANT)
        new_state, hunter = state.relinked(caller_id)
        if new_state.completed:
            notice = Notification.of(
                new_state, f'{display_name(hunter)} won the game "{state.name}"!', 'won'
            )
        else:
            notice = Notification.of(
                new_state,
                f'{display_name(hunter)} has eliminated {display_name(caller_id)}.',
                'eliminated',
            )
        return Outcome.success(new_state, notice, GameUpdated.of(new_state))
