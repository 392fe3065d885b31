from typing import Callable, Optional

from flask import current_app

from .engine import GameEngine
from .errors import GameError, Outcome
from .notifications import NotificationRouter
from .repository import CommitConflict, GameRepository
from .state import GameState

DEFAULT_COMMIT_RETRIES = 5


class GameService:
    """Runs engine operations against stored games.

    Every mutation is load -> apply -> commit at the loaded version. A
    commit that loses the race is retried against the freshly committed
    game; once `max_retries` attempts have conflicted the caller gets a
    retryable COMMIT_CONFLICT. Events are dispatched only after their
    state has been committed.
    """

    def __init__(
        self,
        repository: GameRepository,
        router: NotificationRouter,
        engine: Optional[GameEngine] = None,
        max_retries: int = DEFAULT_COMMIT_RETRIES,
    ):
        self.repository = repository
        self.router = router
        self.engine = engine or GameEngine()
        self.max_retries = max_retries

    def create_game(self, caller_id: Optional[str], name: str, description: str) -> Outcome:
        if not caller_id:
            return Outcome.failure(GameError.UNAUTHORIZED)
        outcome = self.engine.create(caller_id, name, description, code_in_use=self.repository.code_in_use)
        try:
            state = self.repository.commit_game(outcome.state, expected_version=0)
        except CommitConflict:
            _log(f"[create] conflict inserting game={outcome.state.id}")
            return Outcome.failure(GameError.COMMIT_CONFLICT)
        _log(f"[create] game={state.id} code={state.code} owner={caller_id}")
        return Outcome.success(state)

    def join_game(self, caller_id: Optional[str], code: str) -> Outcome:
        return self._mutate(
            'join',
            caller_id,
            lambda: self.repository.load_game_by_code(code),
            lambda state: self.engine.join(state, caller_id, code),
            missing=GameError.INVALID_CODE,
        )

    def start_game(self, caller_id: Optional[str], game_id: str) -> Outcome:
        return self._mutate(
            'start',
            caller_id,
            lambda: self.repository.load_game(game_id),
            lambda state: self.engine.start(state, caller_id),
        )

    def surrender(self, caller_id: Optional[str], game_id: str) -> Outcome:
        def apply(state: GameState) -> Outcome:
            names = self.repository.display_names(state.roster)
            return self.engine.surrender(state, caller_id, display_name=lambda pid: names.get(pid, pid))

        return self._mutate('surrender', caller_id, lambda: self.repository.load_game(game_id), apply)

    def _mutate(
        self,
        label: str,
        caller_id: Optional[str],
        load: Callable[[], Optional[GameState]],
        apply: Callable[[GameState], Outcome],
        missing: GameError = GameError.GAME_NOT_FOUND,
    ) -> Outcome:
        if not caller_id:
            return Outcome.failure(GameError.UNAUTHORIZED)
        for attempt in range(1, self.max_retries + 1):
            state = load()
            if state is None:
                return Outcome.failure(missing)
            outcome = apply(state)
            if not outcome.ok:
                _log(f"[{label}] game={state.id} player={caller_id} refused={outcome.error.value}")
                return outcome
            try:
                committed = self.repository.commit_game(outcome.state, expected_version=state.version)
            except CommitConflict:
                _log(f"[{label}] game={state.id} player={caller_id} conflict at version={state.version} attempt={attempt}")
                continue
            _log(f"[{label}] game={committed.id} player={caller_id} status={committed.status.value} version={committed.version}")
            self.router.dispatch(outcome.events)
            return Outcome(state=committed, events=outcome.events)
        return Outcome.failure(GameError.COMMIT_CONFLICT)


def _log(message: str) -> None:
    try:
        current_app.logger.info(message)
    except RuntimeError:
        # Outside an application context there is no app logger
        pass
