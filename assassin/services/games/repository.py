"""SQLAlchemy persistence for game snapshots.

Each game row carries a `version`. Commits are compare-and-swap on that
column, so of two writers that loaded the same revision only the first one
lands; the second gets CommitConflict and must reload.
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError

from assassin import db
from assassin.models import Game, Player, User
from .state import GameState, GameStatus, normalize_code


class CommitConflict(Exception):
    """Another writer committed the game since this snapshot was loaded."""

    def __init__(self, game_id: str, expected_version: int):
        self.game_id = game_id
        self.expected_version = expected_version
        super().__init__(f"Game {game_id} is no longer at version {expected_version}")


def _user_pk(player_id: str) -> int:
    return int(player_id)


def _player_id(user_pk: Optional[int]) -> Optional[str]:
    return str(user_pk) if user_pk is not None else None


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_state(game: Game) -> GameState:
    players = list(game.players)
    gone = sorted((p for p in players if p.eliminated), key=lambda p: p.eliminated_order or 0)
    return GameState(
        id=game.id,
        code=game.code,
        name=game.name,
        description=game.description or '',
        owner=_player_id(game.owner_id),
        roster=tuple(_player_id(p.user_id) for p in players),
        status=GameStatus(game.status),
        start_time=_as_utc(game.start_time),
        targets={_player_id(p.user_id): _player_id(p.target_id) for p in players if p.target_id is not None},
        eliminated=tuple(_player_id(p.user_id) for p in gone),
        winner=_player_id(game.winner_id),
        version=game.version,
        created_at=_as_utc(game.created_at),
    )


class GameRepository:
    """Loads and commits GameState snapshots through the Flask-SQLAlchemy session."""

    def load_game(self, game_id: str) -> Optional[GameState]:
        game = db.session.get(Game, game_id)
        return to_state(game) if game else None

    def load_game_by_code(self, code: str) -> Optional[GameState]:
        """Find the game holding `code`, preferring one that is not completed."""
        code = normalize_code(code)
        if not code:
            return None
        game = (
            Game.query.filter_by(code=code)
            .order_by(case((Game.status == GameStatus.COMPLETED.value, 1), else_=0), Game.created_at.desc())
            .first()
        )
        return to_state(game) if game else None

    def code_in_use(self, code: str) -> bool:
        return Game.query.filter(
            Game.code == normalize_code(code),
            Game.status != GameStatus.COMPLETED.value,
        ).first() is not None

    def list_games_for_player(self, player_id: str) -> List[GameState]:
        games = (
            Game.query.join(Player, Player.game_id == Game.id)
            .filter(Player.user_id == _user_pk(player_id))
            .order_by(Game.created_at.desc())
            .all()
        )
        return [to_state(g) for g in games]

    def display_names(self, player_ids: Iterable[str]) -> Dict[str, str]:
        pks = {_user_pk(pid) for pid in player_ids if pid is not None}
        if not pks:
            return {}
        return {str(u.id): u.username for u in User.query.filter(User.id.in_(pks)).all()}

    def commit_game(self, state: GameState, expected_version: int) -> GameState:
        """Persist `state` if the stored game is still at `expected_version`.

        `expected_version` 0 inserts a new game. Returns the snapshot at its
        new version; raises CommitConflict and rolls back otherwise. An insert
        that collides with an existing game id is a conflict too; any other
        integrity error is rolled back and re-raised.
        """
        new_version = expected_version + 1
        try:
            if expected_version == 0:
                db.session.add(Game(
                    id=state.id,
                    code=state.code,
                    name=state.name,
                    description=state.description,
                    owner_id=_user_pk(state.owner),
                    status=state.status.value,
                    version=new_version,
                    created_at=state.created_at,
                ))
                db.session.flush()
            else:
                result = db.session.execute(
                    update(Game)
                    .where(Game.id == state.id, Game.version == expected_version)
                    .values(
                        status=state.status.value,
                        start_time=state.start_time,
                        winner_id=_user_pk(state.winner) if state.winner else None,
                        version=new_version,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise CommitConflict(state.id, expected_version)
            self._sync_players(state)
            db.session.commit()
        except CommitConflict:
            db.session.rollback()
            raise
        except IntegrityError as exc:
            db.session.rollback()
            if expected_version == 0 and db.session.get(Game, state.id) is not None:
                raise CommitConflict(state.id, expected_version) from exc
            raise
        return state.committed(new_version)

    def _sync_players(self, state: GameState) -> None:
        rows = {p.user_id: p for p in Player.query.filter_by(game_id=state.id).all()}
        order = {pid: idx for idx, pid in enumerate(state.eliminated)}
        for position, player_id in enumerate(state.roster):
            pk = _user_pk(player_id)
            row = rows.get(pk)
            if row is None:
                row = Player(game_id=state.id, user_id=pk, position=position)
                db.session.add(row)
            target = state.targets.get(player_id)
            row.target_id = _user_pk(target) if target is not None else None
            row.eliminated = player_id in order
            row.eliminated_order = order.get(player_id)
        db.session.flush()
