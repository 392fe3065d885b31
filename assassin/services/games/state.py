from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple


class GameStatus(str, Enum):
    LOBBY = 'lobby'
    ACTIVE = 'active'
    COMPLETED = 'completed'


def normalize_code(code: str) -> str:
    """Join codes are compared case-insensitively and stored upper-cased."""
    return (code or '').strip().upper()


@dataclass(frozen=True)
class GameState:
    """Snapshot of one game: roster, target chain and lifecycle status.

    Instances are never mutated. Transitions return a new snapshot, so an
    operation that is refused half-way leaves the caller's copy untouched.
    `targets` is held as a read-only mapping proxy over a private copy.
    `version` is the revision the snapshot was loaded at (0 if it was never
    committed).
    """
    id: str
    code: str
    name: str
    description: str
    owner: str
    roster: Tuple[str, ...]
    status: GameStatus = GameStatus.LOBBY
    start_time: Optional[datetime] = None
    targets: Mapping[str, str] = field(default_factory=dict)
    eliminated: Tuple[str, ...] = ()
    winner: Optional[str] = None
    version: int = 0
    created_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'targets', MappingProxyType(dict(self.targets)))

    def __hash__(self) -> int:
        return hash((self.id, self.version, self.status, self.roster, self.eliminated))

    @property
    def started(self) -> bool:
        return self.status is not GameStatus.LOBBY

    @property
    def completed(self) -> bool:
        return self.status is GameStatus.COMPLETED

    @property
    def remaining(self) -> Tuple[str, ...]:
        """Players still in contention, in roster order."""
        gone = set(self.eliminated)
        return tuple(p for p in self.roster if p not in gone)

    @property
    def player_count(self) -> int:
        return len(self.roster)

    @property
    def alive_count(self) -> int:
        return len(self.remaining)

    def is_member(self, player_id: str) -> bool:
        return player_id in self.roster

    def is_alive(self, player_id: str) -> bool:
        return self.is_member(player_id) and player_id not in self.eliminated

    def target_of(self, player_id: str) -> Optional[str]:
        return self.targets.get(player_id)

    def hunter_of(self, player_id: str) -> Optional[str]:
        for hunter, victim in self.targets.items():
            if victim == player_id:
                return hunter
        return None

    def iter_chain(self, start: str) -> Iterator[str]:
        """Walk the target chain from `start` until it returns to `start`.

        Yields `start` first. Stops early if the chain breaks or revisits a
        player other than `start`, so a corrupted mapping cannot loop forever.
        """
        seen = set()
        current = start
        while current is not None and current not in seen:
            seen.add(current)
            yield current
            current = self.targets.get(current)
            if current == start:
                return

    # ---- pure transitions ----

    def with_player(self, player_id: str) -> 'GameState':
        return replace(self, roster=self.roster + (player_id,))

    def activated(self, targets: Mapping[str, str], start_time: datetime) -> 'GameState':
        return replace(
            self,
            status=GameStatus.ACTIVE,
            targets=targets,
            start_time=start_time,
        )

    def relinked(self, player_id: str) -> Tuple['GameState', str]:
        """Remove `player_id` from the chain and hand their target to their hunter.

        Returns the new snapshot and the hunter. If the hunter ends up
        targeting itself it is the last player standing and the snapshot is
        completed with it as winner.
        """
        victim = self.targets[player_id]
        hunter = self.hunter_of(player_id)
        targets = dict(self.targets)
        targets[hunter] = victim
        del targets[player_id]
        state = replace(self, targets=targets, eliminated=self.eliminated + (player_id,))
        if hunter == victim:
            state = replace(state, status=GameStatus.COMPLETED, winner=hunter)
        return state, hunter

    def committed(self, version: int) -> 'GameState':
        return replace(self, version=version)
