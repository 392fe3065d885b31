"""Game domain services: target chains, rules engine and persistence.

This package contains the game rules as pure logic (state, assignment,
engine) plus the collaborators that store games and fan out events,
keeping transport concerns separated from core game mechanics.
"""

from .engine import GameEngine
from .errors import GameError, Outcome
from .state import GameState, GameStatus

__all__ = ['GameEngine', 'GameError', 'GameState', 'GameStatus', 'Outcome']
