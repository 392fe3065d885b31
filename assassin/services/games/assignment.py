import random
from typing import Dict, Iterable, Optional


def assign_targets(players: Iterable[str], rng: Optional[random.Random] = None) -> Dict[str, str]:
    """Arrange players in one random cycle; each maps to the next.

    Shuffles the players and links every position to the following one,
    closing the loop from the last back to the first. Every cyclic
    arrangement is equally likely. A single player targets itself.
    """
    order = list(players)
    if not order:
        raise ValueError('Cannot assign targets without players')
    (rng or random).shuffle(order)
    return {player: order[(idx + 1) % len(order)] for idx, player in enumerate(order)}
