from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .events import GameUpdated, Notification


@dataclass(frozen=True)
class Subscription:
    """Who is listening: an authenticated player, optionally watching one game."""
    player_id: Optional[str]
    game_id: Optional[str] = None


def may_receive(subscription: Subscription, event: Any) -> bool:
    """Decide whether one subscriber gets one event.

    Game updates go to anyone watching the game and to every roster member
    (who may only know their own identity). Notifications go to roster
    members only.
    """
    is_member = subscription.player_id is not None and subscription.player_id in event.roster
    if isinstance(event, GameUpdated):
        return is_member or (subscription.game_id is not None and subscription.game_id == event.game_id)
    if isinstance(event, Notification):
        return is_member
    return False


class NotificationRouter:
    """Forwards committed game events to the bus under their topic.

    `bus` is anything with a `publish(topic, payload)` method; the bus is
    expected to filter deliveries with `may_receive`.
    """

    def __init__(self, bus):
        self.bus = bus

    def may_receive(self, subscription: Subscription, event: Any) -> bool:
        return may_receive(subscription, event)

    def dispatch(self, events: Iterable[Any]) -> None:
        for event in events:
            self.bus.publish(event.topic, event)
