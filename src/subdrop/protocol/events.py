"""
subdrop/protocol/events.py

Notifications emitted by subdrop.

Notifications are plain dataclasses. Components queue them while a call is
in progress and the NotificationHub delivers them only once the call has
committed, so subscribers never see events from a failed call.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

logger = logging.getLogger("subdrop.protocol.events")


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@dataclass
class Notification:
    """Base notification."""
    timestamp: float = field(default_factory=time.time, init=False)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["kind"] = self.kind
        return data


@dataclass
class DropDistributed(Notification):
    """A single drop reached an eligible recipient."""
    sender: str = ""
    recipient: str = ""
    amount: int = 0


@dataclass
class ScoreUpdated(Notification):
    """A sender's cumulative score changed."""
    sender: str = ""
    new_score: int = 0


@dataclass
class BatchSizeChanged(Notification):
    new_size: int = 0


@dataclass
class FundsWithdrawn(Notification):
    """Tokens held by the engine were moved to the owner."""
    owner: str = ""
    amount: int = 0


@dataclass
class SenderRecordReset(Notification):
    sender: str = ""
    recipient: str = ""


@dataclass
class OwnershipTransferred(Notification):
    previous_owner: str = ""
    new_owner: str = ""


@dataclass
class TokensPurchased(Notification):
    """Native currency was converted into tokens at the fixed rate."""
    buyer: str = ""
    amount_paid: int = 0
    tokens_out: int = 0


@dataclass
class NativeWithdrawn(Notification):
    destination: str = ""
    amount: int = 0


# ============================================================================
# HUB
# ============================================================================

class NotificationHub:
    """
    Delivers committed notifications to subscribers.

    Usage:
        hub = NotificationHub()
        hub.subscribe(lambda n: print(n.kind), kind="ScoreUpdated")
        hub.publish([ScoreUpdated(sender="0xA", new_score=3)])
    """

    def __init__(self, history_size: int = 1000):
        self._subscribers: List[Tuple[Optional[str], Callable[[Notification], None]]] = []
        self._history: Deque[Notification] = deque(maxlen=history_size)

    def subscribe(
        self,
        callback: Callable[[Notification], None],
        kind: Optional[str] = None,
    ) -> None:
        """
        Register a subscriber.

        Args:
            callback: Called with each delivered notification
            kind: Only deliver notifications of this class name (None = all)
        """
        self._subscribers.append((kind, callback))

    def unsubscribe(self, callback: Callable[[Notification], None]) -> None:
        self._subscribers = [(k, cb) for k, cb in self._subscribers if cb is not callback]

    def publish(self, notifications: List[Notification]) -> None:
        """Record and deliver notifications, in order."""
        for notification in notifications:
            self._history.append(notification)
            for kind, callback in list(self._subscribers):
                if kind is not None and kind != notification.kind:
                    continue
                try:
                    callback(notification)
                except Exception as e:
                    logger.error(f"{notification.kind} subscriber error: {e}")

    def history(self, kind: Optional[str] = None) -> List[Notification]:
        """Get delivered notifications, oldest first."""
        if kind is None:
            return list(self._history)
        return [n for n in self._history if n.kind == kind]

    def clear_history(self) -> None:
        self._history.clear()
