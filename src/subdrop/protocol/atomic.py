"""
subdrop/protocol/atomic.py

All-or-nothing, non-reentrant units of work.

An AtomicSection wraps every mutating subdrop operation:
- Calls from different threads are serialized by a re-entrant lock
- A nested call from the thread that already holds the section (for
  example a token transfer hook calling back into the engine) is rejected
- State is snapshotted before the body runs and restored if it raises;
  ledgers are rolled back through their checkpoint capability
- Queued notifications are published only after the body commits
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Sequence

from ..errors import ReentrancyError
from ..ledger.base import TokenLedger
from .events import Notification, NotificationHub

logger = logging.getLogger("subdrop.protocol.atomic")


class AtomicSection:
    """
    Guard shared by every mutating operation of one component.

    Usage:
        section = AtomicSection(
            snapshot=state.snapshot,
            restore=state.restore,
            ledgers=[ledger],
            hub=hub,
        )

        with section.run("distribute") as pending:
            ...                      # mutate state, call the ledger
            pending.append(event)    # published after commit
    """

    def __init__(
        self,
        snapshot: Callable[[], Any],
        restore: Callable[[Any], None],
        ledgers: Sequence[TokenLedger] = (),
        hub: Optional[NotificationHub] = None,
    ):
        self._snapshot = snapshot
        self._restore = restore
        self._ledgers = list(ledgers)
        self._hub = hub

        self._lock = threading.RLock()
        self._active: Optional[str] = None

    @property
    def active(self) -> Optional[str]:
        """Name of the operation currently running, if any."""
        return self._active

    @contextmanager
    def run(self, operation: str) -> Iterator[List[Notification]]:
        """
        Run `operation` as one indivisible unit.

        Yields:
            List to which the body appends notifications

        Raises:
            ReentrancyError: If a section is already active on this thread
        """
        pending: List[Notification] = []

        with self._lock:
            if self._active is not None:
                raise ReentrancyError(operation, self._active)

            self._active = operation
            state = self._snapshot()
            checkpoints = [ledger.checkpoint() for ledger in self._ledgers]
            try:
                yield pending
            except BaseException:
                self._restore(state)
                for ledger, checkpoint in zip(self._ledgers, checkpoints):
                    ledger.rollback(checkpoint)
                logger.debug(f"{operation} rolled back")
                raise
            else:
                for ledger, checkpoint in zip(self._ledgers, checkpoints):
                    ledger.commit(checkpoint)
            finally:
                self._active = None

        if self._hub is not None and pending:
            self._hub.publish(pending)

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock for a read so it never sees a half-applied call."""
        with self._lock:
            yield
