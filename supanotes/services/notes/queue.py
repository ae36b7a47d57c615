"""Per-principal serialization of cache operations."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

LOGGER = logging.getLogger(__name__)


@dataclass
class _Lane:
    next_ticket: int = 0
    serving: int = 0
    owner: Optional[int] = None
    depth: int = 0


class OperationQueue:
    """
    FIFO single-flight lanes keyed by principal id.

    ``slot(key)`` blocks until every earlier caller for ``key`` has left its
    slot, so operations complete in invocation order. Re-entry from the thread
    that holds the lane runs inline.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._lanes: Dict[str, _Lane] = {}

    @contextmanager
    def slot(self, key: str) -> Iterator[None]:
        me = threading.get_ident()
        with self._cond:
            lane = self._lanes.setdefault(key, _Lane())
            if lane.owner == me:
                lane.depth += 1
                reentrant = True
            else:
                reentrant = False
                ticket = lane.next_ticket
                lane.next_ticket += 1
                if ticket != lane.serving:
                    LOGGER.debug("Queued behind %d operation(s)", ticket - lane.serving)
                while lane.serving != ticket:
                    self._cond.wait()
                lane.owner = me
        try:
            yield
        finally:
            with self._cond:
                if reentrant:
                    lane.depth -= 1
                else:
                    lane.owner = None
                    lane.serving += 1
                    if lane.serving == lane.next_ticket and self._lanes.get(key) is lane:
                        del self._lanes[key]
                    self._cond.notify_all()

    def pending(self, key: str) -> int:
        with self._cond:
            lane = self._lanes.get(key)
            return 0 if lane is None else lane.next_ticket - lane.serving
