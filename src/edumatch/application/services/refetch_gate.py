"""Suppression of catalog refetches around an optimistic removal."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import FrozenSet, Optional

LOGGER = logging.getLogger(__name__)


class GateState(Enum):
    OPEN = "open"
    SUPPRESSED = "suppressed"


class RefetchGate:
    """Two-state gate read by the catalog orchestrator.

    While ``SUPPRESSED`` the orchestrator skips refetches and keeps the hidden
    ids out of any response that lands late.  Every ``suppress`` call starts a
    new generation so that a grace timer armed for an earlier removal cannot
    reopen the gate under a later one.
    """

    def __init__(self) -> None:
        self._state = GateState.OPEN
        self._hidden: set[str] = set()
        self._generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def is_suppressed(self) -> bool:
        return self._state is GateState.SUPPRESSED

    @property
    def hidden_ids(self) -> FrozenSet[str]:
        return frozenset(self._hidden)

    def suppress(self, post_id: str) -> int:
        self._cancel_timer()
        self._generation += 1
        self._state = GateState.SUPPRESSED
        self._hidden.add(post_id)
        return self._generation

    def release(self, generation: Optional[int] = None) -> None:
        """Reopen the gate; a stale *generation* is ignored."""
        if generation is not None and generation != self._generation:
            return
        self._cancel_timer()
        self._state = GateState.OPEN
        self._hidden.clear()

    def unhide(self, post_id: str) -> None:
        """Stop hiding *post_id*; the gate reopens once nothing is hidden."""
        self._hidden.discard(post_id)
        if not self._hidden and self._state is GateState.SUPPRESSED:
            LOGGER.debug("%s re-added during its removal grace; catalog refetches re-enabled", post_id)
            self._cancel_timer()
            self._state = GateState.OPEN

    def release_later(self, delay_sec: float, generation: int) -> None:
        """Reopen the gate after *delay_sec* unless it was re-suppressed."""
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay_sec, self._on_grace_elapsed, generation)

    def _on_grace_elapsed(self, generation: int) -> None:
        self._timer = None
        if generation == self._generation:
            LOGGER.debug("Removal grace elapsed; catalog refetches re-enabled")
            self.release(generation)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
