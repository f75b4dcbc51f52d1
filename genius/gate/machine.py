"""
Staged access gate in front of the admin login.

Intent:
    The admin entry point hides its login form behind two deliberate gestures:
    a long press (touch held for 2 s) and an upward drag of more than 80 px
    (mouse). Each gesture advances the stage by one; stage 3 reveals the form.

Behavior:
    - A fresh visit always starts at stage 1; state is never persisted.
    - `advance()` clamps at the final stage.
    - A press arms a hold timer; releasing before the threshold cancels it and
      one press fires at most once.
    - Plain taps and short drags change nothing.

Security:
    The gate is obscurity only. It never authenticates anyone; the login that
    follows it does.
"""
from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import anyio

_log = logging.getLogger("genius.gate")

FIRST_STAGE = 1
FINAL_STAGE = 3
HOLD_THRESHOLD_MS = 2000
DRAG_THRESHOLD_PX = 80


class GateStateMachine:
    def __init__(self) -> None:
        self.stage = FIRST_STAGE
        self._press_started_at: Optional[float] = None
        self._press_fired = False

    @property
    def show_login(self) -> bool:
        return self.stage >= FINAL_STAGE

    def advance(self) -> int:
        self.stage = min(self.stage + 1, FINAL_STAGE)
        _log.debug("Gate stage %s", self.stage)
        return self.stage

    # --- Long press -------------------------------------------------------------

    def press_started(self, at_ms: float) -> None:
        self._press_started_at = at_ms
        self._press_fired = False

    def poll(self, now_ms: float) -> bool:
        """Fire the armed hold timer once it has expired. Returns True when it fired."""
        if self._press_started_at is None or self._press_fired:
            return False
        if now_ms - self._press_started_at < HOLD_THRESHOLD_MS:
            return False
        self._press_fired = True
        self.advance()
        return True

    def press_ended(self, at_ms: float) -> None:
        """Release (or touch cancel): the pending timer is cleared without firing."""
        self._press_started_at = None

    def hold(self, held_ms: float) -> bool:
        """A complete press reported after the fact, e.g. by an HTTP client."""
        self.press_started(0)
        fired = self.poll(held_ms)
        self.press_ended(held_ms)
        return fired

    # --- Drag / tap -------------------------------------------------------------

    def drag(self, start_y: float, end_y: float) -> bool:
        """Advance when the pointer moved up by more than the drag threshold."""
        if start_y - end_y > DRAG_THRESHOLD_PX:
            self.advance()
            return True
        return False

    def tap(self) -> bool:
        return False


class PressTimer:
    """Drives the hold timer of a machine in real time on the event loop.

    Usage:
        released = anyio.Event()
        fired = await PressTimer(machine).hold(released)
    """

    def __init__(self, machine: GateStateMachine, *, threshold_ms: int = HOLD_THRESHOLD_MS):
        self.machine = machine
        self.threshold_ms = threshold_ms

    async def hold(self, released: anyio.Event) -> bool:
        with anyio.move_on_after(self.threshold_ms / 1000):
            await released.wait()
            return False
        self.machine.advance()
        return True


@dataclass
class _Visit:
    machine: GateStateMachine
    expires_at: float


class GateVisitStore:
    """Per-visit gate machines kept in memory with a sliding TTL."""

    def __init__(self, *, ttl_seconds: int = 900, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._visits: Dict[str, _Visit] = {}

    def _purge(self) -> None:
        now = self._clock()
        for visit_id in [k for k, v in self._visits.items() if v.expires_at < now]:
            self._visits.pop(visit_id, None)

    def create(self) -> Tuple[str, GateStateMachine]:
        self._purge()
        visit_id = secrets.token_urlsafe(16)
        machine = GateStateMachine()
        self._visits[visit_id] = _Visit(machine, self._clock() + self.ttl_seconds)
        return visit_id, machine

    def get(self, visit_id: str) -> Optional[GateStateMachine]:
        visit = self._visits.get(visit_id)
        if visit is None:
            return None
        now = self._clock()
        if visit.expires_at < now:
            self._visits.pop(visit_id, None)
            return None
        visit.expires_at = now + self.ttl_seconds
        return visit.machine

    def is_unlocked(self, visit_id: Optional[str]) -> bool:
        machine = self.get(visit_id) if visit_id else None
        return bool(machine and machine.show_login)

    def end(self, visit_id: str) -> None:
        self._visits.pop(visit_id, None)


__all__ = [
    "GateStateMachine",
    "PressTimer",
    "GateVisitStore",
    "HOLD_THRESHOLD_MS",
    "DRAG_THRESHOLD_PX",
    "FIRST_STAGE",
    "FINAL_STAGE",
]
