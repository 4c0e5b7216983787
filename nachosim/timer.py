"""Emulation of a hardware timer that interrupts the simulated CPU.

The timer asks the interrupt controller to call it back after a number of
simulated ticks; each time it fires it schedules the next interrupt and
then runs its handler. With ``randomize`` set, the delay is drawn at
random so that time-slicing happens at varying points.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from nachosim.sysdep import random_int

__all__ = ["Timer", "TIMER_TICKS", "TIMER_INT"]

# Default number of simulated ticks between timer interrupts.
TIMER_TICKS = 100

# Kind of interrupt the timer schedules.
TIMER_INT = "TimerInt"


class Timer:
    """A periodic (or randomly timed) interrupt source.

    ``interrupt`` must provide ``schedule(callback, when, kind)``, where
    ``when`` is a delay in ticks from now.
    """

    def __init__(
        self,
        interrupt: Any,
        handler: Callable[[], Any],
        randomize: bool = False,
        ticks: int = TIMER_TICKS,
        rng: Optional[Callable[[], int]] = None,
    ) -> None:
        if ticks <= 0:
            raise ValueError("timer ticks must be positive")
        self.interrupt = interrupt
        self.handler = handler
        self.randomize = randomize
        self.ticks = ticks
        self._rng = rng if rng is not None else random_int
        self._schedule_next()

    def _schedule_next(self) -> None:
        self.interrupt.schedule(self.timer_expired, self.time_of_next_interrupt(), TIMER_INT)

    def timer_expired(self) -> None:
        """Handle a timer interrupt: schedule the next one, then run the handler."""
        self._schedule_next()
        self.handler()

    def time_of_next_interrupt(self) -> int:
        """Return the delay, in ticks, until the next timer interrupt."""
        if self.randomize:
            return 1 + self._rng() % (self.ticks * 2)
        return self.ticks