"""Choosing which thread runs next, and switching to it.

The ready list is a plain FIFO with no priorities. Callers are expected
to have interrupts disabled, which on a single simulated processor gives
mutual exclusion.

Threads are duck-typed: they need ``name`` and ``status`` attributes.
A thread may also have ``check_overflow()``; a thread running a user
program has a non-None ``space`` (with ``save_state()`` and
``restore_state()``) together with ``save_user_state()`` and
``restore_user_state()``.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Optional

from nachosim.lists import ItemList

__all__ = ["ThreadStatus", "Scheduler"]

_log = logging.getLogger(__name__)


class ThreadStatus(enum.Enum):
    """Life-cycle states of a thread."""

    JUST_CREATED = "JUST_CREATED"
    RUNNING = "RUNNING"
    READY = "READY"
    BLOCKED = "BLOCKED"


class Scheduler:
    """FIFO scheduler tracking the ready list and the running thread."""

    def __init__(self, current_thread: Any) -> None:
        self.ready_list = ItemList()
        self.halted = False
        self.current_thread = current_thread
        self.thread_to_be_destroyed: Optional[Any] = None

    def stop(self) -> None:
        """Prevent any further context switches (used when halting)."""
        self.halted = True

    def ready_to_run(self, thread: Any) -> None:
        """Mark ``thread`` ready and put it at the end of the ready list."""
        _log.debug("Putting thread %s on ready list.", thread.name)
        thread.status = ThreadStatus.READY
        self.ready_list.append(thread)

    def find_next_to_run(self) -> Optional[Any]:
        """Remove and return the next ready thread, or None if none (or halted)."""
        if self.halted:
            return None
        return self.ready_list.pop_front()

    def run(self, next_thread: Any) -> Any:
        """Dispatch the processor to ``next_thread``; return the previous thread.

        The previous thread's status must already have been changed from
        running. Its user state is saved, it is checked for stack overflow,
        and any thread marked for destruction is released once the switch
        is done.
        """
        old_thread = self.current_thread

        old_space = getattr(old_thread, "space", None)
        if old_space is not None:
            old_thread.save_user_state()
            old_space.save_state()

        check_overflow = getattr(old_thread, "check_overflow", None)
        if check_overflow is not None:
            check_overflow()

        self.current_thread = next_thread
        next_thread.status = ThreadStatus.RUNNING

        _log.debug('Switching from thread "%s" to thread "%s"', old_thread.name, next_thread.name)

        if self.thread_to_be_destroyed is not None:
            self.thread_to_be_destroyed = None

        new_space = getattr(next_thread, "space", None)
        if new_space is not None:
            next_thread.restore_user_state()
            new_space.restore_state()

        return old_thread

    def print_ready(self) -> None:
        """Print the contents of the ready list, for debugging."""
        print("Ready list contents:")
        self.ready_list.mapcar(lambda thread: print(f"{thread.name}, ", end=""))
        print()