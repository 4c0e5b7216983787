"""Host services, lists, timer, address translation, scheduler and mailboxes for a teaching-kernel machine emulation."""

__version__ = "0.1.0"
__all__ = ["sysdep", "lists", "timer", "translate", "scheduler", "post"]