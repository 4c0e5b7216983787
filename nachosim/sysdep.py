"""Host-system services used by the simulated machine.

Thin, checked wrappers around host files, datagram sockets, signals,
sleeping and pseudo-random numbers. Operations that the simulation
cannot continue without raise :class:`SysdepError` when they fail.
"""

from __future__ import annotations

import errno
import os
import random
import select
import signal
import socket
import sys
import time
from typing import Callable, Optional

__all__ = [
    "SysdepError",
    "poll_file",
    "open_for_write",
    "open_for_read_write",
    "read",
    "read_partial",
    "write_file",
    "lseek",
    "tell",
    "close",
    "unlink",
    "open_socket",
    "close_socket",
    "assign_name_to_socket",
    "deassign_name_to_socket",
    "poll_socket",
    "read_from_socket",
    "send_to_socket",
    "call_on_user_abort",
    "block_user_abort",
    "unblock_user_abort",
    "delay",
    "random_init",
    "random_int",
]

# How long to wait for input when the simulated machine has nothing to do,
# so that other simulator instances get a chance to run.
IDLE_POLL_SECONDS = 0.02

# Largest value returned by random_int (same range as the C library rand()).
RANDOM_MAX = 2**31 - 1

_rng = random.Random()


class SysdepError(RuntimeError):
    """A host operation the simulation depends on has failed."""


def poll_file(fd: int, idle: bool = False) -> bool:
    """Return True if data can be read from ``fd`` without blocking.

    When ``idle`` is set, wait briefly for input before giving up.
    """
    timeout = IDLE_POLL_SECONDS if idle else 0.0
    readable, _, _ = select.select([fd], [], [], timeout)
    return bool(readable)


def open_for_write(name: str) -> int:
    """Open ``name`` for writing, creating or truncating it."""
    try:
        return os.open(name, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o666)
    except OSError as exc:
        raise SysdepError(f"Failed to open '{name}' for write") from exc


def open_for_read_write(name: str, crash_on_error: bool = True) -> Optional[int]:
    """Open an existing file for reading and writing.

    Returns the descriptor, or None if the file cannot be opened and
    ``crash_on_error`` is false.
    """
    try:
        return os.open(name, os.O_RDWR)
    except OSError as exc:
        if exc.errno == errno.ENOENT:
            print(f"No such file: {name}", file=sys.stderr)
        if crash_on_error:
            raise SysdepError(f"Failed to open '{name}'") from exc
        return None


def read(fd: int, n_bytes: int) -> bytes:
    """Read exactly ``n_bytes`` from ``fd``."""
    data = os.read(fd, n_bytes)
    if len(data) != n_bytes:
        raise SysdepError(f"Short read {len(data)} vs {n_bytes}")
    return data


def read_partial(fd: int, n_bytes: int) -> bytes:
    """Read up to ``n_bytes`` from ``fd``, returning whatever is available."""
    return os.read(fd, n_bytes)


def write_file(fd: int, data: bytes) -> None:
    """Write all of ``data`` to ``fd``."""
    written = os.write(fd, data)
    if written != len(data):
        raise SysdepError(f"Short write {written} vs {len(data)}")


def lseek(fd: int, offset: int, whence: int = os.SEEK_SET) -> int:
    """Move the position within ``fd``; return the new position."""
    try:
        return os.lseek(fd, offset, whence)
    except OSError as exc:
        raise SysdepError(f"Couldn't lseek to {offset}") from exc


def tell(fd: int) -> int:
    """Return the current position within ``fd``."""
    return os.lseek(fd, 0, os.SEEK_CUR)


def close(fd: int) -> None:
    """Close ``fd``."""
    try:
        os.close(fd)
    except OSError as exc:
        raise SysdepError(f"Couldn't close file {fd}") from exc


def unlink(name: str) -> bool:
    """Delete ``name``; return True if it was removed."""
    try:
        os.unlink(name)
    except OSError:
        return False
    return True


def open_socket() -> socket.socket:
    """Open a local datagram socket for inter-machine messages."""
    try:
        return socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
    except OSError as exc:
        raise SysdepError("Couldn't open socket") from exc


def close_socket(sock: socket.socket) -> None:
    """Close a socket opened by :func:`open_socket`."""
    sock.close()


def assign_name_to_socket(socket_name: str, sock: socket.socket) -> None:
    """Bind ``sock`` to the file name ``socket_name``.

    A stale name left over from an earlier run is removed first.
    """
    unlink(socket_name)
    try:
        sock.bind(socket_name)
    except OSError as exc:
        raise SysdepError(f"Couldn't bind socket {sock.fileno()}") from exc


def deassign_name_to_socket(socket_name: str) -> None:
    """Remove the file name given to a socket."""
    unlink(socket_name)


def poll_socket(sock: socket.socket, idle: bool = False) -> bool:
    """Return True if a message is waiting on ``sock``."""
    return poll_file(sock.fileno(), idle)


def read_from_socket(sock: socket.socket, packet_size: int) -> bytes:
    """Receive one packet of exactly ``packet_size`` bytes."""
    data, _ = sock.recvfrom(packet_size)
    if len(data) != packet_size:
        raise SysdepError(f"Short receive {len(data)} vs {packet_size}")
    return data


def send_to_socket(sock: socket.socket, data: bytes, to_name: str) -> None:
    """Send ``data`` as one packet to the socket named ``to_name``."""
    try:
        sent = sock.sendto(data, to_name)
    except OSError as exc:
        raise SysdepError(f"Couldn't send to {to_name}") from exc
    if sent != len(data):
        raise SysdepError(f"Short send {sent} vs {len(data)}")


def call_on_user_abort(func: Callable[[], object]) -> None:
    """Arrange for ``func`` to be called when the user interrupts (Ctrl-C)."""
    signal.signal(signal.SIGINT, lambda _signum, _frame: func())


def block_user_abort() -> None:
    """Hold back user interrupts until :func:`unblock_user_abort`."""
    signal.pthread_sigmask(signal.SIG_BLOCK, {signal.SIGINT})


def unblock_user_abort() -> None:
    """Allow user interrupts again."""
    signal.pthread_sigmask(signal.SIG_UNBLOCK, {signal.SIGINT})


def delay(seconds: int) -> None:
    """Sleep for ``seconds`` seconds."""
    time.sleep(seconds)


def random_init(seed: int) -> None:
    """Seed the pseudo-random number generator."""
    _rng.seed(seed)


def random_int() -> int:
    """Return a pseudo-random integer between 0 and ``RANDOM_MAX``."""
    return _rng.randint(0, RANDOM_MAX)