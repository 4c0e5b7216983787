"""Mailbox delivery on top of an unreliable packet network.

A :class:`PostOffice` owns a set of numbered mailboxes. Outgoing messages
get a :class:`MailHeader` prepended and are handed to the network as one
packet. Incoming packets are queued by the network's interrupt handler,
picked up by a postal worker thread and placed in the addressed mailbox.
A thread that asks for mail waits until some arrives.

The network is duck-typed. It must provide ``send(pkt_hdr, data)``. It
reports back by calling :meth:`PostOffice.incoming_packet` when a packet
arrives and :meth:`PostOffice.packet_sent` when the next packet may be
sent.
"""

from __future__ import annotations

import dataclasses
import logging
import queue
import struct
import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

__all__ = [
    "PacketHeader",
    "MailHeader",
    "Mail",
    "MailBox",
    "PostOffice",
    "mail_test",
    "MAIL_HEADER_SIZE",
    "DEFAULT_MAX_PACKET_SIZE",
]

_log = logging.getLogger(__name__)

_MAIL_HEADER_FORMAT = struct.Struct("<iiI")

# Size of the mail header prepended to every message.
MAIL_HEADER_SIZE = _MAIL_HEADER_FORMAT.size

# Largest packet payload the network carries by default.
DEFAULT_MAX_PACKET_SIZE = 52

_STOP = object()


@dataclass
class PacketHeader:
    """Network-level header: source and destination machines, payload length."""

    to: int = 0
    from_: int = 0
    length: int = 0


@dataclass
class MailHeader:
    """Post-office header: destination box, reply box and message length."""

    to: int = 0
    from_: int = 0
    length: int = 0

    def pack(self) -> bytes:
        """Return the header in its wire format."""
        return _MAIL_HEADER_FORMAT.pack(self.to, self.from_, self.length)

    @classmethod
    def unpack(cls, data: bytes) -> "MailHeader":
        """Parse a header from the start of ``data``."""
        if len(data) < MAIL_HEADER_SIZE:
            raise ValueError(
                f"mail header needs {MAIL_HEADER_SIZE} bytes, got {len(data)}"
            )
        to, from_, length = _MAIL_HEADER_FORMAT.unpack_from(data)
        return cls(to, from_, length)


@dataclass
class Mail:
    """A delivered message: both headers and the payload."""

    pkt_hdr: PacketHeader
    mail_hdr: MailHeader
    data: bytes


def _describe(pkt_hdr: PacketHeader, mail_hdr: MailHeader) -> str:
    return (
        f"From ({pkt_hdr.from_}, {mail_hdr.from_}) to ({pkt_hdr.to}, {mail_hdr.to}) "
        f"bytes {mail_hdr.length}"
    )


class MailBox:
    """A queue of arrived messages; readers wait until one is there."""

    def __init__(self) -> None:
        self._messages: "queue.Queue[Mail]" = queue.Queue()

    def put(self, pkt_hdr: PacketHeader, mail_hdr: MailHeader, data: bytes) -> None:
        """Store a message and wake any thread waiting for it."""
        if len(data) < mail_hdr.length:
            raise ValueError(
                f"message claims {mail_hdr.length} bytes but only {len(data)} given"
            )
        mail = Mail(
            dataclasses.replace(pkt_hdr),
            dataclasses.replace(mail_hdr),
            bytes(data[: mail_hdr.length]),
        )
        self._messages.put(mail)

    def get(self, timeout: Optional[float] = None) -> Mail:
        """Remove and return the oldest message, waiting for one if needed.

        Raises TimeoutError if ``timeout`` seconds pass with no message.
        """
        _log.debug("Waiting for mail in mailbox")
        try:
            mail = self._messages.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError("no mail arrived in time") from None
        _log.debug("Got mail from mailbox: %s", _describe(mail.pkt_hdr, mail.mail_hdr))
        return mail


class PostOffice:
    """A collection of mailboxes attached to one network endpoint."""

    def __init__(
        self,
        net_addr: int,
        network: Any,
        n_boxes: int,
        max_packet_size: int = DEFAULT_MAX_PACKET_SIZE,
    ) -> None:
        if n_boxes <= 0:
            raise ValueError("a post office needs at least one mailbox")
        if max_packet_size <= MAIL_HEADER_SIZE:
            raise ValueError("packets are too small to carry a mail header")
        self.net_addr = net_addr
        self.network = network
        self.max_packet_size = max_packet_size
        self.boxes: List[MailBox] = [MailBox() for _ in range(n_boxes)]
        self._incoming: "queue.Queue[Any]" = queue.Queue()
        self._message_sent = threading.Semaphore(0)
        self._send_lock = threading.Lock()
        self._worker = threading.Thread(
            target=self.postal_delivery, name="postal worker", daemon=True
        )
        self._worker.start()

    @property
    def max_mail_size(self) -> int:
        """Largest payload a single message may carry."""
        return self.max_packet_size - MAIL_HEADER_SIZE

    def _check_box(self, box: int) -> None:
        if not 0 <= box < len(self.boxes):
            raise ValueError(f"no mailbox {box} (have {len(self.boxes)})")

    def _check_length(self, length: int) -> None:
        if length > self.max_mail_size:
            raise ValueError(f"message of {length} bytes exceeds {self.max_mail_size}")

    def send(self, pkt_hdr: PacketHeader, mail_hdr: MailHeader, data: bytes) -> None:
        """Send ``data`` to a mailbox on the machine named in ``pkt_hdr``.

        ``mail_hdr.from_`` is the box on this machine that replies go to.
        Waits until the network is ready for the next packet.
        """
        _log.debug("Post send: %s", _describe(pkt_hdr, mail_hdr))
        self._check_length(mail_hdr.length)
        self._check_box(mail_hdr.to)
        if len(data) < mail_hdr.length:
            raise ValueError(
                f"message claims {mail_hdr.length} bytes but only {len(data)} given"
            )

        out_hdr = dataclasses.replace(
            pkt_hdr, from_=self.net_addr, length=mail_hdr.length + MAIL_HEADER_SIZE
        )
        packet = mail_hdr.pack() + bytes(data[: mail_hdr.length])

        with self._send_lock:
            self.network.send(out_hdr, packet)
            self._message_sent.acquire()

    def receive(
        self, box: int, timeout: Optional[float] = None
    ) -> Tuple[PacketHeader, MailHeader, bytes]:
        """Take the next message from ``box``, waiting for one to arrive."""
        self._check_box(box)
        mail = self.boxes[box].get(timeout)
        self._check_length(mail.mail_hdr.length)
        return mail.pkt_hdr, mail.mail_hdr, mail.data

    def deliver(self, pkt_hdr: PacketHeader, packet: bytes) -> None:
        """Strip the mail header from ``packet`` and file it in its mailbox."""
        mail_hdr = MailHeader.unpack(packet)
        _log.debug("Putting mail into mailbox: %s", _describe(pkt_hdr, mail_hdr))
        self._check_box(mail_hdr.to)
        self._check_length(mail_hdr.length)
        self.boxes[mail_hdr.to].put(pkt_hdr, mail_hdr, packet[MAIL_HEADER_SIZE:])

    def postal_delivery(self) -> None:
        """Deliver incoming packets until :meth:`shutdown` is called."""
        while True:
            item = self._incoming.get()
            if item is _STOP:
                return
            pkt_hdr, packet = item
            try:
                self.deliver(pkt_hdr, packet)
            except ValueError:
                _log.exception("dropping malformed packet from %d", pkt_hdr.from_)

    def incoming_packet(self, pkt_hdr: PacketHeader, packet: bytes) -> None:
        """Network handler: a packet has arrived for this machine."""
        self._incoming.put((dataclasses.replace(pkt_hdr), bytes(packet)))

    def packet_sent(self) -> None:
        """Network handler: the next packet may now be sent."""
        self._message_sent.release()

    def shutdown(self) -> None:
        """Stop the postal worker thread."""
        if self._worker.is_alive():
            self._incoming.put(_STOP)
            self._worker.join()


def _as_text(data: bytes) -> str:
    return data.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def mail_test(post_office: PostOffice, far_addr: int) -> List[Mail]:
    """Exchange a greeting and an acknowledgement with machine ``far_addr``.

    Sends a message to the other machine's box 0, waits for its message,
    acknowledges it, then waits for the acknowledgement of our own.
    Returns the two messages received.
    """
    data = b"Hello there!\0"
    ack = b"Got it!\0"
    received: List[Mail] = []

    out_pkt = PacketHeader(to=far_addr)
    out_mail = MailHeader(to=0, from_=1, length=len(data))
    post_office.send(out_pkt, out_mail, data)

    in_pkt, in_mail, body = post_office.receive(0)
    print(f'Got "{_as_text(body)}" from {in_pkt.from_}, box {in_mail.from_}', flush=True)
    received.append(Mail(in_pkt, in_mail, body))

    out_pkt = PacketHeader(to=in_pkt.from_)
    out_mail = MailHeader(to=in_mail.from_, from_=out_mail.from_, length=len(ack))
    post_office.send(out_pkt, out_mail, ack)

    in_pkt, in_mail, body = post_office.receive(1)
    print(f'Got "{_as_text(body)}" from {in_pkt.from_}, box {in_mail.from_}', flush=True)
    received.append(Mail(in_pkt, in_mail, body))

    return received