import threading

import pytest

from nachosim.post import (
    MAIL_HEADER_SIZE,
    MailBox,
    MailHeader,
    PacketHeader,
    PostOffice,
    mail_test,
)


class Hub:
    def __init__(self):
        self.offices = {}


class Endpoint:
    def __init__(self, hub):
        self.hub = hub
        self.sent = []

    def send(self, pkt_hdr, data):
        self.sent.append((pkt_hdr, data))
        dest = self.hub.offices.get(pkt_hdr.to)
        if dest is not None:
            dest.incoming_packet(pkt_hdr, data)
        self.hub.offices[pkt_hdr.from_].packet_sent()


@pytest.fixture
def pair():
    hub = Hub()
    eps = {0: Endpoint(hub), 1: Endpoint(hub)}
    offices = {addr: PostOffice(addr, ep, 2) for addr, ep in eps.items()}
    hub.offices.update(offices)
    yield offices, eps
    for office in offices.values():
        office.shutdown()


def test_mail_header_round_trip():
    hdr = MailHeader(to=1, from_=0, length=13)
    assert MailHeader.unpack(hdr.pack()) == hdr
    assert len(hdr.pack()) == MAIL_HEADER_SIZE


def test_mail_header_wire_format():
    assert MailHeader(1, 2, 3).pack() == b"\x01\0\0\0\x02\0\0\0\x03\0\0\0"


def test_mail_header_unpack_too_short():
    with pytest.raises(ValueError):
        MailHeader.unpack(b"\x01\x02")


def test_mailbox_fifo_and_truncation():
    box = MailBox()
    box.put(PacketHeader(0, 1, 0), MailHeader(0, 1, 2), b"abcdef")
    box.put(PacketHeader(0, 1, 0), MailHeader(0, 1, 3), b"xyz")
    first = box.get(timeout=1)
    second = box.get(timeout=1)
    assert first.data == b"ab"
    assert second.data == b"xyz"


def test_mailbox_get_times_out():
    with pytest.raises(TimeoutError):
        MailBox().get(timeout=0.01)


def test_mailbox_put_short_data():
    with pytest.raises(ValueError):
        MailBox().put(PacketHeader(), MailHeader(0, 0, 5), b"ab")


def test_send_and_receive(pair):
    offices, eps = pair
    msg = b"Hello there!\0"
    offices[0].send(PacketHeader(to=1), MailHeader(to=1, from_=0, length=len(msg)), msg)
    pkt, mail, data = offices[1].receive(1, timeout=2)
    assert data == msg
    assert pkt.from_ == 0
    assert mail.from_ == 0
    assert mail.length == len(msg)


def test_send_fills_packet_header(pair):
    offices, eps = pair
    msg = b"abc"
    offices[0].send(PacketHeader(to=1), MailHeader(to=0, from_=1, length=len(msg)), msg)
    pkt, packet = eps[0].sent[0]
    assert pkt.from_ == 0
    assert pkt.length == len(msg) + MAIL_HEADER_SIZE
    assert packet[MAIL_HEADER_SIZE:] == msg
    assert MailHeader.unpack(packet) == MailHeader(0, 1, len(msg))


def test_send_rejects_oversized(pair):
    offices, _ = pair
    size = offices[0].max_mail_size + 1
    with pytest.raises(ValueError):
        offices[0].send(PacketHeader(to=1), MailHeader(0, 1, size), b"x" * size)


def test_send_rejects_bad_box(pair):
    offices, _ = pair
    with pytest.raises(ValueError):
        offices[0].send(PacketHeader(to=1), MailHeader(5, 1, 1), b"x")


def test_receive_rejects_bad_box(pair):
    offices, _ = pair
    with pytest.raises(ValueError):
        offices[0].receive(-1, timeout=0.01)


def test_deliver_direct(pair):
    offices, _ = pair
    packet = MailHeader(1, 0, 2).pack() + b"hi"
    offices[0].deliver(PacketHeader(to=0, from_=1, length=len(packet)), packet)
    pkt, mail, data = offices[0].receive(1, timeout=1)
    assert data == b"hi"
    assert pkt.from_ == 1


def test_deliver_bad_box(pair):
    offices, _ = pair
    packet = MailHeader(9, 0, 2).pack() + b"hi"
    with pytest.raises(ValueError):
        offices[0].deliver(PacketHeader(), packet)


def test_mail_test_exchange(pair, capsys):
    offices, _ = pair
    other = {}

    def run_far_side():
        other["result"] = mail_test(offices[1], 0)

    far = threading.Thread(target=run_far_side)
    far.start()
    received = mail_test(offices[0], 1)
    far.join(timeout=5)

    assert received[0].data == b"Hello there!\0"
    assert received[1].data == b"Got it!\0"
    assert received[0].pkt_hdr.from_ == 1
    assert other["result"][0].pkt_hdr.from_ == 0
    out = capsys.readouterr().out
    assert 'Got "Hello there!" from 1, box 1' in out
    assert 'Got "Got it!" from 0, box 1' in out