import pytest

from nachosim.timer import TIMER_INT, Timer


class FakeInterrupt:
    def __init__(self):
        self.scheduled = []

    def schedule(self, callback, when, kind):
        self.scheduled.append((callback, when, kind))


def test_construction_schedules_first_interrupt():
    interrupt = FakeInterrupt()
    timer = Timer(interrupt, lambda: None, False, 100)
    assert len(interrupt.scheduled) == 1
    callback, when, kind = interrupt.scheduled[0]
    assert when == 100
    assert kind == TIMER_INT
    assert callback == timer.timer_expired


def test_fixed_interval():
    timer = Timer(FakeInterrupt(), lambda: None, False, 40)
    assert timer.time_of_next_interrupt() == 40


def test_expiry_reschedules_before_calling_handler():
    interrupt = FakeInterrupt()
    events = []
    timer = Timer(interrupt, lambda: events.append(len(interrupt.scheduled)), False, 10)
    timer.timer_expired()
    timer.timer_expired()
    assert events == [2, 3]
    assert [when for _, when, _ in interrupt.scheduled] == [10, 10, 10]


def test_random_delay_minimum_is_one():
    timer = Timer(FakeInterrupt(), lambda: None, True, 100, rng=lambda: 0)
    assert timer.time_of_next_interrupt() == 1


def test_random_delay_wraps_modulo_twice_ticks():
    ticks = 50
    timer = Timer(FakeInterrupt(), lambda: None, True, ticks, rng=lambda: 2 * ticks)
    assert timer.time_of_next_interrupt() == 1


@pytest.mark.parametrize("seed_value", [0, 3, 99, 12345, 2**31 - 1])
def test_random_delay_stays_in_range(seed_value):
    ticks = 100
    timer = Timer(FakeInterrupt(), lambda: None, True, ticks, rng=lambda: seed_value)
    delay = timer.time_of_next_interrupt()
    assert 1 <= delay <= 2 * ticks


def test_default_rng_in_range():
    ticks = 30
    timer = Timer(FakeInterrupt(), lambda: None, True, ticks)
    delays = [timer.time_of_next_interrupt() for _ in range(200)]
    assert all(1 <= d <= 2 * ticks for d in delays)


def test_non_positive_ticks_rejected():
    with pytest.raises(ValueError):
        Timer(FakeInterrupt(), lambda: None, False, 0)