import threading

import pytest

from accessnav.router.errors import GeolocationUnavailable
from accessnav.router.models import PositionFix
from accessnav.router.position_source import PositionStream

from fakes import START


def test_queued_fixes_drain_before_close():
    stream = PositionStream(idle_tick_s=0.01)
    fixes = [PositionFix(START, 5.0, float(i)) for i in range(3)]
    for f in fixes:
        stream.push(f)
    stream.close()
    stream.push(PositionFix(START, 5.0, 99.0))   # ignored after close

    assert list(stream) == fixes
    assert stream.closed


def test_idle_tick_yields_none():
    stream = PositionStream(idle_tick_s=0.01)
    it = iter(stream)
    assert next(it) is None
    stream.close()
    assert list(it) == []


def test_errors_are_raised_from_iteration():
    stream = PositionStream(idle_tick_s=0.01)
    stream.fail(GeolocationUnavailable())
    with pytest.raises(GeolocationUnavailable):
        next(iter(stream))


def test_close_wakes_a_waiting_consumer():
    stream = PositionStream(idle_tick_s=5.0)
    received = []
    consumer = threading.Thread(target=lambda: received.extend(stream))
    consumer.start()
    stream.push(PositionFix(START, 5.0, 0.0))
    stream.close()
    consumer.join(timeout=2.0)

    assert not consumer.is_alive()
    assert len(received) == 1
