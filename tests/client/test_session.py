import random

import pytest

from ndnping.client.config import PingConfig
from ndnping.client.objects import CorrelationError
from ndnping.client.session import MAX_RANDOM_NUMBER, PingSession
from ndnping.kernel import ModelLogger
from ndnping.names import Name
from ndnping.transport.base import Data, Interest


class ScriptedRandom(random.Random):
    """Выдает заранее заданные номера."""
    def __init__(self, numbers):
        super().__init__()
        self._numbers = list(numbers)

    def randint(self, a, b):
        return self._numbers.pop(0)


def make_session(scheduler, transport, rng=None, **kwargs):
    kwargs.setdefault('prefix', '/example')
    kwargs.setdefault('interval', 1.0)
    config = PingConfig(**kwargs)
    logger = ModelLogger('test-session', scheduler.clock.now)
    return PingSession(config, transport, scheduler, logger, rng=rng)


def sent_names(transport):
    return [interest.name for interest, _, _ in transport.expressed]


def test_sequential_numbering(scheduler, transport):
    session = make_session(scheduler, transport, start_number=5, total=3)
    session.start()
    scheduler.run_until_idle()

    assert sent_names(transport) == [
        Name.from_uri('/example/ping/5'),
        Name.from_uri('/example/ping/6'),
        Name.from_uri('/example/ping/7'),
    ]
    assert [p.number for p in session.pending.values()] == [5, 6, 7]
    assert [p.sent_at for p in session.pending.values()] == [0.0, 1.0, 2.0]
    assert session.sent == session.stats.sent == 3
    assert session.limit_reached
    assert not session.is_complete()


def test_identifier_in_name(scheduler, transport):
    session = make_session(
        scheduler, transport, start_number=0, total=1, identifier='abc'
    )
    session.start()
    scheduler.run_until_idle()

    assert sent_names(transport) == [Name.from_uri('/example/ping/abc/0')]


def test_interest_parameters(scheduler, transport):
    session = make_session(
        scheduler, transport, start_number=0, total=1,
        allow_cache=True, lifetime=2.0,
    )
    session.start()
    scheduler.run_until_idle()

    interest = transport.expressed[0][0]
    assert interest.allow_cache
    assert interest.lifetime == 2.0


def test_random_numbering_skips_pending_numbers(scheduler, transport):
    rng = ScriptedRandom([17, 17, 3])
    session = make_session(scheduler, transport, rng=rng, total=2)
    assert session.config.random_numbering
    session.start()
    scheduler.run_until_idle()

    assert [p.number for p in session.pending.values()] == [17, 3]


def test_start_number_disables_random_numbering(scheduler, transport):
    # Генератор не должен вызываться вовсе
    session = make_session(
        scheduler, transport, rng=ScriptedRandom([]), start_number=0,
        total=2,
    )
    assert not session.config.random_numbering
    session.start()
    scheduler.run_until_idle()

    assert [p.number for p in session.pending.values()] == [0, 1]


def test_random_numbers_in_range(scheduler, transport):
    session = make_session(
        scheduler, transport, rng=random.Random(1), total=20
    )
    session.start()
    scheduler.run_until_idle()

    numbers = [p.number for p in session.pending.values()]
    assert len(numbers) == 20
    assert all(0 <= n <= MAX_RANDOM_NUMBER for n in numbers)


def test_lifecycle_to_completion(scheduler, transport):
    session = make_session(scheduler, transport, start_number=0, total=2)
    session.start()
    scheduler.run_until_idle()

    first, on_data, _ = transport.expressed[0]
    second, _, on_timeout = transport.expressed[1]

    scheduler.clock.wait_until(2.0)
    on_data(first, Data(name=first.name, content=b'ping ack'))
    assert session.received == session.stats.received == 1
    assert session.stats.min == pytest.approx(2000.0)
    assert not session.is_complete()

    on_timeout(second)
    assert session.num_timeouts == 1
    assert session.pending == {}
    assert session.is_complete()


def test_unbounded_session_never_completes(scheduler, transport):
    session = make_session(scheduler, transport, start_number=0)
    session.start()
    scheduler.advance(10.5)

    assert session.sent == 11
    assert not session.limit_reached
    for interest, _, on_timeout in list(transport.expressed):
        on_timeout(interest)
    assert not session.is_complete()

    session.cancel()
    assert scheduler.empty


def test_send_failure_keeps_probe_pending(scheduler, transport, capsys):
    transport.express_result = -1
    session = make_session(scheduler, transport, start_number=0, total=1)
    session.logger.setup()
    session.start()
    scheduler.run_until_idle()
    session.logger.close()

    assert session.sent == 1
    assert session.num_send_failures == 1
    assert len(session.pending) == 1
    out = capsys.readouterr().out
    assert 'failed to express Interest to /example: number = 0' in out

    interest, _, on_timeout = transport.expressed[0]
    on_timeout(interest)
    assert session.is_complete()


def test_unknown_name_is_correlation_error(scheduler, transport):
    session = make_session(scheduler, transport, start_number=0, total=1)
    session.start()
    scheduler.run_until_idle()

    stranger = Interest(name=Name.from_uri('/example/ping/99'), lifetime=4.0)
    with pytest.raises(CorrelationError):
        session.handle_timeout(stranger)
    with pytest.raises(AssertionError):
        session.handle_data(stranger, Data(name=stranger.name))


def test_duplicate_data_is_correlation_error(scheduler, transport):
    session = make_session(scheduler, transport, start_number=0, total=1)
    session.start()
    scheduler.run_until_idle()

    interest, on_data, _ = transport.expressed[0]
    on_data(interest, Data(name=interest.name))
    with pytest.raises(CorrelationError):
        on_data(interest, Data(name=interest.name))


def test_log_lines(scheduler, transport, capsys):
    session = make_session(scheduler, transport, start_number=0, total=2)
    session.logger.setup()
    session.start()
    scheduler.run_until_idle()

    first, on_data, _ = transport.expressed[0]
    second, _, on_timeout = transport.expressed[1]
    scheduler.clock.wait_until(1.5)
    on_data(first, Data(name=first.name))
    on_timeout(second)
    session.logger.close()

    assert capsys.readouterr().out.splitlines() == [
        'NDNPING /example',
        'content from /example: number = 0  rtt = 1500.000 ms',
        'timeout from /example: number = 1',
    ]
