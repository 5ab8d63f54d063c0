import random

from ndnping.client.config import PingConfig
from ndnping.client.objects import PingReport
from ndnping.client.session import PingSession
from ndnping.kernel.loop import EventLoop


def initialize(
        loop: EventLoop,
        config: PingConfig,
        rng: random.Random | None = None
):
    # Init context
    session = PingSession(
        config=config,
        transport=loop.transport,
        scheduler=loop.scheduler,
        logger=loop.logger,
        rng=rng,
    )
    loop.context = session
    loop.set_completion_check(session.is_complete)
    # Schedule the first ping
    session.start()


def finalize(loop: EventLoop) -> PingReport:
    assert isinstance(loop.context, PingSession)
    # noinspection PyTypeChecker
    session: PingSession = loop.context
    session.cancel()
    return PingReport.from_statistics(session.stats.snapshot(), loop.time)
