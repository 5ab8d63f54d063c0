from ndnping.kernel.loop import EventLoop
from ndnping.server.objects import ServerReport
from ndnping.server.responder import Responder


def initialize(loop: EventLoop, responder: Responder):
    # Фильтр уже зарегистрирован (до перехода в режим демона),
    # остается только отвечать
    loop.context = responder
    loop.logger.info("NDNPINGSERVER %s", responder.prefix)


def finalize(loop: EventLoop) -> ServerReport:
    assert isinstance(loop.context, Responder)
    # noinspection PyTypeChecker
    responder: Responder = loop.context
    loop.logger.info("%d Interests answered", responder.responded)
    return ServerReport(
        prefix=str(responder.prefix),
        responded=responder.responded,
        ignored=responder.num_ignored,
        failures=responder.num_failures,
    )
