import re

from ndnping.kernel.logger import ModelLogger
from ndnping.names import Name
from ndnping.transport.base import Data, FilterResult, Interest, \
    Transport, TransportError


PING_ACK = b"ping ack"

_NUMBER = re.compile(rb"[+-]?[0-9]+")


class Responder:
    """
    Отвечает на пробы вида <prefix>/<number>, где prefix уже содержит
    компонент "ping".

    Все, что не похоже на пробу, молча игнорируется: это ожидаемый шум,
    а не ошибка.
    """
    def __init__(
        self,
        prefix: Name,
        transport: Transport,
        freshness: float | None = None,
        logger: ModelLogger | None = None,
    ):
        self.prefix = prefix
        self.transport = transport
        self.freshness = freshness
        self.logger = logger
        self._prefix_len = len(prefix)

        # Statistics:
        self.responded = 0
        self.num_ignored = 0
        self.num_failures = 0

    def is_valid(self, name: Name) -> bool:
        """Имя пробы = префикс + один компонент, целиком состоящий из числа."""
        if len(name) != self._prefix_len + 1:
            return False
        return _NUMBER.fullmatch(name[-1]) is not None

    def make_response(self, name: Name) -> Data:
        """Ответ повторяет имя запроса, содержимое - константа."""
        return self.transport.sign(name, PING_ACK, self.freshness)

    def register(self) -> int:
        return self.transport.set_interest_filter(
            self.prefix, self.handle_interest
        )

    def handle_interest(self, interest: Interest) -> FilterResult:
        if not self.is_valid(interest.name):
            self.num_ignored += 1
            self._log_debug("ignored Interest %s", interest.name)
            return FilterResult.NOT_HANDLED

        try:
            data = self.make_response(interest.name)
        except TransportError as exc:
            self.num_failures += 1
            self._log_error("failed to sign response to %s: %s",
                            interest.name, exc)
            return FilterResult.NOT_HANDLED
        if self.transport.put(data) < 0:
            self.num_failures += 1
            self._log_error("failed to send response to %s", interest.name)
            return FilterResult.NOT_HANDLED

        self.responded += 1
        self._log_debug("answered Interest %s", interest.name)
        return FilterResult.CONSUMED

    def _log_debug(self, msg, *args):
        if self.logger is not None:
            self.logger.debug(msg, *args)

    def _log_error(self, msg, *args):
        if self.logger is not None:
            self.logger.error(msg, *args)
