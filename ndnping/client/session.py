import random

from ndnping.client.config import PingConfig
from ndnping.client.objects import CorrelationError, PendingProbe, Statistics
from ndnping.kernel.logger import ModelLogger
from ndnping.kernel.scheduler import EventId, Scheduler
from ndnping.names import Name
from ndnping.transport.base import Data, Interest, Transport


# Случайные номера берутся из того же диапазона, что и у random() в libc
MAX_RANDOM_NUMBER = 2 ** 31 - 1


class PingSession:
    """
    Сессия клиента: периодически отправляет пробы, сопоставляет ответы
    и таймауты с пробами, копит статистику и решает, когда работа окончена.
    """
    def __init__(
        self,
        config: PingConfig,
        transport: Transport,
        scheduler: Scheduler,
        logger: ModelLogger,
        rng: random.Random | None = None,
        stats: Statistics | None = None,
    ):
        self.config = config
        self.transport = transport
        self.scheduler = scheduler
        self.logger = logger
        self.prefix: Name = config.target_prefix()

        # State:
        self.number: int | None = config.start_number
        self.pending: dict[Name, PendingProbe] = {}
        self._rng = rng or random.Random()
        self._event: EventId | None = None

        # Statistics:
        self.sent = 0
        self.received = 0
        self.num_timeouts = 0
        self.num_send_failures = 0
        self.stats = stats or Statistics(
            prefix=config.prefix, start=scheduler.time
        )

    def start(self) -> None:
        """Напечатать заголовок и запланировать первую пробу."""
        self.logger.info("NDNPING %s", self.config.prefix)
        self._event = self.scheduler.call(self.handle_tick)

    @property
    def limit_reached(self) -> bool:
        return self.config.total is not None and self.sent >= self.config.total

    def is_complete(self) -> bool:
        """
        Сессия закончена, когда отправлены все пробы и на каждую пришел
        ответ или таймаут. Сессия без ограничения на число проб не
        заканчивается никогда (только по прерыванию).
        """
        return self.limit_reached and not self.pending

    def next_number(self) -> int:
        if self.config.random_numbering:
            while True:
                number = self._rng.randint(0, MAX_RANDOM_NUMBER)
                if self.prefix.append(str(number)) not in self.pending:
                    return number
        number = self.number
        self.number += 1
        return number

    def handle_tick(self) -> None:
        """
        Отправить очередную пробу и запланировать следующую.

        Проба попадает в таблицу ожидающих даже если транспорт сообщил
        об ошибке отправки: на нее все равно придет таймаут.
        """
        self._event = None
        if self.limit_reached:
            return

        number = self.next_number()
        interest = Interest(
            name=self.prefix.append(str(number)),
            lifetime=self.config.lifetime,
            allow_cache=self.config.allow_cache,
        )
        res = self.transport.express_interest(
            interest, self.handle_data, self.handle_timeout
        )
        self.pending[interest.name] = PendingProbe(
            number=number, sent_at=self.scheduler.time
        )
        self.sent += 1
        self.stats.sent += 1

        if res < 0:
            self.num_send_failures += 1
            self.logger.error(
                "failed to express Interest to %s: number = %d",
                self.config.prefix, number
            )

        if not self.limit_reached:
            self._event = self.scheduler.schedule(
                self.config.interval, self.handle_tick,
                msg=f"ping #{self.sent + 1}"
            )

    def handle_data(self, interest: Interest, data: Data) -> None:
        """Пришел ответ: посчитать RTT и обновить статистику."""
        now = self.scheduler.time
        probe = self._pop_pending(interest.name)
        rtt = (now - probe.sent_at) * 1000

        self.received += 1
        self.stats.add_rtt(rtt)

        self.logger.info(
            "content from %s: number = %d  rtt = %.3f ms",
            self.config.prefix, probe.number, rtt
        )

    def handle_timeout(self, interest: Interest) -> None:
        """Ответа не будет: проба учитывается только как отправленная."""
        probe = self._pop_pending(interest.name)
        self.num_timeouts += 1
        self.logger.warning(
            "timeout from %s: number = %d", self.config.prefix, probe.number
        )

    def cancel(self) -> None:
        """Отменить запланированную отправку."""
        if self._event is not None:
            self.scheduler.cancel(self._event)
            self._event = None

    def _pop_pending(self, name: Name) -> PendingProbe:
        try:
            return self.pending.pop(name)
        except KeyError:
            raise CorrelationError(f"no pending probe for {name}") from None
