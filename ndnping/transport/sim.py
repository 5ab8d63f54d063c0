"""
Модельная сеть внутри процесса.

Сеть устроена как канал из модели ping-pong: каждый пакет идет по каналу
с задержкой `delay` (плюс экспоненциальный разброс `jitter`) и теряется
с вероятностью `loss_prob`. Узлы сети - грани (`SimFace`), каждая из них
реализует интерфейс `Transport`. Все события доставки и истечения времени
жизни Interest-ов планируются в том же планировщике, что и отправка проб
клиентом, поэтому один цикл обслуживает и клиента, и сеть.
"""
from dataclasses import dataclass
import hashlib

import numpy as np

from ndnping.kernel.scheduler import EventId, Scheduler
from ndnping.names import Name
from ndnping.transport.base import Data, DataCallback, FilterResult, \
    Interest, InterestHandler, TimeoutCallback, Transport


DEFAULT_CHANNEL_DELAY = 0.005  # секунды в одну сторону


@dataclass(eq=False)
class _PitEntry:
    interest: Interest
    on_data: DataCallback
    on_timeout: TimeoutCallback
    timeout_event: EventId | None = None


class SimNetwork:
    """
    Канал, соединяющий все грани.

    Some args:
        delay - задержка передачи пакета в одну сторону (секунды)
        jitter - среднее случайной добавки к задержке (экспоненциальное
            распределение), 0 - без разброса
        loss_prob - вероятность потери пакета в канале
    """

    def __init__(
            self,
            scheduler: Scheduler,
            delay: float = DEFAULT_CHANNEL_DELAY,
            jitter: float = 0.0,
            loss_prob: float = 0.0,
            seed: int | None = None,
    ):
        if delay < 0 or jitter < 0:
            raise ValueError("delay and jitter must be non-negative")
        if not 0.0 <= loss_prob <= 1.0:
            raise ValueError("loss probability must be within [0, 1]")
        self.scheduler = scheduler
        self.delay = delay
        self.jitter = jitter
        self.loss_prob = loss_prob
        self.rng = np.random.default_rng(seed)
        self._faces: list["SimFace"] = []
        self._filters: list[tuple[Name, InterestHandler, "SimFace"]] = []

        # Statistics:
        self.num_packets_sent = 0
        self.num_packets_lost = 0

    def face(self) -> "SimFace":
        """Создать новую грань, подключенную к сети."""
        face = SimFace(self)
        self._faces.append(face)
        return face

    def channel_delay(self) -> float:
        if self.jitter > 0:
            return self.delay + float(self.rng.exponential(self.jitter))
        return self.delay

    def _lost(self) -> bool:
        self.num_packets_sent += 1
        if self.loss_prob > 0 and self.rng.random() < self.loss_prob:
            self.num_packets_lost += 1
            return True
        return False

    def add_filter(self, prefix: Name, handler: InterestHandler,
                   face: "SimFace") -> None:
        self._filters.append((prefix, handler, face))
        # Длинные префиксы проверяются первыми
        self._filters.sort(key=lambda item: len(item[0]), reverse=True)

    def send_interest(self, interest: Interest) -> None:
        if self._lost():
            self._log("lost Interest %s", interest.name)
            return
        self.scheduler.schedule(
            self.channel_delay(),
            self._deliver_interest,
            (interest,),
            msg=f"Interest {interest.name} arrives",
        )

    def send_data(self, data: Data) -> None:
        if self._lost():
            self._log("lost Data %s", data.name)
            return
        self.scheduler.schedule(
            self.channel_delay(),
            self._deliver_data,
            (data,),
            msg=f"Data {data.name} arrives",
        )

    def _deliver_interest(self, interest: Interest) -> None:
        for prefix, handler, face in self._filters:
            if face.closed or not prefix.is_prefix_of(interest.name):
                continue
            if handler(interest) is FilterResult.CONSUMED:
                return

    def _deliver_data(self, data: Data) -> None:
        for face in self._faces:
            face.satisfy(data)

    def _log(self, msg, *args):
        if self.scheduler.logger is not None:
            self.scheduler.logger.debug(msg, *args)


class SimFace(Transport):
    """Грань модельной сети (реализация `Transport`)."""

    def __init__(self, network: SimNetwork):
        self.network = network
        self.closed = False
        self._pit: dict[Name, list[_PitEntry]] = {}

    @property
    def scheduler(self) -> Scheduler:
        return self.network.scheduler

    @property
    def num_pending(self) -> int:
        return sum(len(entries) for entries in self._pit.values())

    def express_interest(
            self,
            interest: Interest,
            on_data: DataCallback,
            on_timeout: TimeoutCallback
    ) -> int:
        if self.closed:
            return -1
        entry = _PitEntry(interest, on_data, on_timeout)
        entry.timeout_event = self.scheduler.schedule(
            interest.lifetime,
            self._expire,
            (entry,),
            msg=f"Interest {interest.name} expires",
        )
        self._pit.setdefault(interest.name, []).append(entry)
        self.network.send_interest(interest)
        return 0

    def set_interest_filter(self, prefix: Name, handler: InterestHandler) -> int:
        if self.closed:
            return -1
        self.network.add_filter(prefix, handler, self)
        return 0

    def sign(self, name: Name, content: bytes,
             freshness: float | None = None) -> Data:
        digest = hashlib.sha256()
        digest.update(name.to_uri().encode('utf-8'))
        digest.update(content)
        if freshness is not None:
            digest.update(repr(freshness).encode('ascii'))
        return Data(name=name, content=content, freshness=freshness,
                    signature=digest.digest())

    def put(self, data: Data) -> int:
        if self.closed:
            return -1
        self.network.send_data(data)
        return 0

    def run(self, timeout: float) -> int:
        if self.closed:
            return -1
        if timeout < 0:
            return self.scheduler.run_until_idle()
        return self.scheduler.advance(timeout)

    def close(self) -> None:
        self.closed = True

    def satisfy(self, data: Data) -> None:
        """Удовлетворить ожидающие Interest-ы с тем же именем."""
        if self.closed:
            return
        for entry in self._pit.pop(data.name, []):
            self.scheduler.cancel(entry.timeout_event)
            entry.on_data(entry.interest, data)

    def _expire(self, entry: _PitEntry) -> None:
        entries = self._pit.get(entry.interest.name, [])
        if entry not in entries:
            return
        entries.remove(entry)
        if not entries:
            del self._pit[entry.interest.name]
        entry.on_timeout(entry.interest)
