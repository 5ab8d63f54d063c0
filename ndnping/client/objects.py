from dataclasses import dataclass, replace
import math
import sys

from pydantic import BaseModel, Field


class CorrelationError(AssertionError):
    """
    Ответ или таймаут пришел для имени, которого нет в таблице ожидающих
    проб. Транспорт обещает ровно один исход на каждый Interest, поэтому
    это нарушение контракта, а не ошибка пользователя.
    """
    ...


@dataclass
class PendingProbe:
    number: int
    sent_at: float


@dataclass
class Statistics:
    '''
    Накопитель статистики одного запуска.

    Хранит только суммы; средние, отклонение и потери считаются при
    построении отчета (см. `PingReport.from_statistics`).
    Some args:
        start - время начала (по часам планировщика)
        min, max - минимальный и максимальный RTT, мс
        tsum, tsum2 - сумма RTT и сумма квадратов RTT
    '''
    prefix: str
    start: float
    sent: int = 0
    received: int = 0
    min: float = sys.float_info.max
    max: float = 0.0
    tsum: float = 0.0
    tsum2: float = 0.0

    def add_rtt(self, rtt: float) -> None:
        """Учесть полученный ответ с временем `rtt` (мс)."""
        self.received += 1
        if rtt < self.min:
            self.min = rtt
        if rtt > self.max:
            self.max = rtt
        self.tsum += rtt
        self.tsum2 += rtt * rtt

    def snapshot(self) -> "Statistics":
        """Копия для построения отчета."""
        return replace(self)


class PingReport(BaseModel):
    """Итоговая статистика клиента."""
    prefix: str = Field(..., description="Префикс, который пинговали")
    sent: int = Field(..., description="Отправлено Interest-ов")
    received: int = Field(..., description="Получено Data")
    loss: float | None = Field(
        None, description="Потери, % (None, если ничего не отправлено)"
    )
    time: int = Field(..., description="Длительность работы, мс")
    rtt_min: float | None = Field(None, description="Минимальный RTT, мс")
    rtt_avg: float | None = Field(None, description="Средний RTT, мс")
    rtt_max: float | None = Field(None, description="Максимальный RTT, мс")
    rtt_mdev: float | None = Field(
        None, description="Среднеквадратичное отклонение RTT, мс"
    )

    @classmethod
    def from_statistics(cls, stats: Statistics, now: float) -> "PingReport":
        report = cls(
            prefix=stats.prefix,
            sent=stats.sent,
            received=stats.received,
            time=int((now - stats.start) * 1000),
        )
        if stats.sent > 0:
            report.loss = (stats.sent - stats.received) * 100 / stats.sent
        if stats.received > 0:
            avg = stats.tsum / stats.received
            report.rtt_min = stats.min
            report.rtt_avg = avg
            report.rtt_max = stats.max
            # Отрицательное значение под корнем - только ошибка округления
            report.rtt_mdev = math.sqrt(
                max(0.0, stats.tsum2 / stats.received - avg * avg))
        return report

