from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ndnping.names import Name


# Время жизни Interest по-умолчанию (секунды), как у форвардера
DEFAULT_INTEREST_LIFETIME = 4.0


class TransportError(RuntimeError):
    """Ошибка транспорта: нет соединения, не удалось зарегистрировать
    префикс или подписать пакет."""
    ...


class FilterResult(Enum):
    CONSUMED = 0     # Interest обработан, другим обработчикам не нужен
    NOT_HANDLED = 1  # пусть попробуют другие обработчики


@dataclass(frozen=True)
class Interest:
    name: Name
    lifetime: float = DEFAULT_INTEREST_LIFETIME
    # Разрешить ответ из кеша маршрутизаторов (ключ -a клиента)
    allow_cache: bool = False


@dataclass(frozen=True)
class Data:
    name: Name
    content: bytes = b""
    # Срок свежести в секундах, None - без подсказки
    freshness: float | None = None
    signature: bytes = b""
    # Закодированный подписанный пакет, если транспорт его строит сам
    wire: bytes | None = None


DataCallback = Callable[[Interest, Data], None]
TimeoutCallback = Callable[[Interest], None]
InterestHandler = Callable[[Interest], FilterResult]


class Transport(ABC):
    """
    Интерфейс транспорта, которым пользуются клиент и сервер.

    Транспорт гарантирует: на каждый отправленный Interest ровно один раз
    вызывается либо `on_data`, либо `on_timeout`, с тем же самым Interest.
    Все обратные вызовы выполняются внутри `run()`.
    """

    @abstractmethod
    def express_interest(
            self,
            interest: Interest,
            on_data: DataCallback,
            on_timeout: TimeoutCallback
    ) -> int:
        """Отправить Interest. Отрицательный результат - ошибка отправки."""
        raise NotImplementedError

    @abstractmethod
    def set_interest_filter(self, prefix: Name, handler: InterestHandler) -> int:
        """Зарегистрировать обработчик Interest-ов под префиксом."""
        raise NotImplementedError

    @abstractmethod
    def sign(self, name: Name, content: bytes,
             freshness: float | None = None) -> Data:
        """Собрать и подписать Data."""
        raise NotImplementedError

    @abstractmethod
    def put(self, data: Data) -> int:
        """Отправить Data. Отрицательный результат - ошибка отправки."""
        raise NotImplementedError

    @abstractmethod
    def run(self, timeout: float) -> int:
        """
        Обслуживать транспорт не дольше `timeout` секунд (`timeout < 0` -
        пока есть что обслуживать). Отрицательный результат - транспорт
        больше не работает.
        """
        raise NotImplementedError

    def close(self) -> None:
        pass
