from abc import ABC, abstractmethod
import heapq
import itertools
import time
from typing import Any, Callable, Iterable, NewType

from ndnping.kernel.logger import ModelLogger


EventId = NewType('EventId', int)

# Обработчик события - любой вызываемый объект, аргументы передаются
# при планировании (`args`)
Handler = Callable[..., object]


class SchedulingInPastError(ValueError):
    """Исключение, возникающее при попытке запланировать событие в прошлом."""
    ...


class Clock(ABC):
    """
    Часы, по которым работает планировщик.

    Планировщику нужны только две операции: узнать текущее время и дождаться
    наступления заданного момента. Реальные часы действительно ждут, модельные
    просто переводят стрелки.
    """

    @abstractmethod
    def now(self) -> float:
        """Текущее время в секундах."""
        raise NotImplementedError

    @abstractmethod
    def wait_until(self, moment: float) -> None:
        """Дождаться момента `moment` (если он уже наступил - вернуться)."""
        raise NotImplementedError


class WallClock(Clock):
    """Реальное время (секунды с начала эпохи, разрешение - микросекунды)."""

    def now(self) -> float:
        return time.time()

    def wait_until(self, moment: float) -> None:
        delay = moment - time.time()
        if delay > 0:
            time.sleep(delay)


class ModelClock(Clock):
    """
    Модельное время. Ожидание мгновенное: часы сразу переводятся
    на нужный момент. Используется в симуляции и в тестах.
    """

    def __init__(self, start: float = 0.0):
        self._time = start

    def now(self) -> float:
        return self._time

    def wait_until(self, moment: float) -> None:
        if moment > self._time:
            self._time = moment


class EventQueue:
    '''
    Очередь событий, реализованная с помощью
    струкртуры данных "приоритетная куча (heapq)"
    '''
    def __init__(self):
        '''
        Args:
            _event_list - лист событий, который будет упорядочен,
                как приоритетная минимальная куча
            _event_dict -  словарь, сопоставляющий задачи с записями в листе
            _next_id - уникальный порядковый номер события
        '''
        self._event_list = []
        self._event_dict = {}
        self._next_id = itertools.count()

    def push(self, moment: float, task: Any) -> EventId:
        '''
        Добавление нового события по правилам кучи

        Args:
        moment - число (int, float), характеризующее время (приоритет) события
        task - содержимое события (для планировщика - обработчик и аргументы)

        Returns:
        event_id - уникальный порядковый номер события
        '''
        event_id = EventId(next(self._next_id))
        event = [moment, event_id, task]
        self._event_dict[event_id] = event
        heapq.heappush(self._event_list, event)
        return event_id

    def pop(self) -> tuple[float, EventId, Any]:
        '''
        :raises:
            - KeyError: если очередь пуста
        '''
        if self.empty:
            raise KeyError("Pop из пустой очереди событий!")
        (moment, event_id, task) = heapq.heappop(self._event_list)
        while task is None:
            (moment, event_id, task) = heapq.heappop(self._event_list)
        self._event_dict.pop(event_id)
        return moment, event_id, task

    def peek_time(self) -> float | None:
        '''
        Время ближайшего события или None, если очередь пуста.
        Отмененные события с вершины кучи при этом выбрасываются.
        '''
        while self._event_list and self._event_list[0][2] is None:
            heapq.heappop(self._event_list)
        return self._event_list[0][0] if self._event_list else None

    def __len__(self):
        '''
        Количество событий в очереди
        '''
        return len(self._event_dict)

    def cancel(self, event_id: EventId) -> bool:
        '''
        Отмена запланированного события в будущем
        '''
        if event_id is not None and event_id in self._event_dict:
            # Удаляем запись о событии из словаря (но не из кучи)
            event = self._event_dict.pop(event_id)
            event[-1] = None
            return True
        return False

    def clear(self):
        '''
        Очистка очереди событий
        '''
        self._event_list.clear()
        self._event_dict.clear()

    @property
    def empty(self):
        return len(self._event_dict) == 0


class Scheduler:
    """
    Планировщик событий поверх часов (`Clock`).

    Обработчики вызываются с аргументами, переданными при планировании.
    Планировщик ничего не знает о сети: он только хранит очередь событий
    и вызывает обработчики, когда наступает их время. Цикл работы
    (`EventLoop`) периодически вызывает `run_pending()`, а модельный
    транспорт - `advance()`, поэтому один и тот же планировщик может
    обслуживать и отправку проб, и доставку пакетов.
    """

    def __init__(
            self,
            clock: Clock | None = None,
            logger: ModelLogger | None = None
    ):
        self.clock = clock or WallClock()
        self.logger = logger
        self._queue = EventQueue()
        self.num_events_served = 0
        self.last_handler: Handler | None = None

    @property
    def time(self) -> float:
        """Текущее время по часам планировщика."""
        return self.clock.now()

    def schedule(
            self,
            delay: float,
            handler: Handler,
            args: Iterable[Any] = (),
            msg: str = ""
    ) -> EventId:
        """Запланировать событие в будущем и вернуть идентификатор события.

        Args:
            delay (float): интервал времени до наступления события (секунды)
            handler (Handler): обработчик события
            args (tuple[Any, ...], optional): аргументы для обработчика
            msg (str, optional): комментарий, выводится в лог при наступлении

        Raises:
            SchedulingInPastError: если `delay < 0`
            ValueError: если обработчик не задан (то есть None)
            TypeError: если обработчик не является вызываемым объектом

        Returns:
            EventId: идентификатор события
        """
        if delay < 0:
            raise SchedulingInPastError(
                f"cannot schedule event {delay} seconds in the past")
        if handler is None:
            raise ValueError("handler is not set")
        if not callable(handler):
            raise TypeError(f"handler {handler!r} is not callable")
        return self._queue.push(self.time + delay, (handler, tuple(args), msg))

    def call(
            self,
            handler: Handler,
            args: Iterable[Any] = (),
            msg: str = ""
    ) -> EventId:
        """Запланировать событие на текущий момент времени."""
        return self.schedule(0, handler, args, msg)

    def cancel(self, event_id: EventId) -> int:
        """Отменить событие, вернуть число отмененных событий (0 или 1)."""
        return int(self._queue.cancel(event_id))

    @property
    def next_event_time(self) -> float | None:
        return self._queue.peek_time()

    @property
    def empty(self) -> bool:
        return self._queue.empty

    def __len__(self):
        return len(self._queue)

    def run_pending(self) -> int:
        """
        Выполнить все события, время которых уже наступило. Не блокирует.

        Returns:
            int: число обработанных событий
        """
        now = self.time
        served = 0
        while True:
            moment = self._queue.peek_time()
            if moment is None or moment > now:
                break
            self._run_next()
            served += 1
        return served

    def advance(self, timeout: float) -> int:
        """
        Обслуживать события в течение `timeout` секунд.

        События, попадающие в интервал `[now, now + timeout]`, выполняются
        в порядке времени, между ними планировщик ждет по своим часам.
        После этого оставшееся время тоже выжидается, так что вызов длится
        ровно `timeout` (для модельных часов - мгновенно).

        Returns:
            int: число обработанных событий
        """
        if timeout < 0:
            raise SchedulingInPastError("timeout must be non-negative")
        deadline = self.time + timeout
        served = 0
        while True:
            moment = self._queue.peek_time()
            if moment is None or moment > deadline:
                break
            self.clock.wait_until(moment)
            self._run_next()
            served += 1
        self.clock.wait_until(deadline)
        return served

    def run_until_idle(self) -> int:
        """Выполнять события, пока очередь не опустеет."""
        served = 0
        while (moment := self._queue.peek_time()) is not None:
            self.clock.wait_until(moment)
            self._run_next()
            served += 1
        return served

    def _run_next(self) -> None:
        _, _, (handler, args, msg) = self._queue.pop()
        if msg and self.logger is not None:
            self.logger.debug("event: %s", msg)
        handler(*args)
        self.num_events_served += 1
        self.last_handler = handler
