from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from enum import Enum
import signal
import time
from typing import Any, Callable, Iterable, Iterator, Tuple

from ndnping.kernel.logger import ModelLogger, ModelLoggerConfig
from ndnping.kernel.scheduler import Handler, Scheduler
from ndnping.transport.base import Transport


# Определения простых сигнатур функций:
Finalizer = Callable[["EventLoop"], object]
Initializer = Callable[..., None]
CompletionCheck = Callable[[], bool]

# Ограничение на время одного опроса транспорта по-умолчанию (секунды)
DEFAULT_POLL_TIMEOUT = 0.01


class ExitReason(Enum):
    NO_MORE_EVENTS = 0  # модель сообщила, что работа закончена
    REACHED_REAL_TIME_LIMIT = 1
    REACHED_TIME_LIMIT = 2  # по часам планировщика
    INTERRUPTED = 3  # прерывание оператором (SIGINT)
    TRANSPORT_ERROR = 4


@dataclass
class ExecutionStats:
    '''
    Структура данных для хранения результатов одного запуска цикла
    Some args:
        time - время по часам планировщика (после выполнения)
        time_elapsed - реальная длительность работы в секундах
        num_iterations - сколько раз был опрошен транспорт
        last_handler - последний выполненный обработчик
    '''
    num_events_processed: int
    num_iterations: int
    time: float
    time_elapsed: float
    exit_reason: ExitReason
    stop_message: str = ""
    last_handler: Handler | None = None


ExecResult = Tuple[ExecutionStats, object | dict, object | dict | None]


class EventLoop:
    '''
    Однопоточный цикл работы клиента и сервера.

    На каждой итерации цикл сначала выполняет все наступившие события
    планировщика (например, отправку очередной пробы), а затем опрашивает
    транспорт не дольше `poll_timeout` секунд. Оба ожидания ограничены,
    поэтому условия остановки проверяются часто, и ни отправка, ни прием
    не голодают.

    Some args:
        scheduler - планировщик событий (часы + очередь)
        transport - транспорт, от которого приходят ответы и таймауты
        poll_timeout - ограничение на время одного опроса транспорта
        context - контекст модели (сессия клиента, ответчик сервера)
    '''
    def __init__(
            self,
            name: str,
            scheduler: Scheduler,
            transport: Transport,
            poll_timeout: float = DEFAULT_POLL_TIMEOUT,
            catch_signals: bool = False,
    ):
        self._name = name
        self.catch_signals = catch_signals
        # Логгер общий с планировщиком: если его уже создали и настроили
        # (например, сервер пишет в лог до запуска цикла), он используется
        if scheduler.logger is None:
            scheduler.logger = ModelLogger(name, scheduler.clock.now)
        self._logger = scheduler.logger

        self.scheduler = scheduler
        self.transport = transport
        self.poll_timeout = poll_timeout

        self._initializer: Initializer | None = None
        self._initializer_args: Iterable[Any] = ()
        self._finalize: Finalizer | None = None
        self._is_complete: CompletionCheck | None = None

        # Условия остановки
        self._t_start = None
        self._max_time = None
        self._max_real_time = None
        self._interrupted = False
        self.stop_reason: ExitReason | None = None
        self.stop_msg = ''

        self.context: object | None = None
        self._num_iterations = 0
        self._num_events_served = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def logger(self) -> ModelLogger:
        return self._logger

    @property
    def time(self) -> float:
        return self.scheduler.time

    def set_initializer(
            self,
            fn: Initializer,
            args: Iterable[Any] = ()
    ) -> None:
        self._initializer = fn
        self._initializer_args = args

    def set_finalizer(self, fn: Finalizer) -> None:
        self._finalize = fn

    def set_completion_check(self, fn: CompletionCheck) -> None:
        """Задать функцию, возвращающую True, когда работа закончена."""
        self._is_complete = fn

    def set_context(self, context: object) -> None:
        self.context = context

    def set_max_time(self, value: float) -> None:
        self._max_time = value

    def set_max_real_time(self, value: float) -> None:
        self._max_real_time = value

    def interrupt(self) -> None:
        """
        Запросить остановку по прерыванию.

        Метод только выставляет флаг, поэтому его можно вызывать из
        обработчика сигнала: отчет строится уже в основном цикле, после
        того как текущий обработчик события отработал до конца.
        """
        self._interrupted = True

    @property
    def interrupted(self) -> bool:
        return self._interrupted

    def stop_conditions(self) -> bool:
        '''Возвращает True для остановки цикла'''
        if self._interrupted:
            self.stop_reason = ExitReason.INTERRUPTED
            return True
        if self._is_complete is not None and self._is_complete():
            self.stop_reason = ExitReason.NO_MORE_EVENTS
            return True
        if self._max_time is not None and self.time >= self._max_time:
            self.stop_reason = ExitReason.REACHED_TIME_LIMIT
            return True
        if (self._max_real_time is not None and
                self.real_time_elapsed >= self._max_real_time):
            self.stop_reason = ExitReason.REACHED_REAL_TIME_LIMIT
            return True
        return False

    def build_runner(self) -> Iterator[ExecResult]:
        """
        Начинает выполнение.

        Вызывает инициализатор, затем крутит цикл "события планировщика -
        опрос транспорта", пока не выполнится одно из условий остановки.
        После этого вызывает финализатор.

        Returns:
            Описано в конце метода в yield
        """
        self._logger.setup()
        self._logger.debug("loop started")

        self._num_iterations = 0
        self._num_events_served = 0
        self._t_start = time.time()
        if self._max_time is not None:
            self._max_time += self.time

        # Сигнал перехватывается уже на время инициализации
        guard = interrupt_on_signal(self) if self.catch_signals \
            else nullcontext()
        with guard:
            if self._initializer is not None:
                self._initializer(self, *self._initializer_args)

            while not self.stop_conditions():
                self._num_events_served += self.scheduler.run_pending()
                res = self.transport.run(self.poll_timeout)
                self._num_iterations += 1
                if res < 0:
                    self.stop_reason = ExitReason.TRANSPORT_ERROR
                    self.stop_msg = f"transport failed (res == {res})"
                    self.logger.error("transport failed (res == %d)", res)
                    break
                self._num_events_served += res

        fin_ret = None
        if self._finalize:
            fin_ret = self._finalize(self)

        yield (
            ExecutionStats(
                num_events_processed=self._num_events_served,
                num_iterations=self._num_iterations,
                time=self.time,
                time_elapsed=self.real_time_elapsed,
                exit_reason=self.stop_reason,
                stop_message=self.stop_msg,
                last_handler=self.scheduler.last_handler,
            ),
            self.context,
            fin_ret,
        )

    @property
    def real_time_elapsed(self):
        return time.time() - self._t_start


def build_loop(
        name: str,
        scheduler: Scheduler,
        transport: Transport,
        init: Initializer,
        init_args: Iterable[Any] = (),
        fin: Finalizer | None = None,
        context: object | None = None,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
        max_real_time: float | None = None,
        max_time: float | None = None,
        logger_config: ModelLoggerConfig | None = None,
        catch_signals: bool = False,
) -> Iterator[ExecResult]:
    """
    Собрать цикл работы и вернуть генератор, который его выполнит.

    Можно задать несколько условий остановки:

    - по реальному времени (сколько секунд до остановки)
    - по времени планировщика (для модельных часов это модельное время)

    Кроме того, цикл останавливается, когда модель сообщает о завершении
    работы (см. `EventLoop.set_completion_check()`),
    по прерыванию и при ошибке транспорта.

    Функцию инициализации надо передать обязательно, ее задача - создать
    контекст и запланировать первые события. Если передать функцию `fin`,
    то она будет вызвана после завершения цикла, ее результат будет возвращен
    в третьем элементе кортежа-результата.

    Args:
        name: название программы (имя логгера)
        scheduler: планировщик
        transport: транспорт
        init: функция инициализации, обязательная
        init_args: кортеж аргументов функции инициализации
        fin: функция завершения, опциональная
        context: контекст (словарь или объект)
        poll_timeout: ограничение на время опроса транспорта
        max_real_time: реальное время, когда надо остановиться
        max_time: время по часам планировщика, через которое надо остановиться
        logger_config: конфигурация логгера
        catch_signals: перехватывать ли SIGINT на время работы цикла
            (прерывание превращается в `ExitReason.INTERRUPTED`)

    Returns:
        stats (ExecutionStats): статистика выполнения
        context (object): контекст
        fin_ret (object | None): результат вызова finalize(), если был вызов
    """
    loop = EventLoop(
        name, scheduler, transport,
        poll_timeout=poll_timeout,
        catch_signals=catch_signals,
    )
    loop.logger.setup(logger_config)

    loop.set_initializer(init, init_args)
    if fin is not None:
        loop.set_finalizer(fin)
    if max_real_time is not None:
        loop.set_max_real_time(max_real_time)
    if max_time is not None:
        loop.set_max_time(max_time)
    loop.set_context(context)

    return loop.build_runner()


def run_loop(runner: Iterator[ExecResult]) -> ExecResult:
    ret = None
    try:
        while True:
            ret = next(runner)
    except StopIteration:
        pass
    if ret is None:
        raise RuntimeError("event loop yield no results")
    return ret


@contextmanager
def interrupt_on_signal(loop: EventLoop, signum: int = signal.SIGINT):
    """
    Направить сигнал (по-умолчанию SIGINT) в `loop.interrupt()`.

    Обработчик сигнала только выставляет флаг; по выходу из блока
    восстанавливается прежний обработчик.
    """
    def handler(signo, frame):
        loop.interrupt()

    previous = signal.signal(signum, handler)
    try:
        yield loop
    finally:
        signal.signal(signum, previous)
