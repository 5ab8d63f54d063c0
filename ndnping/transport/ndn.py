"""
Транспорт поверх форвардера NDN (библиотека python-ndn).

`NDNApp` работает в asyncio, а клиент и сервер - в цикле "события
планировщика - опрос транспорта с ограничением по времени". Адаптер
держит собственный цикл asyncio и крутит его внутри `run(timeout)`
ровно `timeout` секунд, так что все обратные вызовы выполняются в том
же потоке, что и остальная логика.

Нужен extra `ndn`: `pip install ndnping[ndn]`.
"""
import asyncio

from ndn.app import NDNApp
from ndn.encoding import Component, FormalName
from ndn.types import InterestCanceled, InterestNack, InterestTimeout, \
    NetworkError, ValidationFailure

from ndnping.names import Name
from ndnping.transport.base import Data, DataCallback, Interest, \
    InterestHandler, TimeoutCallback, Transport, TransportError, \
    DEFAULT_INTEREST_LIFETIME


# Исходы, которые для клиента означают "ответа не будет"
_NO_DATA_ERRORS = (
    InterestTimeout, InterestNack, InterestCanceled, ValidationFailure,
    NetworkError,
)


def to_ndn_name(name: Name) -> FormalName:
    return [Component.from_bytes(component) for component in name]


def from_ndn_name(name: FormalName) -> Name:
    return Name(bytes(Component.get_value(component)) for component in name)


class NdnTransport(Transport):
    """Транспорт через локальный форвардер NFD."""

    def __init__(self, app: NDNApp | None = None):
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self.app = app or NDNApp()
        except Exception as exc:
            self._loop.close()
            raise TransportError(f"cannot create NDN application: {exc}") \
                from exc
        self._main: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        # Исключения обратных вызовов, которые надо передать вызывающему run()
        self._errors: list[BaseException] = []

    @property
    def running(self) -> bool:
        return self._main is not None and not self._main.done()

    def connect(self) -> None:
        """
        Подключиться к форвардеру.

        Raises:
            TransportError: если соединение не установлено
        """
        connected = asyncio.Event()

        async def after_start():
            connected.set()

        self._main = self._loop.create_task(self.app.main_loop(after_start()))
        waiter = self._loop.create_task(connected.wait())
        done, _ = self._loop.run_until_complete(asyncio.wait(
            {self._main, waiter}, return_when=asyncio.FIRST_COMPLETED))
        if self._main in done:
            waiter.cancel()
            exc = self._main.exception()
            raise TransportError("could not connect to NFD") from exc

    def express_interest(
            self,
            interest: Interest,
            on_data: DataCallback,
            on_timeout: TimeoutCallback
    ) -> int:
        if not self.running:
            return -1
        try:
            pending = self.app.express_interest(
                to_ndn_name(interest.name),
                must_be_fresh=not interest.allow_cache,
                can_be_prefix=False,
                lifetime=int(interest.lifetime * 1000),
            )
        except NetworkError:
            return -1

        async def fetch():
            try:
                _, meta_info, content = await pending
            except _NO_DATA_ERRORS:
                on_timeout(interest)
                return
            freshness = None
            if meta_info is not None and \
                    meta_info.freshness_period is not None:
                freshness = meta_info.freshness_period / 1000
            on_data(interest, Data(
                name=interest.name,
                content=bytes(content) if content is not None else b"",
                freshness=freshness,
            ))

        task = self._loop.create_task(fetch())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return 0

    def set_interest_filter(self, prefix: Name, handler: InterestHandler) -> int:
        if not self.running:
            return -1
        ndn_prefix = to_ndn_name(prefix)

        def on_interest(name, param, _app_param):
            lifetime = DEFAULT_INTEREST_LIFETIME
            if param.lifetime is not None:
                lifetime = param.lifetime / 1000
            handler(Interest(
                name=from_ndn_name(name),
                lifetime=lifetime,
                allow_cache=not param.must_be_fresh,
            ))

        self.app.set_interest_filter(ndn_prefix, on_interest)
        try:
            registered = self._loop.run_until_complete(
                self.app.register(ndn_prefix))
        except NetworkError:
            return -1
        return 0 if registered else -1

    def sign(self, name: Name, content: bytes,
             freshness: float | None = None) -> Data:
        kwargs = {}
        if freshness is not None:
            kwargs['freshness_period'] = int(freshness * 1000)
        try:
            wire = self.app.prepare_data(to_ndn_name(name), content, **kwargs)
        except (KeyError, ValueError) as exc:
            raise TransportError(f"cannot sign {name}: {exc}") from exc
        return Data(name=name, content=content, freshness=freshness,
                    wire=bytes(wire))

    def put(self, data: Data) -> int:
        if not self.running:
            return -1
        wire = data.wire
        if wire is None:
            wire = self.sign(data.name, data.content, data.freshness).wire
        try:
            self.app.put_raw_packet(wire)
        except NetworkError:
            return -1
        return 0

    def run(self, timeout: float) -> int:
        """
        Крутить цикл asyncio `timeout` секунд (отрицательное значение - пока
        работает `NDNApp`).

        Raises:
            Exception: первое исключение, выброшенное обратным вызовом
                `on_data`/`on_timeout` (например, `CorrelationError`)
        """
        if not self.running:
            return -1
        if timeout < 0:
            self._loop.run_until_complete(asyncio.shield(self._main))
        else:
            self._loop.run_until_complete(asyncio.sleep(timeout))
        if self._errors:
            error = self._errors[0]
            self._errors.clear()
            raise error
        return 0 if self.running else -1

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._errors.append(task.exception())

    def close(self) -> None:
        if self._loop.is_closed():
            return
        if self.running:
            self.app.shutdown()
        for task in list(self._tasks):
            task.cancel()
        pending = [t for t in [self._main, *self._tasks] if t is not None]
        if pending:
            self._loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True))
        self._loop.close()
