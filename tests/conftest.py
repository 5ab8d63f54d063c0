import pytest

from ndnping.kernel import ModelClock, Scheduler
from ndnping.transport.base import Data, Transport


class RecordingTransport(Transport):
    """
    Транспорт для тестов: запоминает все вызовы, результат каждой операции
    задается атрибутами. `run()` продвигает планировщик, если он задан.
    """
    def __init__(self, scheduler: Scheduler | None = None):
        self.scheduler = scheduler
        self.expressed = []   # (interest, on_data, on_timeout)
        self.filters = []     # (prefix, handler)
        self.sent = []        # Data, переданные в put()
        self.express_result = 0
        self.register_result = 0
        self.put_result = 0
        self.run_result = 0
        self.sign_error: Exception | None = None
        self.on_run = None
        self.closed = False

    def express_interest(self, interest, on_data, on_timeout) -> int:
        self.expressed.append((interest, on_data, on_timeout))
        return self.express_result

    def set_interest_filter(self, prefix, handler) -> int:
        self.filters.append((prefix, handler))
        return self.register_result

    def sign(self, name, content, freshness=None) -> Data:
        if self.sign_error is not None:
            raise self.sign_error
        return Data(name=name, content=content, freshness=freshness)

    def put(self, data) -> int:
        self.sent.append(data)
        return self.put_result

    def run(self, timeout) -> int:
        if self.on_run is not None:
            self.on_run()
        if self.run_result < 0:
            return self.run_result
        if self.scheduler is not None:
            return self.scheduler.advance(timeout)
        return self.run_result

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return ModelClock()


@pytest.fixture
def scheduler(clock):
    return Scheduler(clock)


@pytest.fixture
def transport(scheduler):
    return RecordingTransport(scheduler)
