from .logger import ModelLogger, ModelLoggerConfig, PING_LOGGER_FORMAT, \
    FILE_LOGGER_FORMAT, ColoredFormatter

from .scheduler import Scheduler, EventQueue, EventId, Handler, Clock, \
    WallClock, ModelClock, SchedulingInPastError

from .loop import EventLoop, build_loop, run_loop, interrupt_on_signal, \
    ExitReason, ExecutionStats, DEFAULT_POLL_TIMEOUT
