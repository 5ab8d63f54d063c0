from .config import PingConfig, PING_COMPONENT, PING_MIN_INTERVAL
from .objects import PingReport, Statistics, CorrelationError
from .session import PingSession
