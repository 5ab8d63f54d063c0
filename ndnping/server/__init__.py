from .config import ServerConfig, DEFAULT_FRESHNESS
from .objects import ServerReport
from .responder import Responder, PING_ACK
from .daemon import daemonize, DaemonizeError
