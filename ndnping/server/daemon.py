import os
import sys


DAEMON_UMASK = 0o027


class DaemonizeError(OSError):
    """Не удалось перейти в режим демона."""
    ...


def daemonize() -> None:
    """
    Отцепиться от терминала.

    Родительский процесс сразу завершается с кодом 0 (через `os._exit`,
    без раскрутки стека и закрытия ресурсов), потомок становится лидером
    новой сессии, переходит в корень файловой системы, перенаправляет
    стандартные потоки в /dev/null и выставляет umask. Ошибки сообщаются
    исключением до перенаправления потоков, поэтому их видно в терминале.

    Raises:
        DaemonizeError: если fork, setsid, chdir или открытие /dev/null
            завершились ошибкой
    """
    try:
        pid = os.fork()
    except OSError as exc:
        raise DaemonizeError(exc.errno, f"fork failed: {exc}") from exc
    if pid != 0:
        # Родительский процесс. Соединение с форвардером теперь общее
        # с потомком, поэтому никаких finally и закрытия транспорта
        for stream in (sys.stdout, sys.stderr):
            stream.flush()
        os._exit(0)

    try:
        os.setsid()
    except OSError as exc:
        raise DaemonizeError(exc.errno, f"setsid failed: {exc}") from exc

    try:
        os.chdir("/")
        null_fd = os.open(os.devnull, os.O_RDWR)
    except OSError as exc:
        raise DaemonizeError(exc.errno, f"cannot detach: {exc}") from exc

    for stream in (sys.stdout, sys.stderr):
        stream.flush()
    for fd in (0, 1, 2):
        os.dup2(null_fd, fd)
    if null_fd > 2:
        os.close(null_fd)

    os.umask(DAEMON_UMASK)
