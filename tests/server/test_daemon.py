import errno
import os

import pytest

from ndnping.server import daemon
from ndnping.server.daemon import DAEMON_UMASK, DaemonizeError, daemonize


def test_fork_failure(monkeypatch):
    def fork():
        raise OSError(errno.EAGAIN, "Resource temporarily unavailable")

    monkeypatch.setattr(daemon.os, 'fork', fork)
    with pytest.raises(DaemonizeError) as exc_info:
        daemonize()

    assert exc_info.value.errno == errno.EAGAIN
    assert isinstance(exc_info.value, OSError)


class ParentExited(BaseException):
    pass


def test_parent_exits_immediately_with_zero(monkeypatch):
    exits = []

    def _exit(code):
        exits.append(code)
        raise ParentExited()

    monkeypatch.setattr(daemon.os, 'fork', lambda: 12345)
    monkeypatch.setattr(daemon.os, '_exit', _exit)
    with pytest.raises(ParentExited):
        daemonize()

    assert exits == [0]


def test_setsid_failure(monkeypatch):
    def setsid():
        raise OSError(errno.EPERM, "Operation not permitted")

    monkeypatch.setattr(daemon.os, 'fork', lambda: 0)
    monkeypatch.setattr(daemon.os, 'setsid', setsid)
    with pytest.raises(DaemonizeError):
        daemonize()


def test_child_detaches(monkeypatch):
    calls = []
    monkeypatch.setattr(daemon.os, 'fork', lambda: 0)
    monkeypatch.setattr(daemon.os, 'setsid', lambda: calls.append('setsid'))
    monkeypatch.setattr(
        daemon.os, 'chdir', lambda path: calls.append(('chdir', path)))
    monkeypatch.setattr(
        daemon.os, 'open', lambda path, flags: calls.append(('open', path))
        or 7)
    monkeypatch.setattr(
        daemon.os, 'dup2', lambda fd, fd2: calls.append(('dup2', fd, fd2)))
    monkeypatch.setattr(
        daemon.os, 'close', lambda fd: calls.append(('close', fd)))
    monkeypatch.setattr(
        daemon.os, 'umask', lambda mask: calls.append(('umask', mask)))

    daemonize()

    assert calls == [
        'setsid',
        ('chdir', '/'),
        ('open', os.devnull),
        ('dup2', 7, 0),
        ('dup2', 7, 1),
        ('dup2', 7, 2),
        ('close', 7),
        ('umask', DAEMON_UMASK),
    ]
