import json
import os
import signal

import pytest
from click.testing import CliRunner

from ndnping.client import cli
from ndnping.client.cli import cli_run, run_model
from ndnping.client.config import PingConfig
from ndnping.kernel import ExitReason, ModelClock, Scheduler
from ndnping.transport.sim import SimNetwork
from ndnping.server.responder import Responder


SIM = ['--transport', 'sim', '--model-time', '--sim-delay', '0.01']


def invoke(*args):
    runner = CliRunner()
    return runner.invoke(cli_run, [str(arg) for arg in args])


def test_all_probes_answered():
    result = invoke('/example', *SIM, '-c', 3, '-i', 0.1, '-n', 0)

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == 'NDNPING /example'
    assert lines[1:4] == [
        f'content from /example: number = {n}  rtt = 20.000 ms'
        for n in range(3)
    ]
    assert '--- /example ping statistics ---' in lines
    assert any(line.startswith(
        '3 Interests transmitted, 3 Data received, 0.0% packet loss'
    ) for line in lines)
    assert 'rtt min/avg/max/mdev = 20.000/20.000/20.000/0.000 ms' in lines


def test_no_responder_all_timeouts():
    result = invoke(
        '/example', *SIM, '--sim-no-responder', '--lifetime', 1,
        '-c', 3, '-i', 0.1, '-n', 10,
    )

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert [line for line in lines if line.startswith('timeout')] == [
        f'timeout from /example: number = {n}' for n in (10, 11, 12)
    ]
    assert any(line.startswith(
        '3 Interests transmitted, 0 Data received, 100.0% packet loss'
    ) for line in lines)
    assert not any(line.startswith('rtt') for line in lines)


def test_identifier_and_timestamps():
    result = invoke('ccnx:/example', *SIM, '-c', 1, '-n', 0, '-p', 'abc', '-t')

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == '0.000000: NDNPING ccnx:/example'
    assert lines[1] == (
        '0.020000: content from ccnx:/example: number = 0  rtt = 20.000 ms'
    )


def test_save_report(tmp_path):
    file_name = tmp_path / 'report.json'
    result = invoke(
        '/example', *SIM, '-c', 2, '-n', 0, '--save', file_name
    )

    assert result.exit_code == 0, result.output
    saved = json.loads(file_name.read_text())
    assert saved['prefix'] == '/example'
    assert saved['sent'] == 2
    assert saved['received'] == 2
    assert saved['loss'] == 0.0


def test_extra_arguments_ignored():
    result = invoke('/example', 'extra', *SIM, '-c', 1, '-n', 0)

    assert result.exit_code == 0
    assert 'ndnping warning: extra arguments ignored' in result.output
    assert 'content from /example: number = 0  rtt = 20.000 ms' \
        in result.output


def test_interrupt_prints_report(monkeypatch):
    build_transport = cli.build_transport

    def build_with_interrupt(kind, config, scheduler, **kwargs):
        scheduler.schedule(0.05, os.kill, (os.getpid(), signal.SIGINT))
        return build_transport(kind, config, scheduler, **kwargs)

    monkeypatch.setattr(cli, 'build_transport', build_with_interrupt)
    result = invoke('/example', *SIM, '-i', 0.1, '-n', 0)

    assert result.exit_code == 130
    assert 'content from /example: number = 0  rtt = 20.000 ms' \
        in result.output
    assert any(line.startswith(
        '1 Interests transmitted, 1 Data received, 0.0% packet loss'
    ) for line in result.output.splitlines())


def test_interrupt_while_connecting(monkeypatch):
    def interrupted(*args, **kwargs):
        raise KeyboardInterrupt

    monkeypatch.setattr(cli, 'build_transport', interrupted)
    result = invoke('/example', *SIM, '-n', 0)

    assert result.exit_code == 130
    lines = result.output.splitlines()
    assert '--- /example ping statistics ---' in lines
    assert not any('Interests transmitted' in line for line in lines)


@pytest.mark.parametrize('args', [
    [],
    ['/example', '-i', '0.05'],
    ['/example', '-i', 'fast'],
    ['/example', '-c', '0'],
    ['/example', '-c', '-2'],
    ['/example', '-n', '-1'],
    ['/example', '-p', 'abc1'],
    ['/example', '-p', ''],
    ['/example', '-z'],
    ['example'],
    ['/bad%zz'],
    ['/example', '--model-time'],
    ['/example', '--transport', 'sim', '--sim-loss', '2'],
])
def test_usage_errors(args):
    result = invoke(*args)

    assert result.exit_code == 1, result.output
    assert 'Usage:' in result.output
    assert 'NDNPING' not in result.output


def test_help_exits_with_one():
    result = invoke('-h')

    assert result.exit_code == 1
    assert 'Usage:' in result.output
    assert '-i' in result.output


def test_run_model_interrupted_after_first_answer():
    scheduler = Scheduler(ModelClock())
    config = PingConfig(prefix='/example', interval=0.1, start_number=0)
    network = SimNetwork(scheduler, delay=0.01)
    Responder(config.target_prefix(), network.face()).register()
    face = network.face()
    scheduler.schedule(0.05, os.kill, (os.getpid(), signal.SIGINT))

    stats, report = run_model(config, scheduler, face, catch_signals=True)

    assert stats.exit_reason is ExitReason.INTERRUPTED
    assert report.sent == 1
    assert report.received == 1
    assert report.loss == 0.0
    assert report.rtt_avg == pytest.approx(20.0)


def test_run_model_counts_lost_answers():
    scheduler = Scheduler(ModelClock())
    config = PingConfig(
        prefix='/example', interval=0.1, start_number=0, total=20,
        lifetime=0.5,
    )
    network = SimNetwork(scheduler, delay=0.01, loss_prob=0.3, seed=1)
    Responder(config.target_prefix(), network.face()).register()

    stats, report = run_model(config, scheduler, network.face())

    assert stats.exit_reason is ExitReason.NO_MORE_EVENTS
    assert report.sent == 20
    assert 0 < report.received < 20
    assert report.loss == pytest.approx(
        (20 - report.received) * 100 / 20)
