import itertools
import json

import pytest

from ndnping.client.objects import PingReport, Statistics
from ndnping.client.processing import format_report, result_processing


def make_stats(rtts, sent=None, start=0.0):
    stats = Statistics(prefix='/example', start=start)
    stats.sent = len(rtts) if sent is None else sent
    for rtt in rtts:
        stats.add_rtt(rtt)
    return stats


def test_add_rtt():
    stats = make_stats([10.0, 30.0, 20.0])

    assert stats.received == 3
    assert stats.min == 10.0
    assert stats.max == 30.0
    assert stats.tsum == 60.0
    assert stats.tsum2 == 1400.0


def test_report_does_not_depend_on_order():
    rtts = [12.5, 3.25, 40.0, 7.75]
    reports = [
        PingReport.from_statistics(make_stats(list(order), sent=6), 2.0)
        for order in itertools.permutations(rtts)
    ]
    first = reports[0]
    for report in reports[1:]:
        assert report.rtt_min == first.rtt_min
        assert report.rtt_max == first.rtt_max
        assert report.rtt_avg == pytest.approx(first.rtt_avg)
        assert report.rtt_mdev == pytest.approx(first.rtt_mdev)
        assert report.loss == first.loss


def test_report_values():
    report = PingReport.from_statistics(make_stats([10.0, 20.0, 30.0]), 2.5)

    assert report.sent == 3
    assert report.received == 3
    assert report.loss == 0.0
    assert report.time == 2500
    assert report.rtt_min == 10.0
    assert report.rtt_avg == pytest.approx(20.0)
    assert report.rtt_max == 30.0
    assert report.rtt_mdev == pytest.approx(8.16496580927726)


def test_report_full_loss():
    report = PingReport.from_statistics(make_stats([], sent=4), 1.0)

    assert report.loss == 100.0
    assert report.rtt_min is None
    assert report.rtt_mdev is None
    assert format_report(report).splitlines() == [
        '',
        '--- /example ping statistics ---',
        '4 Interests transmitted, 0 Data received, '
        '100.0% packet loss, time 1000 ms',
    ]


def test_report_nothing_sent():
    report = PingReport.from_statistics(make_stats([], sent=0), 0.0)

    assert report.loss is None
    assert format_report(report).splitlines() == [
        '', '--- /example ping statistics ---'
    ]


def test_mdev_is_never_negative():
    # Одинаковые RTT: под корнем получается ноль или ошибка округления
    report = PingReport.from_statistics(make_stats([0.1] * 10), 1.0)
    assert report.rtt_mdev >= 0.0
    assert report.rtt_mdev == pytest.approx(0.0, abs=1e-6)


def test_format_report_with_rtt():
    report = PingReport.from_statistics(
        make_stats([10.0, 20.0, 30.0], sent=4), 3.0
    )
    assert format_report(report).splitlines()[2:] == [
        '4 Interests transmitted, 3 Data received, '
        '25.0% packet loss, time 3000 ms',
        'rtt min/avg/max/mdev = 10.000/20.000/30.000/8.165 ms',
    ]


def test_snapshot_is_a_copy():
    stats = make_stats([10.0])
    snapshot = stats.snapshot()
    stats.add_rtt(20.0)

    assert snapshot.received == 1
    assert stats.received == 2


def test_result_processing_saves_json(tmp_path, capsys):
    report = PingReport.from_statistics(make_stats([5.0, 15.0]), 1.0)
    file_name = tmp_path / 'out' / 'report.json'

    result_processing(report, str(file_name))

    saved = json.loads(file_name.read_text())
    assert saved['sent'] == 2
    assert saved['rtt_avg'] == pytest.approx(10.0)
    assert '--- /example ping statistics ---' in capsys.readouterr().out
