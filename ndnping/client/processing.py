from pathlib import Path

import click

from ndnping.client.objects import PingReport


def format_report(report: PingReport) -> str:
    """
    Текст итоговой статистики.

    Строка с потерями печатается, только если что-то было отправлено,
    строка с RTT - только если что-то было получено.
    """
    lines = ["", f"--- {report.prefix} ping statistics ---"]
    if report.sent > 0:
        lines.append(
            f"{report.sent} Interests transmitted, "
            f"{report.received} Data received, "
            f"{report.loss:.1f}% packet loss, time {report.time} ms"
        )
    if report.received > 0:
        lines.append(
            f"rtt min/avg/max/mdev = {report.rtt_min:.3f}/{report.rtt_avg:.3f}"
            f"/{report.rtt_max:.3f}/{report.rtt_mdev:.3f} ms"
        )
    return "\n".join(lines)


def save_report_to_file(report: PingReport, file_name: str | Path) -> None:
    path = Path(file_name)
    if path.parent != Path():
        path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(report.model_dump_json(indent=2) + "\n")


def result_processing(report: PingReport, save_to: str | None = None):
    """
    Обработка результатов клиента.

    Если задан `save_to`, отчет сохраняется в JSON-файл.
    Далее статистика выводится в терминал.
    """
    if save_to:
        save_report_to_file(report, save_to)
    click.echo(format_report(report))
