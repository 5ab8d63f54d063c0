"""
Общие части командной строки клиента и сервера.

Обе программы ведут себя как классические утилиты: `-h`, неизвестный ключ,
плохое значение или отсутствие префикса - это сообщение об использовании
в stderr и код возврата 1 (а не 2 и не 0, как принято в click).
"""
import logging
import sys

import click
from pydantic import ValidationError

from ndnping.kernel.logger import ModelLogger, ModelLoggerConfig
from ndnping.kernel.scheduler import Scheduler


CONTEXT_SETTINGS = {"help_option_names": []}


class PingUsageError(click.UsageError):
    exit_code = 1

    def __init__(self, message: str, ctx: click.Context | None = None):
        # Без контекста click не печатает строку "Usage: ..."
        super().__init__(message, ctx or click.get_current_context(silent=True))


class PingCommand(click.Command):
    """Команда click, у которой любая ошибка разбора дает код 1."""

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            exc.exit_code = PingUsageError.exit_code
            raise


def _print_usage(ctx: click.Context, param, value):
    if not value or ctx.resilient_parsing:
        return
    click.echo(ctx.get_help(), err=True)
    ctx.exit(1)


def help_option(*names: str):
    """Аналог `click.help_option`, но печатает в stderr и выходит с кодом 1."""
    return click.option(
        *names, is_flag=True, expose_value=False, is_eager=True,
        callback=_print_usage, help="Print this message and exit."
    )


def split_arguments(prog: str, args: tuple[str, ...]) -> str:
    """
    Вернуть префикс (первый позиционный аргумент). Лишние аргументы
    игнорируются с предупреждением.
    """
    if not args:
        raise PingUsageError("missing name prefix")
    if len(args) > 1:
        click.echo(f"{prog} warning: extra arguments ignored", err=True)
    return args[0]


def validation_message(exc: ValidationError, options: dict[str, str]) -> str:
    """Превратить ошибку pydantic в одну строку с именами ключей."""
    parts = []
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else ""
        parts.append(f"{options.get(field, field)}: {error['msg']}")
    return "; ".join(parts)


def build_logger(
        prog: str,
        scheduler: Scheduler,
        verbose: bool = False,
        print_timestamp: bool = False,
        log_file: str | None = None,
) -> ModelLoggerConfig:
    """Создать и настроить логгер программы, привязав его к планировщику."""
    config = ModelLoggerConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        colored_console=sys.stdout.isatty(),
        print_timestamp=print_timestamp,
        file_name=log_file,
    )
    logger = ModelLogger(prog, scheduler.clock.now)
    logger.setup(config)
    scheduler.logger = logger
    return config
