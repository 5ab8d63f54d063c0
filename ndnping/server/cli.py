import sys

import click
from pydantic import ValidationError

from ndnping.cli import CONTEXT_SETTINGS, PingCommand, PingUsageError, \
    build_logger, help_option, split_arguments, validation_message
from ndnping.kernel.logger import ModelLoggerConfig
from ndnping.kernel.loop import ExecutionStats, build_loop, run_loop
from ndnping.kernel.scheduler import Scheduler, WallClock
from ndnping.server.config import DEFAULT_FRESHNESS, ServerConfig
from ndnping.server.daemon import DaemonizeError, daemonize
from ndnping.server.handlers import finalize, initialize
from ndnping.server.objects import ServerReport
from ndnping.server.responder import Responder
from ndnping.transport.base import Transport, TransportError


PROGRAM = 'ndnpingserver'

# Сервер только ждет запросов, поэтому транспорт опрашивается подольше
SERVER_POLL_TIMEOUT = 0.1

OPTION_NAMES = {
    'prefix': 'name prefix',
    'freshness': '-x',
}


@click.command(cls=PingCommand, context_settings=CONTEXT_SETTINGS)
@click.argument('args', nargs=-1, metavar='NAME-PREFIX')
@click.option(
    '-x', 'freshness', type=int, default=DEFAULT_FRESHNESS,
    help='Срок свежести ответа, секунды',
    show_default=True
)
@click.option('-d', 'daemon', is_flag=True, help='Работать в режиме демона')
@click.option(
    '--log-file', type=click.Path(dir_okay=False), default=None,
    help='Дублировать лог в файл'
)
@click.option('-v', '--verbose', is_flag=True, help='Отладочный вывод')
@help_option('-h')
def cli_run(args, freshness, daemon, log_file, verbose):
    '''
    Ответчик ndnping: отвечает на Interest-ы вида NAME-PREFIX/ping/<номер>.
    '''
    prefix = split_arguments(PROGRAM, args)
    try:
        config = ServerConfig(prefix=prefix, freshness=freshness, daemon=daemon)
    except ValidationError as exc:
        raise PingUsageError(validation_message(exc, OPTION_NAMES)) from exc

    scheduler = Scheduler(WallClock())
    logger_config = build_logger(
        PROGRAM, scheduler, verbose=verbose, log_file=log_file
    )
    # Внутри цикла SIGINT перехватывает сам цикл; прерывание до его запуска
    # (подключение, регистрация) завершает сервер так же, с кодом 0
    try:
        try:
            transport = build_transport()
        except TransportError as exc:
            click.echo(f"{PROGRAM}: {exc}", err=True)
            sys.exit(1)
        try:
            run_server(
                config, scheduler, transport, logger_config,
                catch_signals=True,
            )
        except (TransportError, DaemonizeError) as exc:
            click.echo(f"{PROGRAM}: {exc}", err=True)
            sys.exit(1)
        finally:
            transport.close()
    except KeyboardInterrupt:
        sys.exit(0)
    finally:
        scheduler.logger.close()


def build_transport() -> Transport:
    """
    Подключиться к локальному форвардеру.

    Raises:
        TransportError: нет python-ndn или форвардер недоступен
    """
    try:
        from ndnping.transport.ndn import NdnTransport
    except ImportError as exc:
        raise TransportError(
            "python-ndn is not installed, use `pip install ndnping[ndn]`"
        ) from exc
    transport = NdnTransport()
    try:
        transport.connect()
    except (TransportError, KeyboardInterrupt):
        transport.close()
        raise
    return transport


def run_server(
        config: ServerConfig,
        scheduler: Scheduler,
        transport: Transport,
        logger_config: ModelLoggerConfig | None = None,
        max_real_time: float | None = None,
        max_time: float | None = None,
        catch_signals: bool = False,
) -> tuple[ExecutionStats, ServerReport]:
    """
    Зарегистрировать префикс, при необходимости уйти в демоны и отвечать
    на запросы до прерывания (или до истечения лимитов времени).

    Raises:
        TransportError: если префикс не удалось зарегистрировать
        DaemonizeError: если не удалось перейти в режим демона
    """
    responder = Responder(
        config.ping_prefix(), transport,
        freshness=config.freshness,
        logger=scheduler.logger,
    )
    res = responder.register()
    if res < 0:
        raise TransportError(f"Failed to register interest (res == {res})")

    if config.daemon:
        daemonize()

    stats, _, report = run_loop(
        build_loop(
            PROGRAM,
            scheduler,
            transport,
            init=initialize,
            init_args=(responder,),
            fin=finalize,
            poll_timeout=SERVER_POLL_TIMEOUT,
            max_real_time=max_real_time,
            max_time=max_time,
            logger_config=logger_config,
            catch_signals=catch_signals,
        ))
    return stats, report


if __name__ == '__main__':
    cli_run()
