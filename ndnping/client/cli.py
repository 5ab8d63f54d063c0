import random
import signal
import sys

import click
from pydantic import ValidationError

from ndnping.cli import CONTEXT_SETTINGS, PingCommand, PingUsageError, \
    build_logger, help_option, split_arguments, validation_message
from ndnping.client.config import DEFAULT_INTERVAL, PingConfig
from ndnping.client.handlers import finalize, initialize
from ndnping.client.objects import PingReport
from ndnping.client.processing import result_processing
from ndnping.kernel.logger import ModelLoggerConfig
from ndnping.kernel.loop import ExecutionStats, ExitReason, build_loop, \
    run_loop
from ndnping.kernel.scheduler import ModelClock, Scheduler, WallClock
from ndnping.server.responder import Responder
from ndnping.transport.base import DEFAULT_INTEREST_LIFETIME, Transport, \
    TransportError
from ndnping.transport.sim import DEFAULT_CHANNEL_DELAY, SimNetwork


PROGRAM = 'ndnping'

# Имена полей конфигурации -> ключи командной строки (для сообщений)
OPTION_NAMES = {
    'prefix': 'name prefix',
    'interval': '-i',
    'total': '-c',
    'start_number': '-n',
    'identifier': '-p',
    'lifetime': '--lifetime',
}


@click.command(cls=PingCommand, context_settings=CONTEXT_SETTINGS)
@click.argument('args', nargs=-1, metavar='NAME-PREFIX')
@click.option(
    '-i', 'interval', type=float, default=DEFAULT_INTERVAL,
    help='Интервал между пробами, секунды (не меньше 0.1)',
    show_default=True
)
@click.option(
    '-c', 'total', type=int, default=None,
    help='Сколько проб отправить (по-умолчанию - без ограничения)'
)
@click.option(
    '-n', 'start_number', type=int, default=None,
    help='Номер первой пробы (по-умолчанию - случайные номера)'
)
@click.option(
    '-p', 'identifier', default=None,
    help='Идентификатор (только буквы), добавляется в имя перед номером'
)
@click.option(
    '-a', 'allow_cache', is_flag=True,
    help='Разрешить ответы из кеша маршрутизаторов'
)
@click.option(
    '-t', 'print_timestamp', is_flag=True,
    help='Печатать время перед каждой строкой'
)
@click.option(
    '--transport', type=click.Choice(['ndn', 'sim']), default='ndn',
    help='Транспорт: форвардер NDN или модельная сеть',
    show_default=True
)
@click.option(
    '--sim-delay', type=float, default=DEFAULT_CHANNEL_DELAY,
    help='Модельная сеть: задержка в одну сторону, секунды',
    show_default=True
)
@click.option(
    '--sim-jitter', type=float, default=0.0,
    help='Модельная сеть: средний разброс задержки, секунды',
    show_default=True
)
@click.option(
    '--sim-loss', type=float, default=0.0,
    help='Модельная сеть: вероятность потери пакета',
    show_default=True
)
@click.option(
    '--sim-seed', type=int, default=None,
    help='Модельная сеть: зерно генератора случайных чисел'
)
@click.option(
    '--sim-no-responder', is_flag=True,
    help='Модельная сеть: не запускать ответчик (все пробы теряются)'
)
@click.option(
    '--model-time', is_flag=True,
    help='Использовать модельное время (только с --transport sim)'
)
@click.option(
    '--lifetime', type=float, default=DEFAULT_INTEREST_LIFETIME,
    help='Время жизни Interest, секунды',
    show_default=True
)
@click.option(
    '--save', 'save_to', type=click.Path(dir_okay=False), default=None,
    help='Сохранить итоговую статистику в JSON-файл'
)
@click.option(
    '--log-file', type=click.Path(dir_okay=False), default=None,
    help='Дублировать лог в файл'
)
@click.option('-v', '--verbose', is_flag=True, help='Отладочный вывод')
@help_option('-h')
def cli_run(args, interval, total, start_number, identifier, allow_cache,
            print_timestamp, transport, sim_delay, sim_jitter, sim_loss,
            sim_seed, sim_no_responder, model_time, lifetime, save_to,
            log_file, verbose):
    '''
    Проверка доступности префикса NDN: периодически отправляет Interest-ы
    вида NAME-PREFIX/ping[/ID]/<номер> и печатает время ответа.
    '''
    prefix = split_arguments(PROGRAM, args)
    try:
        config = PingConfig(
            prefix=prefix,
            interval=interval,
            total=total,
            start_number=start_number,
            identifier=identifier,
            allow_cache=allow_cache,
            print_timestamp=print_timestamp,
            lifetime=lifetime,
        )
    except ValidationError as exc:
        raise PingUsageError(validation_message(exc, OPTION_NAMES)) from exc
    if model_time and transport != 'sim':
        raise PingUsageError("--model-time requires --transport sim")

    scheduler = Scheduler(ModelClock() if model_time else WallClock())
    logger_config = build_logger(
        PROGRAM, scheduler,
        verbose=verbose,
        print_timestamp=print_timestamp,
        log_file=log_file,
    )
    try:
        try:
            face = build_transport(
                transport, config, scheduler,
                delay=sim_delay,
                jitter=sim_jitter,
                loss_prob=sim_loss,
                seed=sim_seed,
                responder=not sim_no_responder,
            )
        except ValueError as exc:
            raise PingUsageError(str(exc)) from exc
        except TransportError as exc:
            click.echo(f"{PROGRAM}: {exc}", err=True)
            sys.exit(1)
        except KeyboardInterrupt:
            # Прерывание до начала сессии: отчет пустой, но печатается
            result_processing(PingReport(
                prefix=config.prefix, sent=0, received=0, time=0
            ), save_to)
            sys.exit(128 + signal.SIGINT)

        try:
            stats, report = run_model(
                config, scheduler, face, logger_config, catch_signals=True
            )
        finally:
            face.close()
        result_processing(report, save_to)
    finally:
        scheduler.logger.close()

    if stats.exit_reason is ExitReason.INTERRUPTED:
        sys.exit(128 + signal.SIGINT)
    if stats.exit_reason is ExitReason.TRANSPORT_ERROR:
        sys.exit(1)


def build_transport(
        kind: str,
        config: PingConfig,
        scheduler: Scheduler,
        delay: float = DEFAULT_CHANNEL_DELAY,
        jitter: float = 0.0,
        loss_prob: float = 0.0,
        seed: int | None = None,
        responder: bool = True,
) -> Transport:
    """
    Создать транспорт клиента.

    Для модельной сети (`sim`) в той же сети запускается ответчик под
    префиксом проб, если `responder` не сброшен. Для `ndn` транспорт
    подключается к локальному форвардеру.

    Raises:
        ValueError: неверные параметры модельной сети
        TransportError: не удалось подключиться к форвардеру
    """
    if kind == 'sim':
        network = SimNetwork(scheduler, delay, jitter, loss_prob, seed)
        if responder:
            Responder(
                config.target_prefix(), network.face(),
                logger=scheduler.logger,
            ).register()
        return network.face()

    try:
        from ndnping.transport.ndn import NdnTransport
    except ImportError as exc:
        raise TransportError(
            "python-ndn is not installed, use `pip install ndnping[ndn]` "
            "or --transport sim"
        ) from exc
    face = NdnTransport()
    try:
        face.connect()
    except (TransportError, KeyboardInterrupt):
        face.close()
        raise
    return face


def run_model(
        config: PingConfig,
        scheduler: Scheduler,
        transport: Transport,
        logger_config: ModelLoggerConfig | None = None,
        max_real_time: float | None = None,
        max_time: float | None = None,
        catch_signals: bool = False,
        rng: random.Random | None = None,
) -> tuple[ExecutionStats, PingReport]:
    stats, _, report = run_loop(
        build_loop(
            PROGRAM,
            scheduler,
            transport,
            init=initialize,
            init_args=(config, rng),
            fin=finalize,
            max_real_time=max_real_time,
            max_time=max_time,
            logger_config=logger_config,
            catch_signals=catch_signals,
        ))
    return stats, report


if __name__ == '__main__':
    cli_run()
