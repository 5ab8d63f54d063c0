from dataclasses import dataclass
import logging
import sys
from typing import Callable, Literal
import uuid
import colorama


class ColoredFormatter(logging.Formatter):
    """
    Форматтер, выводит записи лога в консоль цветом, зависящим от уровня.

    Основа кода взята отсюда:
    https://alexandra-zaharia.github.io/posts/make-your-own-custom-color-formatter-with-python-logging
    """

    # Цвета по-умолчанию
    DEFAULT_COLORS = {
        logging.DEBUG: colorama.Fore.LIGHTBLACK_EX,
        logging.INFO: colorama.Fore.GREEN,
        logging.WARN: colorama.Fore.YELLOW,
        logging.ERROR: colorama.Fore.RED + colorama.Style.BRIGHT,
        logging.CRITICAL:
            colorama.Back.RED + colorama.Fore.WHITE + colorama.Style.BRIGHT,
    }

    def __init__(
        self,
        fmt: str,
        style: Literal['{', '%', '$'] = '%',
        colors: dict[int, str] | None = None,
        **kwargs
    ):
        super().__init__(fmt=fmt, style=style, **kwargs)  # type: ignore
        colors = colors or {}
        self.FORMATS = {
            level: logging.Formatter(
                colors.get(level, ColoredFormatter.DEFAULT_COLORS[level]) +
                fmt + colorama.Style.RESET_ALL,
                style=style  # type: ignore
            )
            for level in ColoredFormatter.DEFAULT_COLORS.keys()
        }

    def format(self, record):
        log_fmt: logging.Formatter = self.FORMATS[record.levelno]
        return log_fmt.format(record)


# Формат вывода в консоль. Строки ping-а печатаются как есть, поле `stamp`
# либо пустое, либо содержит время вида "1318954712.123456: " (ключ -t).
PING_LOGGER_FORMAT = "{stamp}{message}"

# Формат вывода в файл. Кроме стандартных полей используются два
# дополнительных, которые добавляет класс ModelLogger:
#
# - clock: время по часам планировщика
# - runId: идентификатор запуска
#
# Пример строки в журнале:
# 1318954712.123456 [WARNING ] ndnping (R:972274) (session.py:handle_timeout) - timeout from ...
FILE_LOGGER_FORMAT = (
    "{clock:017.06f} [{levelname:8s}] {name} (R:{runId}) "
    "({filename}:{funcName}) - {message}"
)


@dataclass
class ModelLoggerConfig:
    """Настройки логгера."""
    fmt: str = PING_LOGGER_FORMAT        # формат-строка для консоли
    file_fmt: str = FILE_LOGGER_FORMAT   # формат-строка для файла
    style: Literal['%', '{', '$'] = '{'  # стиль формат-строк

    level: int = logging.INFO      # уровень логгирования по-умолчанию

    use_console: bool = True       # логгировать ли в консоль (stdout)
    colored_console: bool = False  # использовать ли цветной вывод в консоль

    # Кастомные цвета (ключ - уровень логгирования, значение - цвет).
    # Если не заданы, используются значения по-умолчанию из ColoredFormatter.
    console_colors: dict[int, str] | None = None

    # Уровень логгирования в консоль, если не задан - использовать level
    console_level: int = 0

    # Печатать ли перед каждой строкой время (секунды.микросекунды)
    print_timestamp: bool = False

    # Имя лог-файла (без runId). Если не задан, логгирования в файл не будет.
    file_name: str | None = None

    # Уровень логгирования в файл, если не задан - использовать level
    file_level: int = 0

    # Разделитель между именем файла и runId (file_name<SEP>runId.log)
    file_name_sep: str = "_"

    # Формировать имя файла без run_id.
    file_name_no_run_id: bool = False


class ModelLogger:
    """
    Логгер клиента и сервера.

    В дополнение к стандартному логгеру, предоставляет дополнительные поля
    к строке формата:

    - stamp: префикс с временем (если включен `print_timestamp`) или ""
    - clock: время по часам планировщика
    - runId: идентификатор запуска (уникальный номер)

    Проксирует вызовы записи в лог (debug, info, warning, error, critical,
    log, exception), добавляет новые поля. Время берется из функции
    `time_getter`, обычно это часы планировщика, поэтому в режиме модельного
    времени метки тоже модельные.

    Сообщения лучше передавать через формат-строку, а не готовой строкой:

        `info("content from %s: number = %d", prefix, number)`

    Конфигурирование логгера производится в методе `setup()`, все параметры
    передаются через объект типа `ModelLoggerConfig`.
    """
    def __init__(
        self,
        name: str = '',
        time_getter: Callable[[], float] | None = None,
        run_id: int | None = None
    ):
        """Конструктор.

        Args:
            name: имя логгера (название программы)
            time_getter: функция получения текущего времени
            run_id: идентификатор запуска
        """
        self._logger = logging.getLogger(name)
        self.time_getter = time_getter or (lambda: 0)
        self._run_id: int = run_id or uuid.uuid4().int % 1_000_000
        self._print_timestamp: bool = False
        self._setup_was_called: bool = False

    @property
    def run_id(self) -> int:
        return self._run_id

    def set_time_getter(self, fn: Callable[[], float]) -> None:
        """Настроить функцию получения времени."""
        self.time_getter = fn

    def set_run_id(self, run_id: int) -> None:
        self._run_id = run_id

    def setup(
        self,
        config: ModelLoggerConfig | None = None,
        force_run: bool = False
    ) -> None:
        """
        Настроить логгер.

        По-умолчанию, повторные вызовы метода setup() игнорируются: цикл
        работы вызывает `setup()` с параметрами по-умолчанию, и это не должно
        затирать явно заданную ранее конфигурацию. Можно заставить метод
        выполниться повторно, передав force_run = True.

        Консольный вывод идет в stdout: строки ping-а - это результат работы
        программы, а не диагностика.

        Args:
            config (ModelLoggerConfig): конфигурация логгера
            force_run (bool): выполнить, даже если ранее логгер был настроен
        """
        if self._setup_was_called and not force_run:
            return

        config = config or ModelLoggerConfig()
        for handler in self._logger.handlers:
            handler.close()
        self._logger.handlers = []
        self._print_timestamp = config.print_timestamp

        if config.use_console:
            if config.colored_console:
                c_formatter = ColoredFormatter(
                    config.fmt,
                    style=config.style,
                    colors=config.console_colors
                )
            else:
                c_formatter = logging.Formatter(config.fmt, style=config.style)
            s_handler = logging.StreamHandler(sys.stdout)
            s_handler.setLevel(config.console_level or config.level)
            s_handler.setFormatter(c_formatter)
            self._logger.addHandler(s_handler)

        if config.file_name is not None:
            f_formatter = logging.Formatter(config.file_fmt, style=config.style)

            if config.file_name_no_run_id:
                file_name = config.file_name
            else:
                file_name = ModelLogger.build_file_name(
                    config.file_name,
                    self._run_id,
                    config.file_name_sep,
                )

            f_handler = logging.FileHandler(file_name, mode='a')
            f_handler.setLevel(config.file_level or config.level)
            f_handler.setFormatter(f_formatter)
            self._logger.addHandler(f_handler)

        self._logger.propagate = False
        self._logger.setLevel(
            min([config.level, config.console_level or config.level,
                 config.file_level or config.level])
        )

        self._setup_was_called = True

    def stamp(self) -> str:
        """Префикс строки лога со временем (или пустая строка)."""
        if not self._print_timestamp:
            return ""
        return f"{self.time_getter():.6f}: "

    def _get_extra(self):
        return {
            "stamp": self.stamp(),
            "clock": self.time_getter(),
            "runId": self._run_id,
        }

    def debug(self, msg, *args, **kwargs):
        self._logger.debug(
            msg, *args, **kwargs,
            extra=self._get_extra(),
            stacklevel=2,  # skip this (ModelLogger.xxx()) function
        )

    def info(self, msg, *args, **kwargs):
        self._logger.info(
            msg, *args, **kwargs,
            extra=self._get_extra(),
            stacklevel=2,  # skip this (ModelLogger.xxx()) function
        )

    def warning(self, msg, *args, **kwargs):
        self._logger.warning(
            msg, *args, **kwargs,
            extra=self._get_extra(),
            stacklevel=2,  # skip this (ModelLogger.xxx()) function
        )

    def error(self, msg, *args, **kwargs):
        self._logger.error(
            msg, *args, **kwargs,
            extra=self._get_extra(),
            stacklevel=2,  # skip this (ModelLogger.xxx()) function
        )

    def critical(self, msg, *args, **kwargs):
        self._logger.critical(
            msg, *args, **kwargs,
            extra=self._get_extra(),
            stacklevel=2,  # skip this (ModelLogger.xxx()) function
        )

    def log(self, level: int, msg, *args, **kwargs):
        self._logger.log(
            level, msg, *args, **kwargs,
            extra=self._get_extra(),
            stacklevel=2,  # skip this (ModelLogger.xxx()) function
        )

    def exception(self, msg, *args, **kwargs):
        self._logger.exception(
            msg, *args, **kwargs,
            extra=self._get_extra(),
            stacklevel=2,  # skip this (ModelLogger.xxx()) function
        )

    def close(self) -> None:
        """Закрыть и отключить все обработчики."""
        for handler in self._logger.handlers:
            handler.close()
        self._logger.handlers = []
        self._setup_was_called = False

    @staticmethod
    def build_file_name(file_name: str, run_id: int, sep: str = "_"):
        """Построить имя файла.

        Если file_name имеет вид "something.log", а run_id равен 123,
        то результат будет "something_123.log".

        Если file_name имеет вид "something" (без расширения), то результат
        будет "something_123". Если расширение есть, но не равно "log",
        то оно не считается (то есть будет "something.ext_123").
        """
        file_name = file_name.strip()
        ext_pos = file_name.rfind('.')
        if ext_pos >= 0 and file_name[ext_pos+1:].lower() == "log":
            return file_name[:ext_pos] + sep + str(run_id) + file_name[ext_pos:]
        return file_name + sep + str(run_id)
