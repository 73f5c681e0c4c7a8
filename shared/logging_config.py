from dataclasses import dataclass
import logging
import sys


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGERS = ("shared", "offline", "client")


@dataclass(frozen=True)
class LoggerConfig:
    min_level: int | str = logging.INFO
    enable_console: bool = True
    log_file: str | None = None


def configure_logging(config: LoggerConfig) -> list[logging.Handler]:
    """
    Attach handlers to the package loggers.

    Handlers installed by a previous call are replaced, so calling this twice
    does not duplicate output.
    """
    handlers: list[logging.Handler] = []
    if config.enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler._installed_by_configure_logging = True

    previous: set[logging.Handler] = set()
    for name in PACKAGE_LOGGERS:
        package_logger = logging.getLogger(name)
        package_logger.setLevel(config.min_level)
        for handler in list(package_logger.handlers):
            if getattr(handler, "_installed_by_configure_logging", False):
                package_logger.removeHandler(handler)
                previous.add(handler)
        for handler in handlers:
            package_logger.addHandler(handler)

    for handler in previous:
        handler.close()

    return handlers
