import json
import logging
import os
import sys

TEXT_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NOISY_LOGGERS = ("urllib3", "requests")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers.

    Keys: ``time``, ``level``, ``logger``, ``message``; ``thread`` is added
    for records emitted off the main thread (the change stream consumer),
    ``exception`` when the record carries exc_info.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, str] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.threadName and record.threadName != "MainThread":
            payload["thread"] = record.threadName
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _resolve_level(debug: bool, level: str | None) -> int:
    if debug:
        return logging.DEBUG
    name = (os.getenv("LOG_LEVEL") or level or "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def _make_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(datefmt=DATE_FORMAT)
    return logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    log_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure process-wide logging for the sync service.

    Args:
        debug: If True, forces DEBUG level.
        log_file: Also append log records to this file.
        log_format: "text" (default) or "json" for structured output.
        level: Level name from the config file; LOG_LEVEL env wins over it.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO.
    """
    log_level = _resolve_level(debug, level)

    formatter = _make_formatter(log_format)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)

    # force: called again once the config file has been read
    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # HTTP libraries only speak up at DEBUG
    chatty_level = logging.NOTSET if log_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)
