from __future__ import annotations

import json
import logging
import threading

ROOT_LOGGER_NAME = "stockroom"

_lock = threading.Lock()
_configured = False


class JsonFormatter(logging.Formatter):
    """
    Formatter that emits one JSON object per record.

    fmt_dict maps output keys to LogRecord attribute names.
    """

    def __init__(self, fmt_dict: dict | None = None, time_format: str = "%Y-%m-%dT%H:%M:%S"):
        super().__init__(datefmt=time_format)
        self.fmt_dict = fmt_dict if fmt_dict is not None else {"message": "message"}

    def usesTime(self) -> bool:
        return "asctime" in self.fmt_dict.values()

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        if self.usesTime():
            record.asctime = self.formatTime(record, self.datefmt)

        payload = {key: record.__dict__.get(attr) for key, attr in self.fmt_dict.items()}
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", *, json_format: bool = False) -> logging.Logger:
    """Attach a console handler to the ``stockroom`` logger (once per process)."""
    global _configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    with _lock:
        logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
        if _configured:
            return logger

        handler = logging.StreamHandler()
        if json_format:
            handler.setFormatter(
                JsonFormatter(
                    {
                        "time": "asctime",
                        "level": "levelname",
                        "logger": "name",
                        "function": "funcName",
                        "message": "message",
                    }
                )
            )
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
        logger.propagate = False
        _configured = True
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
