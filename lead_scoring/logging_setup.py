import json
import logging
import sys
import time

from .config.settings import LOGGING_CONFIG

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    def format(self, record):
        base = {
            "ts": int(time.time() * 1000),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "lead_id"):
            base["lead_id"] = record.lead_id
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def configure_logging(level: str = None, fmt: str = None) -> logging.Logger:
    """Attach a single stdout handler to the package logger"""
    logger = logging.getLogger("lead_scoring")
    level = (level or LOGGING_CONFIG["level"]).upper()
    fmt = (fmt or LOGGING_CONFIG["format"]).lower()

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level, logging.INFO))
    return logger
