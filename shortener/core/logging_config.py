"""
Process-wide logging initialization.

Called once in the coordinator and once at the start of every worker
process. Each line carries the process id so output from several
workers sharing a terminal or log collector can be told apart.

Format:
    2026-01-01 12:00:00,000 INFO [pid 4242] shortener.core.supervisor: Worker 4243 started
"""

import logging
import logging.config

LOG_FORMAT = "%(asctime)s %(levelname)s [pid %(process)d] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": LOG_FORMAT,
                }
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {
                "level": level.upper(),
                "handlers": ["stdout"],
            },
        }
    )
