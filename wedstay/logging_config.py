"""
logging_config.py — Loguru setup for the WedStay service

Services never import Loguru. They log through
logging.getLogger("wedstay.<area>") (vendors, products, inquiries, orders,
metrics, guard, lifecycle, scheduler), and this module bridges those
records into Loguru. The stdlib logger name is carried as the "area"
extra, so a transition logged by wedstay.lifecycle and a denial logged by
wedstay.guard can be told apart in both output modes.

Output:
- Production (https APP_URL, not localhost): JSON lines on stdout; area and
  request_id travel in record.extra
- Development: one coloured line per record with time, level, area and the
  request id bound by main.request_id_middleware ("-" outside a request)
- LOG_LEVEL sets the floor; uvicorn access, SQL echo and APScheduler
  chatter are held at WARNING

Called by: wedstay/main.py (lifespan startup)
Depends on: APP_URL, LOG_LEVEL environment variables
"""

import logging
import os
import sys

from loguru import logger

_QUIET = ("uvicorn.access", "sqlalchemy.engine", "apscheduler")

_DEV_LINE = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[_area]}</cyan> "
    "<magenta>[{extra[_rid]}]</magenta> | "
    "{message}\n{exception}"
)


def _is_production() -> bool:
    app_url = os.getenv("APP_URL", "")
    return app_url.startswith("https://") and "localhost" not in app_url


def _dev_format(record) -> str:
    # Records from Loguru directly have no area; fall back to the module
    record["extra"]["_area"] = record["extra"].get("area", record["name"])
    record["extra"]["_rid"] = record["extra"].get("request_id", "-")
    return _DEV_LINE


def setup_logging() -> None:
    """Install the WedStay sinks and route stdlib logging into Loguru."""
    logger.remove()

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    is_production = _is_production()

    if is_production:
        logger.add(sys.stdout, level=log_level, format="{message}", serialize=True)
    else:
        logger.add(sys.stdout, level=log_level, format=_dev_format, colorize=True)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.bind(area="wedstay").info(
        "Logging configured", level=log_level, production=is_production
    )


class _InterceptHandler(logging.Handler):
    """Forward a stdlib record to Loguru, tagged with its logger name as area."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.bind(area=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )
