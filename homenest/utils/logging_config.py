"""Logging setup for the serverless entry points, driven by environment variables."""

import os
import logging
import sys
from pythonjsonlogger import jsonlogger

QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest", "supabase")


class LoggingConfig:
    """Process-wide logging options, read once at import."""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    LOG_MASK_SENSITIVE = os.environ.get("LOG_MASK_SENSITIVE", "true").lower() == "true"
    LOG_SLOW_OPERATION_THRESHOLD_MS = int(os.environ.get("LOG_SLOW_OPERATION_THRESHOLD_MS", "1000"))

    _configured = False

    @classmethod
    def level(cls) -> int:
        return getattr(logging, cls.LOG_LEVEL, logging.INFO)

    @classmethod
    def build_formatter(cls) -> logging.Formatter:
        """JSON lines by default; LOG_FORMAT=text for local runs."""
        if cls.LOG_FORMAT == "json":
            return jsonlogger.JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s",
                rename_fields={"levelname": "level", "asctime": "logged_at"},
            )
        return logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    @classmethod
    def setup_logging(cls) -> None:
        """Install a single stdout handler on the root logger.

        Every entry point calls this at import; only the first call has an effect.
        """
        if cls._configured:
            return

        root_logger = logging.getLogger()
        root_logger.setLevel(cls.level())
        root_logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(cls.level())
        handler.setFormatter(cls.build_formatter())
        root_logger.addHandler(handler)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        cls._configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
