"""
Stderr logger — NEVER writes to stdout (would corrupt the stdio MCP protocol)

Local sink: stderr, plus POSTMAN_MCP_LOG_FILE when configured.
Session sink: MCP notifications/message sent to the calling session (best-effort).
"""

import logging
import sys

from postman_mcp.config import Config

_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# MCP log level name -> stdlib level
_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_logger(name: str) -> logging.Logger:
    """Get a logger that writes to stderr (and optionally a file) only."""
    logger = logging.getLogger(f"postman_mcp.{name}")
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, Config.LOG_LEVEL, logging.INFO))

    sh = logging.StreamHandler(sys.stderr)
    sh.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
    logger.addHandler(sh)

    if Config.LOG_FILE:
        fh = logging.FileHandler(Config.LOG_FILE, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
        logger.addHandler(fh)

    logger.propagate = False
    return logger


async def log_both(logger: logging.Logger, session, level: str, message: str):
    """Log locally, then forward to the calling session if there is one.

    The session sink is best-effort: a failed send is logged at debug level
    and never raised.
    """
    logger.log(_LEVELS.get(level, logging.INFO), message)
    if session is None:
        return
    try:
        await session.send_log_message(level, message, logger_name=logger.name)
    except Exception as exc:
        logger.debug(f"Could not forward log to session: {exc}")
