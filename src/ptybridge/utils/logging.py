"""Logging setup utilities for ptybridge.

Everything the bridge logs lives under the ``ptybridge`` logger,
including the events of the Socket.IO and Engine.IO servers, which are
handed the ``ptybridge.socketio`` and ``ptybridge.engineio`` loggers.
Those two are kept at their own level so that ``-v`` shows session
traffic without every polling request.
"""

from __future__ import annotations

import logging
import sys

from ptybridge.config.settings import LoggingConfig

ROOT_LOGGER = "ptybridge"
SOCKETIO_LOGGER = "ptybridge.socketio"
ENGINEIO_LOGGER = "ptybridge.engineio"


def _parse_level(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the ptybridge application.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output, WARNING for the Socket.IO
                and Engine.IO servers).
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(_parse_level(config.level))

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    library_level = _parse_level(config.library_level)
    for name in (SOCKETIO_LOGGER, ENGINEIO_LOGGER):
        logging.getLogger(name).setLevel(library_level)

    root_logger.info(
        "Logging initialized at %s level (socketio/engineio at %s)",
        config.level, config.library_level,
    )
