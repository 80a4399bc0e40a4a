#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Colored console logging for the tsview client.

Level names are wrapped in ANSI colors when stderr is a terminal:
- DEBUG: Cyan
- INFO: Green
- WARNING: Yellow
- ERROR: Red
- CRITICAL: Bold Red

Setting the NO_COLOR environment variable disables colors entirely.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Optional, TextIO

DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(module)s.%(funcName)s:%(lineno)d] - %(message)s'
DEFAULT_DATEFMT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that flood DEBUG output with connection chatter
_NOISY_LOGGERS = ("urllib3", "matplotlib", "PIL")


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name of each record."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[1;31m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: str = DEFAULT_FORMAT, datefmt: Optional[str] = None, use_colors: bool = True, stream: Optional[TextIO] = None):
        """
        Args:
            fmt: Format string for log messages
            datefmt: Format string for timestamps
            use_colors: Request colors (still off when the stream is not a TTY)
            stream: Stream the handler writes to, used for TTY detection
        """
        super().__init__(fmt, datefmt)
        target = stream if stream is not None else sys.stderr
        is_tty = hasattr(target, 'isatty') and target.isatty()
        self.use_colors = use_colors and is_tty and not os.environ.get('NO_COLOR')

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname) if self.use_colors else None
        if color is None:
            return super().format(record)
        plain = record.levelname
        record.levelname = f"{color}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def setup_colored_logging(level: int = logging.INFO, fmt: str = DEFAULT_FORMAT, datefmt: Optional[str] = DEFAULT_DATEFMT, stream: Optional[TextIO] = None) -> None:
    """
    Install a single colored console handler on the root logger.

    Args:
        level: Root logging level (e.g., logging.INFO, logging.DEBUG)
        fmt: Format string for log messages
        datefmt: Format string for timestamps
        stream: Output stream, stderr by default
    """
    out = stream if stream is not None else sys.stderr
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console_handler = logging.StreamHandler(out)
    console_handler.setFormatter(ColoredFormatter(fmt=fmt, datefmt=datefmt, stream=out))
    root.setLevel(level)
    root.addHandler(console_handler)

    if level <= logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.INFO)
