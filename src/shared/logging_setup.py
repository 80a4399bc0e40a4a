#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
from .colored_logging import setup_colored_logging, DEFAULT_FORMAT, DEFAULT_DATEFMT


def get_logger(name: str) -> logging.Logger:
    """Module logger; installs the colored console handler on first use if nothing else has."""
    logger = logging.getLogger(name)
    if not logging.getLogger().handlers:
        setup_colored_logging(level=logging.INFO, fmt=DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)
    return logger
