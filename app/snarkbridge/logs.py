# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

import logging

LOGGER_NAME = "snarkbridge"
FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """
    Install one stream handler on the package logger and set its level.

    Calling it again only changes the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not any(getattr(h, "_snarkbridge", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(FORMAT))
        handler._snarkbridge = True
        logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    return logger
