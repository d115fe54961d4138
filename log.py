# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Loggers for the ``cliffmat`` package.

The library only logs at DEBUG (fast-path fallbacks, cache inserts,
generator builds, singular divisions), so by default nothing is shown.

Environment variables:
    CLIFFMAT_LOG_LEVEL: level of the ``cliffmat`` logger (default WARNING)
    CLIFFMAT_LOG_FILE: optional path; DEBUG records are appended there
"""

import logging
import os

ROOT = "cliffmat"

_configured = False


def _configure() -> None:
    global _configured
    if _configured:
        return
    _configured = True

    root = logging.getLogger(ROOT)
    level = os.environ.get("CLIFFMAT_LOG_LEVEL")
    if level:
        root.setLevel(level.upper())

    path = os.environ.get("CLIFFMAT_LOG_FILE")
    if path:
        handler = logging.FileHandler(path, mode="a")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
        if not level:
            root.setLevel(logging.DEBUG)
    # records still propagate to the application's handlers
    root.addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Logger for *name* under the ``cliffmat`` tree.

    Args:
        name: Usually the calling module's ``__name__``.
    """
    _configure()
    if name != ROOT and not name.startswith(ROOT + "."):
        name = f"{ROOT}.{name}"
    return logging.getLogger(name)
