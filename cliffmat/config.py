# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Tuning parameters for cliffmat.

Centralises the scalar type, device, generator index range and the
thresholds that gate the optional optimisations (fast transform, basis
cache, iterative refinement) into a single :class:`Tuning` dataclass,
loaded through OmegaConf so that YAML files and dotted overrides merge
onto the typed defaults.

Environment variables:
    CLIFFMAT_CONFIG: optional YAML file merged over the defaults on first use
"""

from __future__ import annotations

import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Tuple

import torch
from omegaconf import OmegaConf

from log import get_logger

logger = get_logger(__name__)

_DTYPES = ("float32", "float64")


def resolve_device(device: str = "auto") -> str:
    """Resolve ``'auto'`` to the best available accelerator.

    Priority: cuda > mps > cpu.
    """
    if device != "auto":
        return device
    if torch.cuda.is_available():
        return "cuda"
    if hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
        return "mps"
    return "cpu"


@dataclass
class Tuning:
    """Bag of numeric and performance settings.

    Attributes:
        dtype: Scalar type of matrix entries (``float32`` or ``float64``).
        device: Torch device for matrices. ``auto`` picks an accelerator.
        index_lo: Lowest generator index (negative).
        index_hi: Highest generator index (positive).
        fast_size_threshold: Term count at or above which sparse to matrix
            conversion tries the generalized fast transform.
        inv_fast_dim_threshold: Matrix dimension at or above which matrix to
            sparse conversion tries the inverse fast transform.
        products_size_threshold: ``len(lhs) * len(rhs)`` above which a sparse
            geometric product is computed through matrices.
        basis_max_count: Folded generator count up to which basis matrices are
            cached.
        div_max_steps: Maximum iterative refinement steps in division.
        truncation: Default relative limit used by ``truncated()``.
        sparse_density_threshold: Density below which ``sparse_prod`` switches
            to a sparse left factor.
    """

    dtype: str = "float64"
    device: str = "cpu"
    index_lo: int = -32
    index_hi: int = 32
    fast_size_threshold: int = 1 << 6
    inv_fast_dim_threshold: int = 1 << 3
    products_size_threshold: int = 1 << 12
    basis_max_count: int = 8
    div_max_steps: int = 4
    truncation: float = sys.float_info.epsilon
    sparse_density_threshold: float = 0.25

    def __post_init__(self) -> None:
        if self.dtype not in _DTYPES:
            raise ValueError(f"dtype must be one of {_DTYPES}, got {self.dtype!r}")
        if not self.index_lo < 0 < self.index_hi:
            raise ValueError(
                f"index range must straddle 0, got [{self.index_lo}, {self.index_hi}]"
            )
        for name in ("fast_size_threshold", "inv_fast_dim_threshold",
                     "products_size_threshold", "basis_max_count", "div_max_steps"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        self.device = resolve_device(self.device)


def load_tuning(path: Optional[str] = None, **overrides) -> Tuning:
    """Build a :class:`Tuning` from defaults, an optional YAML file and overrides.

    Args:
        path: YAML file to merge over the defaults. When ``None`` the file named
            by ``CLIFFMAT_CONFIG`` is used, if set.
        **overrides: Field values applied last.

    Returns:
        Tuning: Validated settings.
    """
    cfg = OmegaConf.structured(Tuning)
    path = path or os.environ.get("CLIFFMAT_CONFIG")
    if path:
        cfg = OmegaConf.merge(cfg, OmegaConf.load(path))
    if overrides:
        cfg = OmegaConf.merge(cfg, OmegaConf.create(overrides))
    return OmegaConf.to_object(cfg)


_TUNING: Optional[Tuning] = None
_INDEX_RANGE: Optional[Tuple[int, int]] = None


def get_tuning() -> Tuning:
    """Return the active settings, loading them on first use."""
    global _TUNING
    if _TUNING is None:
        _TUNING = load_tuning()
    return _TUNING


def freeze_index_range() -> Tuple[int, int]:
    """Fix ``(index_lo, index_hi)`` for the rest of the process and return it.

    Called once by :mod:`cliffmat.index_set` at import; index sets are laid
    out in bits relative to this range.
    """
    global _INDEX_RANGE
    if _INDEX_RANGE is None:
        tuning = get_tuning()
        _INDEX_RANGE = (tuning.index_lo, tuning.index_hi)
    return _INDEX_RANGE


def set_tuning(tuning: Tuning) -> Tuning:
    """Install *tuning* as the active settings and return the previous ones.

    Cached generator and basis matrices are dropped when the scalar type or
    device changes, since they were built for the old ones.

    Raises:
        ValueError: If *tuning* changes the index range after it was frozen.
    """
    global _TUNING
    if _INDEX_RANGE is not None and (tuning.index_lo, tuning.index_hi) != _INDEX_RANGE:
        raise ValueError(
            f"index range is fixed at [{_INDEX_RANGE[0]}, {_INDEX_RANGE[1]}] for this "
            f"process, got [{tuning.index_lo}, {tuning.index_hi}]"
        )
    previous = get_tuning()
    _TUNING = tuning
    if (previous.dtype, previous.device) != (tuning.dtype, tuning.device):
        from cliffmat.basis import reset_basis_table
        from cliffmat.generators import reset_generator_table
        reset_basis_table()
        reset_generator_table()
        logger.debug("Scalar type changed to %s on %s, caches cleared",
                     tuning.dtype, tuning.device)
    return previous


@contextmanager
def tuning_override(**overrides) -> Iterator[Tuning]:
    """Temporarily replace fields of the active settings.

    Example::

        with tuning_override(fast_size_threshold=0):
            m = MatrixMulti(value)   # always tries the fast transform
    """
    previous = get_tuning()
    updated = replace(previous, **overrides)
    set_tuning(updated)
    try:
        yield updated
    finally:
        set_tuning(previous)


def torch_dtype(tuning: Optional[Tuning] = None) -> torch.dtype:
    """Torch scalar type for the active (or given) settings."""
    tuning = tuning or get_tuning()
    return getattr(torch, tuning.dtype)
