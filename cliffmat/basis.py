# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Basis element matrices and their process-wide cache.

The matrix of blade ``e_A`` in a frame is the ordered product of the
generator matrices for the folded indices of ``A``. Folding makes the result
depend only on ``(A.fold(frame), frame.fold())``, which is the cache key.
"""

import threading
from typing import Dict, Optional, Tuple

import torch

from cliffmat.config import get_tuning
from cliffmat.generators import folded_dim, generator_table, offset_level
from cliffmat.index_set import IndexSet
from cliffmat.matrix import mono_prod, unit
from log import get_logger

logger = get_logger(__name__)

BasisKey = Tuple[IndexSet, IndexSet]


class BasisTable:
    """Thread-safe map from folded ``(set, frame)`` to basis element matrix.

    Entries are never mutated after insertion; callers that want to change a
    matrix must copy it first.
    """

    def __init__(self):
        self._entries: Dict[BasisKey, torch.Tensor] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: BasisKey) -> bool:
        return key in self._entries

    def lookup(self, key: BasisKey) -> Optional[torch.Tensor]:
        with self._lock:
            return self._entries.get(key)

    def insert(self, key: BasisKey, matrix: torch.Tensor) -> torch.Tensor:
        """Store *matrix* unless another thread got there first; return the stored one."""
        with self._lock:
            return self._entries.setdefault(key, matrix)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


_BASIS_TABLE: Optional[BasisTable] = None
_BASIS_TABLE_LOCK = threading.Lock()


def basis_table() -> BasisTable:
    """The process-wide basis table, created on first use."""
    global _BASIS_TABLE
    with _BASIS_TABLE_LOCK:
        if _BASIS_TABLE is None:
            _BASIS_TABLE = BasisTable()
        return _BASIS_TABLE


def reset_basis_table() -> None:
    """Drop every cached basis element matrix."""
    global _BASIS_TABLE
    with _BASIS_TABLE_LOCK:
        _BASIS_TABLE = None


def build_basis_element(folded_set: IndexSet, p: int, q: int) -> torch.Tensor:
    """Product of the ``Cl(p, q)`` generator matrices named by *folded_set*."""
    gens = generator_table()(p, q)
    result = unit(1 << offset_level(p, q))
    for index in folded_set:
        result = mono_prod(result, gens[index])
    return result


def basis_element(ist: IndexSet, frame: IndexSet) -> torch.Tensor:
    """Matrix of the blade ``e_ist`` in *frame*.

    Args:
        ist: Blade name, contained in *frame*.
        frame: Frame of the representation.

    Returns:
        torch.Tensor: Monomial matrix of side ``folded_dim(frame)``. Cached
        results are shared, so treat the tensor as read-only.

    Raises:
        AlgebraError: If *ist* is not contained in *frame*.
    """
    folded_set = ist.fold(frame)
    folded_frame = frame.fold()
    p, q = folded_frame.count_pos(), folded_frame.count_neg()
    cacheable = p + q <= get_tuning().basis_max_count
    key = (folded_set, folded_frame)

    if cacheable:
        cached = basis_table().lookup(key)
        if cached is not None:
            return cached

    result = build_basis_element(folded_set, p, q)
    assert result.shape[0] == folded_dim(frame)
    if cacheable:
        result = basis_table().insert(key, result)
        logger.debug("Cached basis element %s in Cl(%d,%d)", folded_set, p, q)
    return result
