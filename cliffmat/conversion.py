# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Conversions between sparse multivectors and matrices.

Large inputs try the fast transform first; small inputs, and anything the
fast transform declines, go through basis element matrices one blade at a
time. Both paths give the same result up to rounding.
"""

import torch

from cliffmat.basis import basis_element
from cliffmat.config import get_tuning, torch_dtype
from cliffmat.fast import fast_framed_multi, fast_matrix_multi
from cliffmat.framed_multi import FramedMulti
from cliffmat.generators import folded_dim
from cliffmat.index_set import IndexSet
from cliffmat.matrix import inner
from log import get_logger

logger = get_logger(__name__)


def zero_matrix(frame: IndexSet) -> torch.Tensor:
    dim = folded_dim(frame)
    return torch.zeros(dim, dim, dtype=torch_dtype(), device=get_tuning().device)


def framed_to_matrix(value: FramedMulti, frame: IndexSet) -> torch.Tensor:
    """Matrix of *value* in *frame*.

    Args:
        value: Sparse multivector whose frame is contained in *frame*.
        frame: Frame of the representation.

    Returns:
        torch.Tensor: Fresh matrix of side ``folded_dim(frame)``.
    """
    if len(value) >= get_tuning().fast_size_threshold:
        result = fast_matrix_multi(value, frame)
        if result.ok:
            return result.value
        logger.debug("Fast transform declined (%s); building term by term", result.reason)

    matrix = zero_matrix(frame)
    for ist, crd in value:
        matrix.add_(basis_element(ist, frame), alpha=crd)
    return matrix


def matrix_to_framed(matrix: torch.Tensor, frame: IndexSet) -> FramedMulti:
    """Sparse multivector of *matrix* in *frame*.

    The slow path takes the coordinate of every blade of *frame* as an inner
    product with its basis matrix and keeps the non-zero ones.
    """
    if matrix.shape[0] >= get_tuning().inv_fast_dim_threshold:
        result = fast_framed_multi(matrix, frame)
        if result.ok:
            return result.value
        logger.debug("Inverse fast transform declined (%s); using inner products", result.reason)

    terms = {}
    for stv in range(1 << frame.count()):
        ist = IndexSet.from_subset_value(stv, frame)
        crd = inner(basis_element(ist, frame), matrix)
        if crd != 0:
            terms[ist] = crd
    return FramedMulti(terms)
