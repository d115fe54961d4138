# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Debug checks for callers that promise their inputs are valid.

Constructors accept ``prechecked=True`` to skip the frame checks that raise
:class:`~cliffmat.errors.AlgebraError`. The promise is still verified here
with ``assert``, so the checks are free under ``python -O``.
Set ``VALIDATE = False`` to disable even without the -O flag.
"""

import torch

VALIDATE = True


def check_in_frame(inner, frame, name: str = "value") -> None:
    """Assert the index set *inner* is contained in *frame*."""
    if not VALIDATE:
        return
    assert inner.is_subset(frame), (
        f"{name}: prechecked frame {inner} is not contained in {frame}"
    )


def check_vector_length(length: int, frame, name: str = "vector") -> None:
    """Assert a coordinate vector has one entry per index of *frame*."""
    if not VALIDATE:
        return
    assert length == frame.count(), (
        f"{name}: expected {frame.count()} coordinates for frame {frame}, got {length}"
    )


def check_matrix_shape(matrix: torch.Tensor, dim: int, name: str = "matrix") -> None:
    """Assert *matrix* is square with side *dim*."""
    if not VALIDATE:
        return
    assert matrix.ndim == 2 and matrix.shape[0] == matrix.shape[1] == dim, (
        f"{name}: expected shape ({dim}, {dim}), got {tuple(matrix.shape)}"
    )
