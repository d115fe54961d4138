# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Dense matrix primitives used by the matrix representation.

Basis element matrices are monomial (one non-zero entry per row, equal to
+1 or -1), and products of a few of them stay block sparse. The helpers here
exploit that structure where it pays and fall back to plain torch otherwise.
"""

from typing import Optional, Tuple

import torch

from cliffmat.config import get_tuning, torch_dtype


def unit(dim: int, dtype: Optional[torch.dtype] = None, device=None) -> torch.Tensor:
    """Identity matrix of side *dim* in the active scalar type."""
    return torch.eye(dim, dtype=dtype or torch_dtype(), device=device or get_tuning().device)


def kron(lhs: torch.Tensor, rhs: torch.Tensor) -> torch.Tensor:
    """Kronecker product; block ``(i, j)`` of the result is ``lhs[i, j] * rhs``."""
    return torch.kron(lhs, rhs)


def nork(lhs: torch.Tensor, rhs: torch.Tensor, mono: bool = True) -> torch.Tensor:
    """Left inverse of the Kronecker product.

    Returns the least squares solution ``B`` of ``kron(lhs, B) == rhs``, so
    ``nork(A, kron(A, B))`` is ``B``.

    Args:
        lhs: Small factor [s, s].
        rhs: Large matrix [s * n, s * n].
        mono: ``lhs`` is monomial with entries of modulus 1, so its squared
            Frobenius norm is its side length.

    Returns:
        torch.Tensor: ``B`` [n, n].
    """
    s1, s2 = lhs.shape
    r1, r2 = rhs.shape[0] // s1, rhs.shape[1] // s2
    # blocks[i, j] is block (i, j) of rhs
    blocks = rhs.reshape(s1, r1, s2, r2).permute(0, 2, 1, 3)
    result = torch.einsum("ij,ijkl->kl", lhs.to(rhs.dtype), blocks)
    norm_sq = s1 if mono else (lhs * lhs).sum()
    return result / norm_sq


def mono_prod(lhs: torch.Tensor, rhs: torch.Tensor) -> torch.Tensor:
    """Product of a monomial *lhs* with any *rhs* in O(n^2).

    Row ``i`` of the product is ``lhs[i, c] * rhs[c]`` where ``c`` is the
    column of the single non-zero entry in row ``i``.
    """
    cols = lhs.abs().argmax(dim=1)
    vals = lhs.gather(1, cols.unsqueeze(1))
    return vals * rhs[cols]


def sparse_prod(lhs: torch.Tensor, rhs: torch.Tensor) -> torch.Tensor:
    """Matrix product that uses a sparse left factor when it is sparse enough."""
    numel = lhs.numel()
    if numel > 16:
        density = torch.count_nonzero(lhs).item() / numel
        if density < get_tuning().sparse_density_threshold:
            return torch.sparse.mm(lhs.to_sparse(), rhs)
    return lhs @ rhs


def inner(lhs: torch.Tensor, rhs: torch.Tensor) -> float:
    """Frobenius inner product divided by the matrix side.

    Basis element matrices are orthonormal under this product, so
    ``inner(basis, m)`` is the coordinate of that basis element in ``m``.
    """
    return (lhs * rhs).sum().item() / lhs.shape[0]


def norm_inf(mat: torch.Tensor) -> float:
    """Infinity norm: largest absolute row sum."""
    return torch.linalg.matrix_norm(mat, ord=float("inf")).item()


def lu_factorize(mat: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor, bool]:
    """LU factorisation with partial pivoting.

    Returns:
        (lu, pivots, singular) where ``singular`` is True when a pivot is
        exactly zero.
    """
    lu, pivots, info = torch.linalg.lu_factor_ex(mat)
    return lu, pivots, bool(info.item() != 0)


def lu_substitute(lu: torch.Tensor, pivots: torch.Tensor, rhs: torch.Tensor) -> torch.Tensor:
    """Solve ``A X = rhs`` given the factorisation of ``A``."""
    return torch.linalg.lu_solve(lu, pivots, rhs)


def isnan(mat: torch.Tensor) -> bool:
    """True if any entry differs from itself, i.e. is an IEEE NaN."""
    return bool((mat != mat).any().item())
