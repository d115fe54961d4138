# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Generalized fast Fourier transform between the two representations.

Every matrix of side ``2**L`` splits uniquely as
``kron(I, M_I) + kron(J, M_J) + kron(K, M_K) + kron(JK, M_JK)``, and on the
algebra side every element of ``Cl(L, L)`` splits as
``A + e_{-L} B + C e_L + e_{-L} D e_L`` with ``A..D`` free of ``e_{-L}`` and
``e_L``. The two splittings are related by parity-dependent sign patterns,
so a conversion recurses one level at a time, costing ``O(d^2 log d)`` per
level instead of one inner product per basis element.

Both directions return a :class:`FastResult`; a fallback names why the
transform does not apply, and callers then use the term-by-term path.
"""

from typing import Any, Dict, NamedTuple, Optional

import torch

from cliffmat.config import get_tuning, torch_dtype
from cliffmat.framed_multi import FramedMulti
from cliffmat.generators import (
    INVERSE_STEP, centring_plan, split_blocks, super_signature,
)
from cliffmat.index_set import HI, LO, IndexSet
from cliffmat.matrix import kron, nork
from cliffmat import validation


class FastResult(NamedTuple):
    """Outcome of a fast conversion.

    Attributes:
        value: Converted value, or ``None`` on fallback.
        reason: Why the fast path was not taken, ``None`` on success.
    """

    value: Any = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value) -> "FastResult":
        return cls(value=value)

    @classmethod
    def fallback(cls, reason: str) -> "FastResult":
        return cls(reason=reason)


def _super_in_range(p: int, q: int) -> Optional[str]:
    super_p, super_q = super_signature(p, q)
    if super_p > HI or -super_q < LO:
        return (f"superalgebra Cl({super_p},{super_q}) of Cl({p},{q}) "
                f"needs indices outside of [{LO},{HI}]")
    return None


# ----------------------------------------------------------------------
# Matrix -> multivector
# ----------------------------------------------------------------------

def inverse_transform(matrix: torch.Tensor, level: int) -> FramedMulti:
    """Folded ``Cl(level, level)`` multivector with the given matrix."""
    if level == 0:
        return FramedMulti(matrix[0, 0].item())

    eye, j, k, jk = split_blocks(matrix.dtype, matrix.device)
    mn = FramedMulti.term(IndexSet(-level))
    pn = FramedMulti.term(IndexSet(level))
    if level == 1:
        i_m, j_m, k_m, jk_m = (FramedMulti(nork(block, matrix)[0, 0].item())
                               for block in (eye, j, k, jk))
        return i_m + mn * (jk_m * pn + j_m) + k_m * pn

    i_m, j_m, k_m, jk_m = (inverse_transform(nork(block, matrix), level - 1)
                           for block in (eye, j, k, jk))
    ev_i, od_i = i_m.even(), i_m.odd()
    ev_j, od_j = j_m.even(), j_m.odd()
    ev_k, od_k = k_m.even(), k_m.odd()
    ev_jk, od_jk = jk_m.even(), jk_m.odd()
    return ((ev_i - od_jk)
            + mn * ((ev_jk + od_i) * pn + (ev_j + od_k))
            + (ev_k - od_j) * pn)


def fast_framed_multi(matrix: torch.Tensor, frame: IndexSet) -> FastResult:
    """Sparse multivector of a matrix in *frame* via the inverse transform.

    The matrix is read as an element of ``Cl(L, L)``, carried through the
    centring isomorphisms to the superalgebra, projected onto the folded
    frame and unfolded.
    """
    p, q = frame.count_pos(), frame.count_neg()
    reason = _super_in_range(p, q)
    if reason is not None:
        return FastResult.fallback(reason)
    level, steps = centring_plan(p, q)
    side = 1 << level
    if matrix.ndim != 2 or tuple(matrix.shape) != (side, side):
        return FastResult.fallback(
            f"matrix shape {tuple(matrix.shape)} does not match Cl({p},{q}) side {side}")

    value = inverse_transform(matrix, level)
    cur_p, cur_q = level, level
    for step in steps:
        value, cur_p, cur_q = value.centre(step.kind, cur_p, cur_q)
    # terms outside the frame carry only rounding error for a valid matrix
    value = value.restricted(frame.fold())
    return FastResult.success(value.unfold(frame))


# ----------------------------------------------------------------------
# Multivector -> matrix
# ----------------------------------------------------------------------

def _split_level(value: FramedMulti, level: int) -> Dict[str, FramedMulti]:
    """Coefficient multivectors of ``I, J, K, JK`` at *level*.

    With ``x = A + e_{-L} B + C e_L + e_{-L} D e_L`` the blocks are
    ``M_I = ev(A) + od(D)``, ``M_J = ev(B) - od(C)``,
    ``M_K = od(B) + ev(C)`` and ``M_JK = ev(D) - od(A)``.
    """
    mn, pn = -level, level
    strip = IndexSet([mn, pn])
    parts: Dict[str, Dict[IndexSet, float]] = {"i": {}, "j": {}, "k": {}, "jk": {}}
    for ist, crd in value:
        rest = ist - strip
        odd = rest.count() % 2 == 1
        has_mn, has_pn = mn in ist, pn in ist
        # e_{-L} is the lowest index and e_L the highest, so no reordering signs
        if not has_mn and not has_pn:
            block, sign = ("jk", -1) if odd else ("i", 1)
        elif has_mn and not has_pn:
            block, sign = ("k", 1) if odd else ("j", 1)
        elif has_pn and not has_mn:
            block, sign = ("j", -1) if odd else ("k", 1)
        else:
            block, sign = ("i", 1) if odd else ("jk", 1)
        target = parts[block]
        target[rest] = target.get(rest, 0.0) + sign * crd
    return {name: FramedMulti(terms) for name, terms in parts.items()}


def forward_transform(value: FramedMulti, level: int,
                      dtype: torch.dtype, device=None) -> torch.Tensor:
    """Matrix of a folded ``Cl(level, level)`` multivector."""
    if level == 0:
        return torch.full((1, 1), value.scalar(), dtype=dtype, device=device)
    if not len(value):
        side = 1 << level
        return torch.zeros(side, side, dtype=dtype, device=device)

    eye, j, k, jk = split_blocks(dtype, device)
    parts = _split_level(value, level)
    blocks = {"i": eye, "j": j, "k": k, "jk": jk}
    result = None
    for name, part in parts.items():
        term = kron(blocks[name], forward_transform(part, level - 1, dtype, device))
        result = term if result is None else result + term
    return result


def fast_matrix_multi(value: FramedMulti, frame: IndexSet) -> FastResult:
    """Matrix of *value* in *frame* via the forward transform."""
    p, q = frame.count_pos(), frame.count_neg()
    reason = _super_in_range(p, q)
    if reason is not None:
        return FastResult.fallback(reason)
    if not value.frame.is_subset(frame):
        return FastResult.fallback(f"value frame {value.frame} is not contained in {frame}")

    level, steps = centring_plan(p, q)
    folded = value.fold(frame)
    cur_p, cur_q = super_signature(p, q)
    for step in reversed(steps):
        folded, cur_p, cur_q = folded.centre(INVERSE_STEP[step.kind], cur_p, cur_q)
    if (cur_p, cur_q) != (level, level):
        return FastResult.fallback(
            f"centring Cl({p},{q}) ended at Cl({cur_p},{cur_q}) instead of Cl({level},{level})")

    matrix = forward_transform(folded, level, torch_dtype(), get_tuning().device)
    validation.check_matrix_shape(matrix, 1 << level, "fast_matrix_multi")
    return FastResult.success(matrix)
