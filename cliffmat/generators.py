# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Signature bookkeeping and generator matrices.

Every real Clifford algebra ``Cl(p,q)`` embeds in a real matrix algebra whose
size depends only on ``(p - q) mod 8`` and ``p + q`` (Bott periodicity).
Generators are built for the split algebra ``Cl(L,L)`` as Kronecker
products of four 2x2 matrices and then carried to ``Cl(p,q)`` through the
isomorphisms

    Cl(p,q) ~ Cl(q+1, p-1)
    Cl(p,q) ~ Cl(p+4, q-4)
    Cl(p,q) ~ Cl(p-4, q+4)

Each isomorphism is written as a map from generator index to a *word*: the
ordered product of target generators representing that source generator.
The same words drive the multivector centring corrections in
:mod:`cliffmat.framed_multi`, which keeps the two directions consistent.

Reference:
    Porteous, I. R. (1995). "Clifford Algebras and the Classical Groups."
    Cambridge University Press, Table 15.27.
"""

import threading
from typing import Dict, List, NamedTuple, Optional, Tuple

import torch

from cliffmat.config import get_tuning, torch_dtype
from cliffmat.matrix import kron, mono_prod, unit
from log import get_logger

logger = get_logger(__name__)

# log2 of the matrix side, relative to (p+q)/2, indexed by (p-q) mod 8
OFFSET_LOG2_DIM = (0, 1, 0, 1, 1, 2, 1, 1)
# Generators to add to reach the real superalgebra, indexed by (p-q) mod 8.
# Positive entries add positive generators, negative entries negative ones.
OFFSET_TO_SUPER = (0, -1, 0, -1, -2, 3, 2, 1)

QP1_PM1 = "qp1_pm1"
PP4_QM4 = "pp4_qm4"
PM4_QP4 = "pm4_qp4"

INVERSE_STEP = {QP1_PM1: QP1_PM1, PP4_QM4: PM4_QP4, PM4_QP4: PP4_QM4}

Words = Dict[int, Tuple[int, ...]]


def offset_level(p: int, q: int) -> int:
    """log2 of the matrix side for signature ``(p, q)``."""
    return (p + q) // 2 + OFFSET_LOG2_DIM[(p - q) % 8]


def folded_dim(frame) -> int:
    """Matrix side for a frame: ``2 ** offset_level(count_pos, count_neg)``."""
    return 1 << offset_level(frame.count_pos(), frame.count_neg())


def super_signature(p: int, q: int) -> Tuple[int, int]:
    """Signature of the real superalgebra containing ``Cl(p, q)``."""
    offset = OFFSET_TO_SUPER[(p - q) % 8]
    return p + max(offset, 0), q - min(offset, 0)


class CentringStep(NamedTuple):
    """One isomorphism applied to a signature ``(p, q)``."""

    kind: str
    p: int
    q: int

    @property
    def target(self) -> Tuple[int, int]:
        return step_target(self.kind, self.p, self.q)


def step_target(kind: str, p: int, q: int) -> Tuple[int, int]:
    if kind == QP1_PM1:
        return q + 1, p - 1
    if kind == PP4_QM4:
        return p + 4, q - 4
    if kind == PM4_QP4:
        return p - 4, q + 4
    raise ValueError(f"Unknown centring step: {kind}")


def centring_plan(p: int, q: int) -> Tuple[int, List[CentringStep]]:
    """Level of the split algebra and the steps leading back to ``Cl(p, q)``.

    The superalgebra signature is shifted by ``(-4, +4)`` or ``(+4, -4)``
    until ``p - q`` lies in ``[-3, 4]`` and swapped to ``(q+1, p-1)`` if it
    is still above 1, which always lands on ``Cl(L, L)``. The returned steps
    undo those moves in order: the ``(q+1, p-1)`` correction for
    ``(p-q) mod 8`` in 2, 3, 4, then the 4-shifts.

    Returns:
        (level, steps) where ``level`` is L and each step maps the signature
        it holds to its ``target``; the last target is the superalgebra.
    """
    orig_p, orig_q = super_signature(p, q)
    p, q = orig_p, orig_q
    while p - q > 4:
        p, q = p - 4, q + 4
    while p - q < -3:
        p, q = p + 4, q - 4
    if p - q > 1:
        p, q = q + 1, p - 1
    level = (p + q) // 2

    steps = []
    if (orig_p - orig_q) % 8 in (2, 3, 4):
        steps.append(CentringStep(QP1_PM1, p, q))
        p, q = q + 1, p - 1
    if orig_p - orig_q > 4:
        while p != orig_p:
            steps.append(CentringStep(PP4_QM4, p, q))
            p, q = p + 4, q - 4
    if orig_p - orig_q < -3:
        while p != orig_p:
            steps.append(CentringStep(PM4_QP4, p, q))
            p, q = p - 4, q + 4
    return level, steps


def generator_words(kind: str, p: int, q: int) -> Words:
    """Words in the target algebra for each generator of ``Cl(p, q)``.

    Args:
        kind: One of ``QP1_PM1``, ``PP4_QM4``, ``PM4_QP4``.
        p (int): Positive generators of the source algebra.
        q (int): Negative generators of the source algebra.

    Returns:
        Dict mapping each folded source index to a tuple of target indices
        whose ordered product is its image.
    """
    words: Words = {}
    if kind == QP1_PM1:
        # e_p stays; every other generator is multiplied by it, which flips its square
        top = q + 1
        words[p] = (top,)
        for j in range(1, p):
            words[j] = (-j, top)
        for i in range(1, q + 1):
            words[-i] = (i, top)
    elif kind == PP4_QM4:
        # the four outermost negatives a_i become a_i * (a_1 a_2 a_3 a_4)
        for k in range(1, p + 1):
            words[k] = (k,)
        for k in range(1, q - 3):
            words[-k] = (-k,)
        quad = tuple(range(p + 1, p + 5))
        for i in range(1, 5):
            words[-(q - 4 + i)] = (p + i,) + quad
    elif kind == PM4_QP4:
        for k in range(1, p - 3):
            words[k] = (k,)
        for k in range(1, q + 1):
            words[-k] = (-k,)
        quad = tuple(-(q + i) for i in range(1, 5))
        for i in range(1, 5):
            words[p - 4 + i] = (-(q + i),) + quad
    else:
        raise ValueError(f"Unknown centring step: {kind}")
    return words


def split_blocks(dtype: torch.dtype, device=None) -> Tuple[torch.Tensor, ...]:
    """The 2x2 matrices I, J, K and JK.

    ``J`` squares to -1, ``K`` and ``JK`` square to +1, and the three
    anticommute pairwise. Together they span all 2x2 real matrices.
    """
    def mat(rows):
        return torch.tensor(rows, dtype=dtype, device=device)

    eye = mat([[1, 0], [0, 1]])
    j = mat([[0, -1], [1, 0]])
    k = mat([[0, 1], [1, 0]])
    jk = mat([[-1, 0], [0, 1]])
    return eye, j, k, jk


def split_generators(level: int, dtype: torch.dtype, device=None) -> Dict[int, torch.Tensor]:
    """Generators of ``Cl(level, level)`` as ``2**level`` square matrices.

    Built one level at a time: ``e_{-L} = J (x) I``, ``e_L = K (x) I`` and
    each older generator ``e_k`` becomes ``(-JK) (x) e_k``.
    """
    _, j, k, jk = split_blocks(dtype, device)
    gens: Dict[int, torch.Tensor] = {}
    for lvl in range(1, level + 1):
        eye = unit(1 << (lvl - 1), dtype, device)
        gens = {idx: kron(-jk, g) for idx, g in gens.items()}
        gens[-lvl] = kron(j, eye)
        gens[lvl] = kron(k, eye)
    return gens


def _apply_words(gens: Dict[int, torch.Tensor], words: Words, dim: int,
                 dtype: torch.dtype, device) -> Dict[int, torch.Tensor]:
    result = {}
    for idx, word in words.items():
        mat = unit(dim, dtype, device)
        for letter in word:
            mat = mono_prod(mat, gens[letter])
        result[idx] = mat
    return result


class GeneratorTable:
    """Cache of generator matrices, keyed by signature ``(p, q)``.

    Calling the table returns ``{index: matrix}`` for the folded indices
    ``-q..-1`` and ``1..p``, all of side ``2 ** offset_level(p, q)``.
    """

    def __init__(self):
        self._table: Dict[Tuple[int, int], Dict[int, torch.Tensor]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._table)

    def __call__(self, p: int, q: int) -> Dict[int, torch.Tensor]:
        key = (p, q)
        with self._lock:
            gens = self._table.get(key)
            if gens is None:
                gens = self._build(p, q)
                self._table[key] = gens
        return gens

    @staticmethod
    def _build(p: int, q: int) -> Dict[int, torch.Tensor]:
        dtype = torch_dtype()
        device = get_tuning().device
        level, steps = centring_plan(p, q)
        dim = 1 << level
        gens = split_generators(level, dtype, device)
        for step in steps:
            tp, tq = step.target
            # words of the reverse step express the new generators in the old ones
            words = generator_words(INVERSE_STEP[step.kind], tp, tq)
            gens = _apply_words(gens, words, dim, dtype, device)
        logger.debug("Built %d generators for Cl(%d,%d) at level %d", p + q, p, q, level)
        return {idx: g for idx, g in gens.items() if -q <= idx <= p}


_GENERATOR_TABLE: Optional[GeneratorTable] = None
_GENERATOR_TABLE_LOCK = threading.Lock()


def generator_table() -> GeneratorTable:
    """The process-wide generator table, created on first use."""
    global _GENERATOR_TABLE
    with _GENERATOR_TABLE_LOCK:
        if _GENERATOR_TABLE is None:
            _GENERATOR_TABLE = GeneratorTable()
        return _GENERATOR_TABLE


def reset_generator_table() -> None:
    """Drop every cached generator matrix."""
    global _GENERATOR_TABLE
    with _GENERATOR_TABLE_LOCK:
        _GENERATOR_TABLE = None
