# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Multivectors held as real matrices over a frame.

A :class:`MatrixMulti` pairs a frame (an :class:`IndexSet`) with the square
matrix of side ``folded_dim(frame)`` representing the multivector in the
real matrix algebra containing ``Cl(p, q)``. Geometric product and division
are matrix product and linear solve; the other products and the involutions
round-trip through :class:`FramedMulti`.

Mixed-frame arithmetic first promotes both operands to the union of their
frames. In-place operators compute the new frame and matrix completely and
only then replace the receiver's state, and never modify a tensor that may
be shared with another value or with the basis cache.

Example::

    e1 = MatrixMulti.term(IndexSet(1), 1.0)
    e2 = MatrixMulti.term(IndexSet(2), 1.0)
    e12 = e1 * e2              # frame {1,2}
    assert e12 == MatrixMulti("{1,2}")
"""

from __future__ import annotations

import math
import numbers
import sys
from collections.abc import Sequence
from typing import List, Optional, Tuple

import numpy as np
import torch

from cliffmat import validation
from cliffmat.basis import basis_element
from cliffmat.config import get_tuning, torch_dtype
from cliffmat.conversion import framed_to_matrix, matrix_to_framed, zero_matrix
from cliffmat.errors import AlgebraError
from cliffmat.fast import fast_framed_multi as _fast_framed_multi
from cliffmat.framed_multi import FramedMulti, _reciprocal, _write_line
from cliffmat.generators import folded_dim, offset_level
from cliffmat.index_set import HI, LO, IndexSet
from cliffmat.matrix import (
    inner, isnan, lu_factorize, lu_substitute, norm_inf, sparse_prod,
)
from log import get_logger

logger = get_logger(__name__)

__all__ = ["MatrixMulti", "folded_dim", "offset_level"]


def _is_scalar(value) -> bool:
    return isinstance(value, numbers.Real)


def _check_in_frame(inner_frame: IndexSet, frame: IndexSet, prechecked: bool,
                    operation: str) -> None:
    if prechecked:
        validation.check_in_frame(inner_frame, frame, operation)
    elif not inner_frame.is_subset(frame):
        raise AlgebraError(operation, "cannot initialize with value outside of frame")


def _term_matrix(ist: IndexSet, crd: float, frame: IndexSet) -> torch.Tensor:
    matrix = zero_matrix(frame)
    if crd != 0:
        matrix.add_(basis_element(ist, frame), alpha=crd)
    return matrix


def _vector_matrix(vec, frame: IndexSet, prechecked: bool) -> torch.Tensor:
    crds = [float(crd) for crd in vec]
    if prechecked:
        validation.check_vector_length(len(crds), frame, "MatrixMulti(vector, frame)")
    elif len(crds) != frame.count():
        raise AlgebraError("MatrixMulti(vector, frame)",
                           "cannot initialize with vector not matching frame")
    matrix = zero_matrix(frame)
    for index, crd in zip(frame, crds):
        if crd != 0:
            matrix.add_(basis_element(IndexSet(index), frame), alpha=crd)
    return matrix


def _dense_matrix(value, frame: Optional[IndexSet], prechecked: bool) -> torch.Tensor:
    if frame is None:
        raise AlgebraError("MatrixMulti(matrix, frame)", "a frame is required")
    matrix = torch.as_tensor(value, dtype=torch_dtype(), device=get_tuning().device)
    dim = folded_dim(frame)
    if prechecked:
        validation.check_matrix_shape(matrix, dim, "MatrixMulti(matrix, frame)")
    elif matrix.ndim != 2 or tuple(matrix.shape) != (dim, dim):
        raise AlgebraError("MatrixMulti(matrix, frame)",
                           f"matrix shape {tuple(matrix.shape)} does not match frame side {dim}")
    # detach from the caller's storage
    return matrix.clone()


def _divide(lhs: torch.Tensor, rhs: torch.Tensor, max_steps: int) -> Optional[torch.Tensor]:
    """Solve ``X @ rhs == lhs`` by LU with iterative refinement.

    Works on the transposed system ``rhs.T @ X.T == lhs.T``. Refinement
    stops after *max_steps* steps, or as soon as the residual stops
    shrinking, is exactly zero or becomes NaN.

    Returns:
        ``X``, or ``None`` if ``rhs`` is singular.
    """
    at, bt = rhs.T, lhs.T
    lu, pivots, singular = lu_factorize(at)
    if singular:
        return None
    xt = lu_substitute(lu, pivots, bt)
    residual = sparse_prod(at, xt) - bt
    nr = norm_inf(residual)
    if nr != 0 and nr == nr:
        xt_new = xt
        nr_old = nr + 1
        step = 0
        while step != max_steps and nr < nr_old and nr != 0 and nr == nr:
            nr_old = nr
            if step != 0:
                xt = xt_new
            xt_new = xt_new - lu_substitute(lu, pivots, residual)
            residual = sparse_prod(at, xt_new) - bt
            nr = norm_inf(residual)
            step += 1
    return xt.T.contiguous()


class MatrixMulti:
    """Multivector over a frame, stored as a dense matrix.

    Args:
        value: What to represent: a real scalar, an ``(IndexSet, coeff)``
            term, a sequence of grade 1 coordinates (one per frame index), a
            square matrix (tensor or ndarray), text such as
            ``"3+2{1,2}"``, a FramedMulti or another MatrixMulti.
        frame: Frame of the representation. Defaults to the frame of
            *value* (the empty frame for a scalar); required for matrices
            and vectors.
        prechecked: The caller guarantees *value* fits *frame*; the check
            is then only asserted.

    Raises:
        AlgebraError: If *value* lies outside *frame*, a vector does not
            match the frame, or a matrix has the wrong shape.
        TypeError: For unsupported kinds of value.
    """

    __slots__ = ("_frame", "_matrix")

    def __init__(self, value=0.0, frame: Optional[IndexSet] = None, prechecked: bool = False):
        self._frame, self._matrix = self._construct(value, frame, prechecked)

    @staticmethod
    def _construct(value, frame: Optional[IndexSet],
                   prechecked: bool) -> Tuple[IndexSet, torch.Tensor]:
        if isinstance(value, MatrixMulti):
            if frame is None or frame == value._frame:
                return value._frame, value._matrix
            _check_in_frame(value._frame, frame, prechecked, "MatrixMulti(value, frame)")
            return frame, framed_to_matrix(value.to_framed(), frame)
        if isinstance(value, str):
            value = FramedMulti.parse(value)
        if isinstance(value, FramedMulti):
            if frame is None:
                frame = value.frame
            else:
                _check_in_frame(value.frame, frame, prechecked, "MatrixMulti(value, frame)")
            return frame, framed_to_matrix(value, frame)
        if isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], IndexSet):
            ist, crd = value
            if frame is None:
                frame = ist
            else:
                _check_in_frame(ist, frame, prechecked, "MatrixMulti(term, frame)")
            return frame, _term_matrix(ist, float(crd), frame)
        if isinstance(value, (torch.Tensor, np.ndarray)):
            if value.ndim == 0:
                value = value.item()
            elif value.ndim == 1:
                if frame is None:
                    raise AlgebraError("MatrixMulti(vector, frame)", "a frame is required")
                return frame, _vector_matrix(value.tolist(), frame, prechecked)
            else:
                return frame, _dense_matrix(value, frame, prechecked)
        if _is_scalar(value):
            frame = IndexSet() if frame is None else frame
            return frame, _term_matrix(IndexSet(), float(value), frame)
        if isinstance(value, Sequence):
            if frame is None:
                raise AlgebraError("MatrixMulti(vector, frame)", "a frame is required")
            return frame, _vector_matrix(value, frame, prechecked)
        raise TypeError(f"cannot build a MatrixMulti from {type(value).__name__}")

    @classmethod
    def _from_state(cls, frame: IndexSet, matrix: torch.Tensor) -> "MatrixMulti":
        result = cls.__new__(cls)
        result._frame = frame
        result._matrix = matrix
        return result

    @classmethod
    def term(cls, ist: IndexSet, crd: float = 1.0, frame: Optional[IndexSet] = None,
             prechecked: bool = False) -> "MatrixMulti":
        """Single term ``crd * e_ist``, in *frame* or in the frame ``ist``."""
        return cls((ist, crd), frame, prechecked)

    @classmethod
    def from_vector(cls, vec, frame: IndexSet, prechecked: bool = False) -> "MatrixMulti":
        """Grade 1 multivector with one coordinate per index of *frame*."""
        return cls._from_state(frame, _vector_matrix(vec, frame, prechecked))

    @classmethod
    def from_matrix(cls, matrix, frame: IndexSet, prechecked: bool = False) -> "MatrixMulti":
        """Wrap an existing matrix (copied) as a multivector in *frame*."""
        return cls._from_state(frame, _dense_matrix(matrix, frame, prechecked))

    @classmethod
    def random(cls, frame: IndexSet, fill: float = 1.0,
               generator: Optional[torch.Generator] = None) -> "MatrixMulti":
        """Random multivector within *frame*; see :meth:`FramedMulti.random`."""
        return cls(FramedMulti.random(frame, fill, generator), frame, prechecked=True)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def frame(self) -> IndexSet:
        return self._frame

    @property
    def matrix(self) -> torch.Tensor:
        """The representing matrix. Shared storage; do not modify."""
        return self._matrix

    def copy(self) -> "MatrixMulti":
        return MatrixMulti._from_state(self._frame, self._matrix)

    def _commit(self, frame: IndexSet, matrix: torch.Tensor) -> "MatrixMulti":
        self._frame, self._matrix = frame, matrix
        return self

    def _in_frame(self, frame: IndexSet) -> torch.Tensor:
        """Matrix of this value in a frame containing its own."""
        if frame == self._frame:
            return self._matrix
        return framed_to_matrix(self.to_framed(), frame)

    def _reconcile(self, rhs: "MatrixMulti") -> Tuple[IndexSet, torch.Tensor, torch.Tensor]:
        frame = self._frame | rhs._frame
        return frame, self._in_frame(frame), rhs._in_frame(frame)

    @staticmethod
    def _coerce(value, frame: IndexSet) -> Optional["MatrixMulti"]:
        if isinstance(value, MatrixMulti):
            return value
        if isinstance(value, FramedMulti):
            return MatrixMulti(value)
        if _is_scalar(value):
            return MatrixMulti(value, frame)
        return None

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def __eq__(self, rhs) -> bool:
        """Exact equality.

        Values in the same frame compare matrices entry by entry. Values in
        different frames compare their sparse forms coefficient by
        coefficient, so a value promoted to a larger frame can differ from
        the original in the last bit of a non-dyadic coefficient. Compare
        ``(a - b).max_abs()`` against a tolerance when that matters.
        """
        rhs = self._coerce(rhs, self._frame)
        if rhs is None:
            return NotImplemented
        if self._frame != rhs._frame:
            return self.to_framed() == rhs.to_framed()
        return torch.equal(self._matrix, rhs._matrix)

    __hash__ = None

    # ------------------------------------------------------------------
    # In-place arithmetic
    # ------------------------------------------------------------------

    def add_term(self, ist: IndexSet, crd: float) -> "MatrixMulti":
        """Add ``crd * e_ist``, widening the frame to include *ist* if needed."""
        crd = float(crd)
        if crd == 0:
            return self
        frame = self._frame | ist
        return self._commit(frame, self._in_frame(frame) + basis_element(ist, frame) * crd)

    def __iadd__(self, rhs):
        if _is_scalar(rhs):
            return self.add_term(IndexSet(), rhs)
        rhs = self._coerce(rhs, self._frame)
        if rhs is None:
            return NotImplemented
        frame, lhs_m, rhs_m = self._reconcile(rhs)
        return self._commit(frame, lhs_m + rhs_m)

    def __isub__(self, rhs):
        if _is_scalar(rhs):
            return self.add_term(IndexSet(), -float(rhs))
        rhs = self._coerce(rhs, self._frame)
        if rhs is None:
            return NotImplemented
        frame, lhs_m, rhs_m = self._reconcile(rhs)
        return self._commit(frame, lhs_m - rhs_m)

    def __imul__(self, rhs):
        """Geometric product, or scaling by a real number."""
        if _is_scalar(rhs):
            scr = float(rhs)
            if scr == 0:
                return self._commit(self._frame, zero_matrix(self._frame))
            return self._commit(self._frame, self._matrix * scr)
        rhs = self._coerce(rhs, self._frame)
        if rhs is None:
            return NotImplemented
        frame, lhs_m, rhs_m = self._reconcile(rhs)
        return self._commit(frame, sparse_prod(lhs_m, rhs_m))

    def _via_framed(self, rhs, product) -> "MatrixMulti":
        rhs = self._coerce(rhs, self._frame)
        if rhs is None:
            return NotImplemented
        result = MatrixMulti(product(self.to_framed(), rhs.to_framed()))
        return self._commit(result._frame, result._matrix)

    def __imod__(self, rhs):
        """Left contraction."""
        return self._via_framed(rhs, lambda a, b: a % b)

    def __iand__(self, rhs):
        """Hestenes inner product."""
        return self._via_framed(rhs, lambda a, b: a & b)

    def __ixor__(self, rhs):
        """Outer product."""
        return self._via_framed(rhs, lambda a, b: a ^ b)

    def __itruediv__(self, rhs):
        """Geometric product with the inverse of *rhs*.

        A singular divisor makes the receiver NaN in the union frame.
        """
        if _is_scalar(rhs):
            return self._commit(self._frame, self._matrix * _reciprocal(float(rhs)))
        rhs = self._coerce(rhs, self._frame)
        if rhs is None:
            return NotImplemented
        frame, lhs_m, rhs_m = self._reconcile(rhs)
        matrix = _divide(lhs_m, rhs_m, get_tuning().div_max_steps)
        if matrix is None:
            logger.debug("Division by a singular matrix in frame %s gives NaN", frame)
            return self._commit(frame, _term_matrix(IndexSet(), math.nan, frame))
        return self._commit(frame, matrix)

    # ------------------------------------------------------------------
    # Binary arithmetic
    # ------------------------------------------------------------------

    def __add__(self, rhs):
        return self.copy().__iadd__(rhs)

    def __sub__(self, rhs):
        return self.copy().__isub__(rhs)

    def __mul__(self, rhs):
        return self.copy().__imul__(rhs)

    def __mod__(self, rhs):
        return self.copy().__imod__(rhs)

    def __and__(self, rhs):
        return self.copy().__iand__(rhs)

    def __xor__(self, rhs):
        return self.copy().__ixor__(rhs)

    def __truediv__(self, rhs):
        return self.copy().__itruediv__(rhs)

    def __radd__(self, lhs):
        return self.copy().__iadd__(lhs)

    def __rsub__(self, lhs):
        return (-self).__iadd__(lhs)

    def __rmul__(self, lhs):
        if _is_scalar(lhs):
            return self.copy().__imul__(lhs)
        lhs = self._coerce(lhs, self._frame)
        return NotImplemented if lhs is None else lhs.copy().__imul__(self)

    def __rmod__(self, lhs):
        lhs = self._coerce(lhs, self._frame)
        return NotImplemented if lhs is None else lhs.copy().__imod__(self)

    def __rand__(self, lhs):
        lhs = self._coerce(lhs, self._frame)
        return NotImplemented if lhs is None else lhs.copy().__iand__(self)

    def __rxor__(self, lhs):
        lhs = self._coerce(lhs, self._frame)
        return NotImplemented if lhs is None else lhs.copy().__ixor__(self)

    def __rtruediv__(self, lhs):
        lhs = self._coerce(lhs, self._frame)
        return NotImplemented if lhs is None else lhs.copy().__itruediv__(self)

    def __neg__(self) -> "MatrixMulti":
        return MatrixMulti._from_state(self._frame, -self._matrix)

    def __pos__(self) -> "MatrixMulti":
        return self.copy()

    def __invert__(self) -> "MatrixMulti":
        return self.reverse()

    def __pow__(self, m: int) -> "MatrixMulti":
        return self.pow(m)

    # ------------------------------------------------------------------
    # Powers and inverse
    # ------------------------------------------------------------------

    def inv(self) -> "MatrixMulti":
        """Geometric multiplicative inverse; NaN if there is none."""
        return MatrixMulti(1.0, self._frame) / self

    def pow(self, m: int) -> "MatrixMulti":
        """Integer power by repeated squaring; negative powers invert first."""
        base = self.copy()
        if m < 0:
            base, m = self.inv(), -m
        result = MatrixMulti(1.0, self._frame)
        while m:
            if m & 1:
                result *= base
            m >>= 1
            if m:
                base = base * base
        return result

    def outer_pow(self, m: int) -> "MatrixMulti":
        """Outer product power.

        Raises:
            AlgebraError: If *m* is negative.
        """
        if m < 0:
            raise AlgebraError("MatrixMulti.outer_pow(m)", "negative exponent")
        result = MatrixMulti(1.0, self._frame)
        for _ in range(m):
            result ^= self
        return result

    # ------------------------------------------------------------------
    # Projections, involutions and scalar queries
    # ------------------------------------------------------------------

    def _mapped(self, op) -> "MatrixMulti":
        return MatrixMulti(op(self.to_framed()), self._frame, prechecked=True)

    def __call__(self, grade: int) -> "MatrixMulti":
        """Grade part; zero in the current frame for out-of-range grades."""
        if not 0 <= grade <= HI - LO:
            return MatrixMulti(0.0, self._frame)
        return self._mapped(lambda value: value(grade))

    def __getitem__(self, ist: IndexSet) -> float:
        """Coordinate of the blade *ist*; 0 outside the frame."""
        if not ist.is_subset(self._frame):
            return 0.0
        return inner(basis_element(ist, self._frame), self._matrix)

    def even(self) -> "MatrixMulti":
        return self._mapped(FramedMulti.even)

    def odd(self) -> "MatrixMulti":
        return self._mapped(FramedMulti.odd)

    def involute(self) -> "MatrixMulti":
        return self._mapped(FramedMulti.involute)

    def reverse(self) -> "MatrixMulti":
        return self._mapped(FramedMulti.reverse)

    def conj(self) -> "MatrixMulti":
        return self._mapped(FramedMulti.conj)

    def truncated(self, limit: Optional[float] = None) -> "MatrixMulti":
        return self._mapped(lambda value: value.truncated(limit))

    def quad(self) -> float:
        """Scalar part of ``reverse(x) * x``."""
        return self.to_framed().quad()

    def norm(self) -> float:
        """Sum of squared coordinates."""
        return inner(self._matrix, self._matrix)

    def max_abs(self) -> float:
        return self.to_framed().max_abs()

    def scalar(self) -> float:
        return self[IndexSet()]

    def isnan(self) -> bool:
        return isnan(self._matrix)

    def vector_part(self) -> List[float]:
        """Grade 1 coordinates, one per frame index in ascending order."""
        return [inner(basis_element(IndexSet(index), self._frame), self._matrix)
                for index in self._frame]

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def to_framed(self) -> FramedMulti:
        return matrix_to_framed(self._matrix, self._frame)

    def fast_framed_multi(self) -> FramedMulti:
        """Sparse value through the inverse fast transform only.

        Raises:
            AlgebraError: If the transform does not apply to this frame.
        """
        result = _fast_framed_multi(self._matrix, self._frame)
        if not result.ok:
            raise AlgebraError("MatrixMulti.fast_framed_multi", result.reason)
        return result.value

    def fast_matrix_multi(self, frame: IndexSet) -> "MatrixMulti":
        """This value in *frame*, using the fast transforms both ways."""
        if frame == self._frame:
            return self.copy()
        return self.fast_framed_multi().fast_matrix_multi(frame)

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return str(self.to_framed())

    def __repr__(self) -> str:
        return f"MatrixMulti({str(self)!r}, frame={self._frame})"

    def write(self, msg: str = "", stream=None) -> None:
        """Write ``msg`` and the value on one line.

        Raises:
            AlgebraError: If *stream* is closed or not writable.
        """
        stream = sys.stdout if stream is None else stream
        _write_line("MatrixMulti.write", stream, f"{msg} {self}" if msg else str(self))

    def read(self, stream) -> bool:
        """Replace this value with one line of text from *stream*.

        Returns:
            bool: False, leaving the value unchanged, if the stream has
            failed or is exhausted, or the line is not a multivector.
        """
        try:
            line = stream.readline()
            if not line or not line.strip():
                return False
            value = MatrixMulti(FramedMulti.parse(line))
        except (OSError, ValueError) as exc:
            # AlgebraError is a ValueError
            logger.debug("MatrixMulti.read: no value read (%s); value unchanged", exc)
            return False
        self._commit(value._frame, value._matrix)
        return True
