# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Sparse multivectors: a map from blade name to coefficient.

:class:`FramedMulti` stores only non-zero terms, so its frame (the union of
its blade names) is implied by its contents. It is the exchange format of
the package: text input and output, grade projections and the involutions
all go through it, and :class:`~cliffmat.matrix_multi.MatrixMulti`
converts to and from it.
"""

from __future__ import annotations

import math
import numbers
import re
import sys
from functools import reduce
from typing import Dict, Iterator, List, Optional, Tuple

import torch

from cliffmat.config import get_tuning
from cliffmat.errors import AlgebraError
from cliffmat.generators import (
    PM4_QP4, PP4_QM4, QP1_PM1, Words, generator_words, step_target,
)
from cliffmat.index_set import HI, LO, IndexSet

_NUMBER = r"(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|nan|inf(?:inity)?)"
_TERM_RE = re.compile(r"\s*([+-])?\s*(" + _NUMBER + r")?\s*(\{[^{}]*\})?\s*", re.IGNORECASE)

Terms = Dict[IndexSet, float]


def _accumulate(terms: Terms, ist: IndexSet, crd: float) -> None:
    """``terms[ist] += crd``, dropping the entry if it becomes zero."""
    total = terms.get(ist, 0.0) + crd
    if total == 0.0:
        terms.pop(ist, None)
    else:
        terms[ist] = total


def _reciprocal(scr: float) -> float:
    # IEEE semantics: 1/0 is a signed infinity rather than an exception
    if scr == 0:
        return math.copysign(math.inf, scr)
    return 1.0 / scr


def _is_scalar(value) -> bool:
    return isinstance(value, numbers.Real)


def _format_scalar(scr: float) -> str:
    text = repr(float(scr))
    return text[:-2] if text.endswith(".0") else text


def _word_blade(word: Tuple[int, ...]) -> Tuple[IndexSet, int]:
    """Blade and sign of the ordered product of single generators."""
    ist, sign = IndexSet(), 1
    for index in word:
        gen = IndexSet(index)
        sign *= ist.sign_of_mult(gen)
        ist = ist ^ gen
    return ist, sign


def _parse_blade(text: str, source: str) -> IndexSet:
    body = text[1:-1].strip()
    if not body:
        return IndexSet()
    try:
        indices = [int(part) for part in body.split(",")]
    except ValueError:
        raise AlgebraError("FramedMulti.parse", f"bad index list {text!r} in {source!r}") from None
    if any(a >= b for a, b in zip(indices, indices[1:])):
        raise AlgebraError("FramedMulti.parse",
                           f"indices of {text!r} must be strictly ascending in {source!r}")
    return IndexSet(indices)


class FramedMulti:
    """Multivector stored as ``{IndexSet: coefficient}`` with no zero entries.

    Args:
        value: A real scalar, an ``(IndexSet, coefficient)`` pair, a dict of
            terms, a string such as ``"3+2{1,2}-6.1e-2{2,3}"``, another
            FramedMulti or a MatrixMulti.

    Raises:
        AlgebraError: On unparseable text or an out-of-range index.
        TypeError: On any other kind of value.
    """

    __slots__ = ("_terms",)

    def __init__(self, value=0.0):
        terms: Terms = {}
        if isinstance(value, FramedMulti):
            terms = dict(value._terms)
        elif _is_scalar(value):
            _accumulate(terms, IndexSet(), float(value))
        elif isinstance(value, str):
            terms = FramedMulti.parse(value)._terms
        elif isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], IndexSet):
            _accumulate(terms, value[0], float(value[1]))
        elif isinstance(value, dict):
            for ist, crd in value.items():
                _accumulate(terms, ist, float(crd))
        else:
            from cliffmat.matrix_multi import MatrixMulti
            if not isinstance(value, MatrixMulti):
                raise TypeError(f"cannot build a FramedMulti from {type(value).__name__}")
            terms = value.to_framed()._terms
        self._terms = terms

    @classmethod
    def _from_terms(cls, terms: Terms) -> "FramedMulti":
        result = cls.__new__(cls)
        result._terms = terms
        return result

    @classmethod
    def term(cls, ist: IndexSet, crd: float = 1.0) -> "FramedMulti":
        """Single term ``crd * e_ist``."""
        return cls((ist, crd))

    @classmethod
    def random(cls, frame: IndexSet, fill: float = 1.0,
               generator: Optional[torch.Generator] = None) -> "FramedMulti":
        """Random multivector within *frame*.

        Each of the ``2 ** frame.count()`` blades gets a standard normal
        coefficient with probability *fill*.
        """
        count = 1 << frame.count()
        crds = torch.randn(count, generator=generator, dtype=torch.float64)
        keep = torch.rand(count, generator=generator, dtype=torch.float64) < fill
        terms: Terms = {}
        for stv in range(count):
            if keep[stv]:
                _accumulate(terms, IndexSet.from_subset_value(stv, frame), crds[stv].item())
        return cls._from_terms(terms)

    @classmethod
    def parse(cls, text: str) -> "FramedMulti":
        """Read a sum of terms ``[sign][coefficient]{i1,...,ik}``.

        A missing coefficient means 1, a missing blade means the scalar
        blade, and every term after the first needs an explicit sign.
        """
        source = text
        text = text.strip()
        if not text:
            raise AlgebraError("FramedMulti.parse", "empty input")
        terms: Terms = {}
        pos = 0
        while pos < len(text):
            match = _TERM_RE.match(text, pos)
            sign, number, blade = match.groups()
            if (number is None and blade is None) or (pos > 0 and sign is None):
                raise AlgebraError("FramedMulti.parse", f"cannot parse {source!r} at position {pos}")
            crd = 1.0 if number is None else float(number)
            if sign == "-":
                crd = -crd
            ist = IndexSet() if blade is None else _parse_blade(blade, source)
            _accumulate(terms, ist, crd)
            pos = match.end()
        return cls._from_terms(terms)

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._terms)

    def __iter__(self) -> Iterator[Tuple[IndexSet, float]]:
        """Terms as ``(IndexSet, coefficient)`` in print order."""
        for ist in sorted(self._terms, key=IndexSet.sort_key):
            yield ist, self._terms[ist]

    def __getitem__(self, ist: IndexSet) -> float:
        return self._terms.get(ist, 0.0)

    @property
    def frame(self) -> IndexSet:
        """Union of all blade names."""
        return reduce(lambda a, b: a | b, self._terms, IndexSet())

    def __eq__(self, other) -> bool:
        if _is_scalar(other):
            other = FramedMulti(other)
        if not isinstance(other, FramedMulti):
            return NotImplemented
        return self._terms == other._terms

    __hash__ = None

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce(value) -> Optional["FramedMulti"]:
        if isinstance(value, FramedMulti):
            return value
        if _is_scalar(value):
            return FramedMulti(value)
        from cliffmat.matrix_multi import MatrixMulti
        if isinstance(value, MatrixMulti):
            return value.to_framed()
        return None

    def _scaled(self, scr: float) -> "FramedMulti":
        if scr == 0:
            return FramedMulti()
        return FramedMulti._from_terms({ist: crd * scr for ist, crd in self._terms.items()})

    def __add__(self, rhs):
        rhs = self._coerce(rhs)
        if rhs is None:
            return NotImplemented
        terms = dict(self._terms)
        for ist, crd in rhs._terms.items():
            _accumulate(terms, ist, crd)
        return FramedMulti._from_terms(terms)

    __radd__ = __add__

    def __sub__(self, rhs):
        rhs = self._coerce(rhs)
        if rhs is None:
            return NotImplemented
        return self + (-rhs)

    def __rsub__(self, lhs):
        return (-self) + lhs

    def __neg__(self) -> "FramedMulti":
        return FramedMulti._from_terms({ist: -crd for ist, crd in self._terms.items()})

    def __pos__(self) -> "FramedMulti":
        return FramedMulti(self)

    def _product(self, rhs: "FramedMulti", keep) -> "FramedMulti":
        terms: Terms = {}
        for lhs_ist, lhs_crd in self._terms.items():
            for rhs_ist, rhs_crd in rhs._terms.items():
                if keep(lhs_ist, rhs_ist):
                    crd = lhs_crd * rhs_crd * lhs_ist.sign_of_mult(rhs_ist)
                    _accumulate(terms, lhs_ist ^ rhs_ist, crd)
        return FramedMulti._from_terms(terms)

    def __mul__(self, rhs):
        """Geometric product.

        Large products of two multi-term values go through matrices in the
        union frame, which is cheaper than the term-by-term double loop.
        """
        if _is_scalar(rhs):
            return self._scaled(float(rhs))
        rhs = self._coerce(rhs)
        if rhs is None:
            return NotImplemented
        size = len(self) * len(rhs)
        if min(len(self), len(rhs)) > 1 and size > get_tuning().products_size_threshold:
            from cliffmat.matrix_multi import MatrixMulti
            frame = self.frame | rhs.frame
            product = MatrixMulti(self, frame, prechecked=True) * MatrixMulti(rhs, frame, prechecked=True)
            return product.to_framed()
        return self._product(rhs, lambda a, b: True)

    def __rmul__(self, lhs):
        if _is_scalar(lhs):
            return self._scaled(float(lhs))
        lhs = self._coerce(lhs)
        if lhs is None:
            return NotImplemented
        return lhs * self

    def __mod__(self, rhs):
        """Left contraction: terms whose left blade lies inside the right one."""
        rhs = self._coerce(rhs)
        if rhs is None:
            return NotImplemented
        return self._product(rhs, lambda a, b: a.is_subset(b))

    def __and__(self, rhs):
        """Hestenes inner product: nested non-scalar blades only."""
        rhs = self._coerce(rhs)
        if rhs is None:
            return NotImplemented
        return self._product(rhs, lambda a, b: bool(a) and bool(b)
                             and (a.is_subset(b) or b.is_subset(a)))

    def __xor__(self, rhs):
        """Outer product: terms with disjoint blades."""
        rhs = self._coerce(rhs)
        if rhs is None:
            return NotImplemented
        return self._product(rhs, lambda a, b: not (a & b))

    def __rmod__(self, lhs):
        lhs = self._coerce(lhs)
        return NotImplemented if lhs is None else lhs % self

    def __rand__(self, lhs):
        lhs = self._coerce(lhs)
        return NotImplemented if lhs is None else lhs & self

    def __rxor__(self, lhs):
        lhs = self._coerce(lhs)
        return NotImplemented if lhs is None else lhs ^ self

    def __truediv__(self, rhs):
        """Geometric product with the inverse of *rhs*.

        Division by a multivector is solved in the matrix representation of
        the union frame. A singular divisor gives NaN.
        """
        if _is_scalar(rhs):
            return self._scaled(_reciprocal(float(rhs)))
        rhs = self._coerce(rhs)
        if rhs is None:
            return NotImplemented
        from cliffmat.matrix_multi import MatrixMulti
        frame = self.frame | rhs.frame
        quotient = MatrixMulti(self, frame, prechecked=True) / MatrixMulti(rhs, frame, prechecked=True)
        return quotient.to_framed()

    def __rtruediv__(self, lhs):
        lhs = self._coerce(lhs)
        if lhs is None:
            return NotImplemented
        return lhs / self

    def __invert__(self) -> "FramedMulti":
        return self.reverse()

    def __pow__(self, m: int) -> "FramedMulti":
        return self.pow(m)

    def inv(self) -> "FramedMulti":
        """Geometric multiplicative inverse; NaN if there is none."""
        return FramedMulti(1.0) / self

    def pow(self, m: int) -> "FramedMulti":
        """Integer power; negative powers invert first."""
        base = self
        if m < 0:
            base, m = self.inv(), -m
        result = FramedMulti(1.0)
        while m:
            if m & 1:
                result = result * base
            m >>= 1
            if m:
                base = base * base
        return result

    def outer_pow(self, m: int) -> "FramedMulti":
        """Outer product power.

        Raises:
            AlgebraError: If *m* is negative.
        """
        if m < 0:
            raise AlgebraError("FramedMulti.outer_pow(m)", "negative exponent")
        result = FramedMulti(1.0)
        for _ in range(m):
            result = result ^ self
        return result

    # ------------------------------------------------------------------
    # Projections and involutions
    # ------------------------------------------------------------------

    def _filtered(self, keep) -> "FramedMulti":
        return FramedMulti._from_terms({ist: crd for ist, crd in self._terms.items() if keep(ist)})

    def _signed(self, sign_of) -> "FramedMulti":
        return FramedMulti._from_terms({ist: crd * sign_of(ist.count())
                                        for ist, crd in self._terms.items()})

    def __call__(self, grade: int) -> "FramedMulti":
        """Grade part; zero for grades outside the index range."""
        if not 0 <= grade <= HI - LO:
            return FramedMulti()
        return self._filtered(lambda ist: ist.count() == grade)

    def even(self) -> "FramedMulti":
        return self._filtered(lambda ist: ist.count() % 2 == 0)

    def odd(self) -> "FramedMulti":
        return self._filtered(lambda ist: ist.count() % 2 == 1)

    def involute(self) -> "FramedMulti":
        """Main involution: each generator changes sign."""
        return self._signed(lambda grade: -1 if grade % 2 else 1)

    def reverse(self) -> "FramedMulti":
        """Reversion: the order of generators in each blade is reversed."""
        return self._signed(lambda grade: -1 if (grade * (grade - 1) // 2) % 2 else 1)

    def conj(self) -> "FramedMulti":
        """Clifford conjugation: reversion composed with the main involution."""
        return self._signed(lambda grade: -1 if (grade * (grade + 1) // 2) % 2 else 1)

    def quad(self) -> float:
        """Scalar part of ``reverse(x) * x``."""
        return sum(crd * crd * (-1 if ist.count_neg() % 2 else 1)
                   for ist, crd in self._terms.items())

    def norm(self) -> float:
        """Sum of squared coefficients."""
        return sum(crd * crd for crd in self._terms.values())

    def max_abs(self) -> float:
        return max((abs(crd) for crd in self._terms.values()), default=0.0)

    def scalar(self) -> float:
        return self[IndexSet()]

    def truncated(self, limit: Optional[float] = None) -> "FramedMulti":
        """Drop terms whose magnitude is at most ``limit * max_abs()``."""
        limit = get_tuning().truncation if limit is None else limit
        top = self.max_abs()
        if top == 0:
            return FramedMulti()
        cutoff = top * abs(limit)
        return self._filtered(lambda ist: abs(self._terms[ist]) > cutoff)

    def isnan(self) -> bool:
        return any(crd != crd for crd in self._terms.values())

    def vector_part(self, frame: Optional[IndexSet] = None) -> List[float]:
        """Grade 1 coefficients for each index of *frame*, ascending."""
        frame = self.frame if frame is None else frame
        return [self[IndexSet(index)] for index in frame]

    # ------------------------------------------------------------------
    # Folding and centring
    # ------------------------------------------------------------------

    def fold(self, frame: IndexSet) -> "FramedMulti":
        """Rename every blade to its folded image in *frame*."""
        return FramedMulti._from_terms({ist.fold(frame): crd for ist, crd in self._terms.items()})

    def unfold(self, frame: IndexSet) -> "FramedMulti":
        """Inverse of :meth:`fold`."""
        return FramedMulti._from_terms({ist.unfold(frame): crd for ist, crd in self._terms.items()})

    def restricted(self, frame: IndexSet) -> "FramedMulti":
        """Terms whose blade lies inside *frame*."""
        return self._filtered(lambda ist: ist.is_subset(frame))

    def substitute(self, words: Words) -> "FramedMulti":
        """Replace each generator ``e_k`` by the product named by ``words[k]``.

        Every image is a single signed blade, so each term maps to one term.

        Raises:
            KeyError: If a blade uses a generator with no word.
        """
        images = {index: _word_blade(word) for index, word in words.items()}
        terms: Terms = {}
        for ist, crd in self._terms.items():
            blade, sign = IndexSet(), 1
            for index in ist:
                image, image_sign = images[index]
                sign *= image_sign * blade.sign_of_mult(image)
                blade = blade ^ image
            _accumulate(terms, blade, crd * sign)
        return FramedMulti._from_terms(terms)

    def centre(self, kind: str, p: int, q: int) -> Tuple["FramedMulti", int, int]:
        """Carry a folded ``Cl(p, q)`` value through one isomorphism.

        Returns:
            (value, p', q') with the value expressed in the target algebra.
        """
        target_p, target_q = step_target(kind, p, q)
        return self.substitute(generator_words(kind, p, q)), target_p, target_q

    def centre_qp1_pm1(self, p: int, q: int) -> Tuple["FramedMulti", int, int]:
        """``Cl(p, q) -> Cl(q+1, p-1)``."""
        return self.centre(QP1_PM1, p, q)

    def centre_pp4_qm4(self, p: int, q: int) -> Tuple["FramedMulti", int, int]:
        """``Cl(p, q) -> Cl(p+4, q-4)``."""
        return self.centre(PP4_QM4, p, q)

    def centre_pm4_qp4(self, p: int, q: int) -> Tuple["FramedMulti", int, int]:
        """``Cl(p, q) -> Cl(p-4, q+4)``."""
        return self.centre(PM4_QP4, p, q)

    def fast_matrix_multi(self, frame: IndexSet):
        """Matrix representation in *frame* through the generalized FFT.

        Raises:
            AlgebraError: If the value lies outside *frame* or the frame is
                too large for the transform.
        """
        from cliffmat.fast import fast_matrix_multi
        from cliffmat.matrix_multi import MatrixMulti
        result = fast_matrix_multi(self, frame)
        if not result.ok:
            raise AlgebraError("FramedMulti.fast_matrix_multi", result.reason)
        return MatrixMulti(result.value, frame)

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        if not self._terms:
            return "0"
        parts = []
        for ist, crd in self:
            if not ist:
                text = _format_scalar(crd)
            elif crd == 1:
                text = str(ist)
            elif crd == -1:
                text = "-" + str(ist)
            else:
                text = _format_scalar(crd) + str(ist)
            if parts and not text.startswith("-"):
                text = "+" + text
            parts.append(text)
        return "".join(parts)

    def __repr__(self) -> str:
        return f"FramedMulti({str(self)!r})"

    def write(self, msg: str = "", stream=None) -> None:
        """Write ``msg`` and the value on one line.

        Raises:
            AlgebraError: If *stream* is closed or not writable.
        """
        stream = sys.stdout if stream is None else stream
        _write_line("FramedMulti.write", stream, f"{msg} {self}" if msg else str(self))


def _write_line(operation: str, stream, line: str) -> None:
    if getattr(stream, "closed", False):
        raise AlgebraError(operation, "cannot write to output file")
    writable = getattr(stream, "writable", None)
    if writable is not None and not writable():
        raise AlgebraError(operation, "cannot write to output file")
    try:
        stream.write(line + "\n")
    except (OSError, ValueError) as exc:
        raise AlgebraError(operation, "cannot write to output file") from exc
