# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Index sets: names of basis blades and frames.

A blade ``e_{i1} e_{i2} ... e_{ik}`` (ascending indices) is named by the set
``{i1, ..., ik}``. Negative indices are generators squaring to -1, positive
indices generators squaring to +1. Index 0 is never used.

Sets are stored as a bitmask where index ``i`` lives at bit ``i - LO``, so the
usual set algebra is integer arithmetic. The index range is read from the
tuning settings once, at import time, and cannot change afterwards.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Tuple, Union

from cliffmat.config import freeze_index_range
from cliffmat.errors import AlgebraError

LO, HI = freeze_index_range()

# Bits 0 .. -LO-1 hold the negative indices LO .. -1
_NEG_MASK = (1 << -LO) - 1
# Positive index k lives at bit k - LO; shifting by 1 - LO puts index 1 at bit 0
_POS_SHIFT = 1 - LO


def _bit(index: int) -> int:
    index = int(index)
    if index == 0 or not LO <= index <= HI:
        raise AlgebraError("IndexSet", f"index {index} is zero or outside of [{LO},{HI}]")
    return 1 << (index - LO)


def _popcount(bits: int) -> int:
    return bin(bits).count("1")


class IndexSet:
    """Immutable set of generator indices.

    Args:
        indices: A single index or an iterable of indices.

    Raises:
        AlgebraError: If an index is 0 or outside ``[LO, HI]``.
    """

    __slots__ = ("_bits",)

    def __init__(self, indices: Union[int, Iterable[int]] = ()):
        if isinstance(indices, int):
            indices = (indices,)
        bits = 0
        for index in indices:
            bits |= _bit(index)
        self._bits = bits

    @classmethod
    def _from_bits(cls, bits: int) -> "IndexSet":
        result = cls.__new__(cls)
        result._bits = bits
        return result

    @classmethod
    def from_range(cls, lo: int, hi: int) -> "IndexSet":
        """All non-zero indices in ``[lo, hi]``."""
        return cls(i for i in range(lo, hi + 1) if i != 0)

    @classmethod
    def from_subset_value(cls, value: int, frame: "IndexSet") -> "IndexSet":
        """Map bit ``n`` of *value* onto the ``n``-th smallest index of *frame*.

        Enumerating ``value`` over ``range(2 ** frame.count())`` visits every
        subset of *frame* exactly once.
        """
        bits = 0
        for n, index in enumerate(frame):
            if value >> n & 1:
                bits |= 1 << (index - LO)
        return cls._from_bits(bits)

    # ------------------------------------------------------------------
    # Set algebra
    # ------------------------------------------------------------------

    def __or__(self, other: "IndexSet") -> "IndexSet":
        return IndexSet._from_bits(self._bits | other._bits)

    def __and__(self, other: "IndexSet") -> "IndexSet":
        return IndexSet._from_bits(self._bits & other._bits)

    def __xor__(self, other: "IndexSet") -> "IndexSet":
        return IndexSet._from_bits(self._bits ^ other._bits)

    def __sub__(self, other: "IndexSet") -> "IndexSet":
        return IndexSet._from_bits(self._bits & ~other._bits)

    def __eq__(self, other) -> bool:
        if not isinstance(other, IndexSet):
            return NotImplemented
        return self._bits == other._bits

    def __hash__(self) -> int:
        return hash(self._bits)

    def __contains__(self, index: int) -> bool:
        if index == 0 or not LO <= index <= HI:
            return False
        return bool(self._bits >> (index - LO) & 1)

    def __iter__(self) -> Iterator[int]:
        """Indices in ascending order."""
        bits = self._bits
        while bits:
            low = bits & -bits
            yield low.bit_length() - 1 + LO
            bits ^= low

    def __len__(self) -> int:
        return _popcount(self._bits)

    def __bool__(self) -> bool:
        return self._bits != 0

    def is_subset(self, frame: "IndexSet") -> bool:
        return (self._bits | frame._bits) == frame._bits

    # ------------------------------------------------------------------
    # Counts and extremes
    # ------------------------------------------------------------------

    def count(self) -> int:
        """Number of indices, i.e. the grade of the blade."""
        return _popcount(self._bits)

    def count_neg(self) -> int:
        return _popcount(self._bits & _NEG_MASK)

    def count_pos(self) -> int:
        return _popcount(self._bits >> _POS_SHIFT)

    def min(self) -> int:
        """Smallest index, 0 for the empty set."""
        if not self._bits:
            return 0
        return (self._bits & -self._bits).bit_length() - 1 + LO

    def max(self) -> int:
        """Largest index, 0 for the empty set."""
        if not self._bits:
            return 0
        return self._bits.bit_length() - 1 + LO

    def sort_key(self) -> Tuple[int, Tuple[int, ...]]:
        """Grade first, then indices; the order terms are printed in."""
        return (self.count(), tuple(self))

    def __lt__(self, other: "IndexSet") -> bool:
        return self.sort_key() < other.sort_key()

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def sign_of_mult(self, other: "IndexSet") -> int:
        """Sign of ``e_self * e_other`` relative to ``e_(self ^ other)``.

        Counts the transpositions needed to sort the concatenated indices,
        plus one for every shared generator that squares to -1.
        """
        lhs = self._bits
        swaps = 0
        rhs = other._bits
        while rhs:
            low = rhs & -rhs
            swaps += _popcount(lhs >> low.bit_length())
            rhs ^= low
        swaps += _popcount(lhs & other._bits & _NEG_MASK)
        return -1 if swaps & 1 else 1

    # ------------------------------------------------------------------
    # Folding
    # ------------------------------------------------------------------

    def fold(self, frame: Optional["IndexSet"] = None) -> "IndexSet":
        """Canonical image of this set inside the folded *frame*.

        Positive indices of *frame* map to ``1..p`` in ascending order and
        negative indices to ``-1..-q`` starting from the one nearest zero.
        The map preserves order, so blade signs are unchanged.

        Args:
            frame: Frame containing this set. Defaults to the set itself.

        Raises:
            AlgebraError: If the set is not contained in *frame*.
        """
        frame = self if frame is None else frame
        if not self.is_subset(frame):
            raise AlgebraError("IndexSet.fold", "index set is not contained in frame")
        frame_pos = frame._bits >> _POS_SHIFT
        frame_neg = frame._bits & _NEG_MASK
        bits = 0
        for index in self:
            if index > 0:
                rank = _popcount(frame_pos & ((1 << index) - 1))
                bits |= 1 << (rank - LO)
            else:
                rank = _popcount(frame_neg >> (index - LO))
                bits |= 1 << (-rank - LO)
        return IndexSet._from_bits(bits)

    def unfold(self, frame: "IndexSet") -> "IndexSet":
        """Inverse of :meth:`fold`: map a folded set back into *frame*.

        Raises:
            AlgebraError: If the set is not contained in ``frame.fold()``.
        """
        pos = [i for i in frame if i > 0]
        neg = [i for i in frame if i < 0][::-1]
        bits = 0
        for index in self:
            if index > 0 and index <= len(pos):
                bits |= 1 << (pos[index - 1] - LO)
            elif index < 0 and -index <= len(neg):
                bits |= 1 << (neg[-index - 1] - LO)
            else:
                raise AlgebraError("IndexSet.unfold",
                                   f"index {index} is outside of the folded frame {frame}")
        return IndexSet._from_bits(bits)

    def __str__(self) -> str:
        return "{" + ",".join(str(i) for i in self) + "}"

    def __repr__(self) -> str:
        return f"IndexSet({str(self)})"
