"""Fast transform against direct construction.

For every signature class (p - q) mod 8, including period-8 shifts, the
forward transform must reproduce the term-by-term matrix and the inverse
transform must recover the sparse value from it.
"""

import logging

import pytest
import torch

from cliffmat.config import tuning_override
from cliffmat.conversion import framed_to_matrix, matrix_to_framed
from cliffmat.errors import AlgebraError
from cliffmat.fast import FastResult, fast_framed_multi, fast_matrix_multi, inverse_transform
from cliffmat.framed_multi import FramedMulti
from cliffmat.index_set import HI, IndexSet
from cliffmat.matrix_multi import MatrixMulti

SIGNATURES = [
    (0, 0), (1, 0), (0, 1), (2, 0), (1, 1), (0, 2),
    (3, 0), (2, 1), (1, 2), (0, 3),
    (4, 0), (3, 1), (2, 2), (1, 3), (0, 4),
    (5, 0), (0, 5), (4, 1), (1, 4), (3, 2), (2, 3),
    (6, 0), (0, 6), (5, 1), (1, 5),
    (7, 0), (0, 7), (8, 0), (0, 8), (4, 4),
    (9, 0), (0, 9), (5, 4), (1, 8),
]

SLOW = dict(fast_size_threshold=1 << 30, inv_fast_dim_threshold=1 << 30)
FAST = dict(fast_size_threshold=0, inv_fast_dim_threshold=0)


def signature_frame(p, q):
    return IndexSet(list(range(-q, 0)) + list(range(1, p + 1)))


def random_value(frame, seed=0, fill=1.0):
    gen = torch.Generator().manual_seed(seed)
    return FramedMulti.random(frame, fill, gen)


def assert_close(a: FramedMulti, b: FramedMulti, tol=1e-10):
    diff = (a - b).max_abs()
    assert diff < tol, f"max coefficient difference {diff}"


# ── Forward transform ─────────────────────────────────────────────────

class TestForward:

    @pytest.mark.parametrize("p, q", SIGNATURES)
    def test_matches_direct_construction(self, p, q):
        frame = signature_frame(p, q)
        x = random_value(frame, seed=p * 16 + q)
        with tuning_override(**SLOW):
            direct = framed_to_matrix(x, frame)
        result = fast_matrix_multi(x, frame)
        assert result.ok, result.reason
        assert torch.allclose(result.value, direct, atol=1e-10)

    def test_sparse_frame_is_folded(self):
        frame = IndexSet([-9, -4, 2, 6, 11])
        x = FramedMulti("1+2{-9,6}-{-4,2,11}+0.5{11}")
        with tuning_override(**SLOW):
            direct = framed_to_matrix(x, frame)
        assert torch.equal(fast_matrix_multi(x, frame).value, direct)

    def test_value_outside_frame_falls_back(self):
        result = fast_matrix_multi(FramedMulti("{3}"), IndexSet([1, 2]))
        assert not result.ok
        assert "not contained" in result.reason


# ── Inverse transform ─────────────────────────────────────────────────

class TestInverse:

    @pytest.mark.parametrize("p, q", SIGNATURES)
    def test_recovers_sparse_value(self, p, q):
        frame = signature_frame(p, q)
        x = random_value(frame, seed=100 + p * 16 + q, fill=0.5)
        with tuning_override(**SLOW):
            matrix = framed_to_matrix(x, frame)
        result = fast_framed_multi(matrix, frame)
        assert result.ok, result.reason
        assert_close(result.value, x)

    @pytest.mark.parametrize("p, q", [(2, 0), (0, 3), (4, 1), (1, 6)])
    def test_exact_for_dyadic_coefficients(self, p, q):
        frame = signature_frame(p, q)
        x = FramedMulti({IndexSet.from_subset_value(v, frame): (v % 5) - 2.5
                         for v in range(1 << frame.count())})
        with tuning_override(**SLOW):
            matrix = framed_to_matrix(x, frame)
        assert fast_framed_multi(matrix, frame).value == x

    def test_level_one_closed_form(self):
        # [[a, b], [c, d]] in Cl(1,1)
        matrix = torch.tensor([[1.0, 2.0], [3.0, 4.0]], dtype=torch.float64)
        value = inverse_transform(matrix, 1)
        with tuning_override(**SLOW):
            assert torch.equal(framed_to_matrix(value, IndexSet([-1, 1])), matrix)

    def test_wrong_shape_falls_back(self):
        result = fast_framed_multi(torch.zeros(3, 3, dtype=torch.float64), IndexSet([1, 2]))
        assert isinstance(result, FastResult)
        assert not result.ok
        assert result.value is None
        assert "does not match" in result.reason

    def test_superalgebra_out_of_range_falls_back(self):
        frame = IndexSet([-1] + list(range(1, HI + 1)))
        result = fast_framed_multi(torch.zeros(1, 1, dtype=torch.float64), frame)
        assert not result.ok
        assert "superalgebra" in result.reason


# ── Conversion policy ─────────────────────────────────────────────────

class TestConversionPolicy:

    @pytest.mark.parametrize("p, q", [(3, 0), (1, 4), (6, 1), (0, 7)])
    def test_paths_agree(self, p, q):
        frame = signature_frame(p, q)
        x = random_value(frame, seed=7)
        with tuning_override(**SLOW):
            slow_matrix = MatrixMulti(x).matrix
            slow_back = MatrixMulti(x).to_framed()
        with tuning_override(**FAST):
            fast_matrix = MatrixMulti(x).matrix
            fast_back = MatrixMulti(x).to_framed()
        assert torch.allclose(slow_matrix, fast_matrix, atol=1e-10)
        assert_close(slow_back, x)
        assert_close(fast_back, x)

    def test_fast_path_taken_silently(self, caplog):
        with tuning_override(**FAST), caplog.at_level(logging.DEBUG, logger="cliffmat"):
            matrix = framed_to_matrix(FramedMulti("{1}+{2}"), IndexSet([1, 2]))
            value = matrix_to_framed(matrix, IndexSet([1, 2]))
        assert value == FramedMulti("{1}+{2}")
        assert not any("declined" in rec.getMessage() for rec in caplog.records)

    def test_fallback_is_logged(self, caplog):
        with tuning_override(**FAST), caplog.at_level(logging.DEBUG, logger="cliffmat"):
            # the fast path declines a value outside the frame; the linear path then rejects it
            with pytest.raises(AlgebraError):
                framed_to_matrix(FramedMulti("{3}"), IndexSet([1, 2]))
        assert any("declined" in rec.getMessage() for rec in caplog.records)

    def test_matrix_multi_fast_methods(self):
        x = FramedMulti("1-{1}+0.5{-1,2}+2{-1,1,2}")
        small = MatrixMulti(x)
        big_frame = IndexSet([-3, -1, 1, 2, 5])
        assert small.fast_framed_multi() == x
        moved = small.fast_matrix_multi(big_frame)
        assert moved.frame == big_frame
        assert torch.equal(moved.matrix, MatrixMulti(x, big_frame).matrix)
        assert torch.equal(x.fast_matrix_multi(big_frame).matrix, moved.matrix)


def test_inconsistent_centring_plan_falls_back(monkeypatch):
    import cliffmat.fast as fast
    monkeypatch.setattr(fast, "centring_plan", lambda p, q: (5, []))
    result = fast.fast_matrix_multi(FramedMulti("{1}"), IndexSet([1]))
    assert not result.ok
    assert "ended at" in result.reason
