"""Tests for the sparse multivector: text, products, involutions, centring."""

import io
import math

import pytest
import torch

from cliffmat.config import tuning_override
from cliffmat.errors import AlgebraError
from cliffmat.framed_multi import FramedMulti
from cliffmat.index_set import IndexSet


def fm(text):
    return FramedMulti(text)


# ── Text input and output ─────────────────────────────────────────────

class TestText:

    def test_parse_mixed_terms(self):
        x = fm("3+2{1,2}-6.1e-2{2,3}")
        assert len(x) == 3
        assert x.scalar() == 3.0
        assert x[IndexSet([1, 2])] == 2.0
        assert x[IndexSet([2, 3])] == -0.061
        assert x.frame == IndexSet([1, 2, 3])

    def test_write_then_parse_reproduces_terms(self):
        x = fm("3+2{1,2}-6.1e-2{2,3}")
        assert str(x) == "3+2{1,2}-0.061{2,3}"
        assert fm(str(x)) == x

    def test_unit_coefficients_and_spacing(self):
        x = fm(" -{1} + {2} - 0.5 {-1,2} ")
        assert str(x) == "-{1}+{2}-0.5{-1,2}"

    def test_like_terms_collect(self):
        assert fm("{1}+2{1}-3{1}") == FramedMulti()
        assert str(fm("{1}-{1}")) == "0"

    def test_empty_braces_are_scalar(self):
        assert fm("2{}") == FramedMulti(2.0)

    def test_special_values(self):
        x = fm("nan{1}")
        assert x.isnan()
        assert fm("-inf")[IndexSet()] == -math.inf

    @pytest.mark.parametrize("text", ["", "3 2", "{2,1}", "{1,1}", "x", "2{a}", "+"])
    def test_malformed_text_raises(self, text):
        with pytest.raises(AlgebraError, match="FramedMulti.parse"):
            fm(text)

    def test_write_with_label(self):
        out = io.StringIO()
        fm("1+{1}").write("value", out)
        assert out.getvalue() == "value 1+{1}\n"

    def test_write_to_closed_stream_raises(self):
        out = io.StringIO()
        out.close()
        with pytest.raises(AlgebraError, match="cannot write to output file"):
            fm("{1}").write("", out)


# ── Products ──────────────────────────────────────────────────────────

class TestProducts:

    def test_geometric_product_anticommutes(self):
        e1, e2 = fm("{1}"), fm("{2}")
        assert e1 * e2 == fm("{1,2}")
        assert e2 * e1 == fm("-{1,2}")
        assert e1 * e1 == 1.0

    def test_negative_generator_squares_to_minus_one(self):
        assert fm("{-1}") * fm("{-1}") == -1.0

    def test_scalar_multiplication(self):
        x = fm("1+2{1}")
        assert 2 * x == fm("2+4{1}")
        assert x * 0 == FramedMulti()

    def test_left_contraction(self):
        assert fm("{1}") % fm("{1,2}") == fm("{2}")
        assert fm("{1,2}") % fm("{1}") == FramedMulti()
        assert fm("2") % fm("{1}") == fm("2{1}")

    def test_hestenes_inner_product(self):
        assert fm("{1}") & fm("{1,2}") == fm("{2}")
        assert fm("{1,2}") & fm("{1}") == fm("-{2}")
        assert fm("3") & fm("{1}") == FramedMulti()

    def test_outer_product(self):
        assert fm("{1}") ^ fm("{2}") == fm("{1,2}")
        assert fm("{1}") ^ fm("{1}") == FramedMulti()
        assert fm("{1}+{2}").outer_pow(2) == FramedMulti()

    def test_outer_pow_negative_raises(self):
        with pytest.raises(AlgebraError, match="negative exponent"):
            fm("{1}").outer_pow(-1)

    def test_pow(self):
        x = fm("1+{1}")
        assert x.pow(2) == fm("2+2{1}")
        assert x.pow(0) == 1.0
        assert x ** 3 == x * x * x

    def test_large_product_goes_through_matrices(self):
        frame = IndexSet([1, 2, 3])
        x = FramedMulti({IndexSet.from_subset_value(v, frame): float(v + 1) for v in range(8)})
        y = FramedMulti({IndexSet.from_subset_value(v, frame): 0.5 * (v % 3) - 1 for v in range(8)})
        direct = x * y
        with tuning_override(products_size_threshold=1):
            via_matrix = x * y
        assert (direct - via_matrix).max_abs() < 1e-12

    def test_division(self):
        x = fm("{1}") / fm("{2}")
        assert (x - fm("{1,2}")).max_abs() < 1e-12
        assert (fm("4{1}") / 2) == fm("2{1}")

    def test_division_by_zero_scalar_is_infinite(self):
        x = fm("2{1}") / 0
        assert x[IndexSet([1])] == math.inf

    def test_inverse_of_singular_is_nan(self):
        assert fm("{-1}+{1}").inv().isnan()


# ── Projections and involutions ───────────────────────────────────────

class TestProjections:

    x = "1+{1}+{1,2}+{1,2,3}"

    def test_involutions(self):
        x = fm(self.x)
        assert x.involute() == fm("1-{1}+{1,2}-{1,2,3}")
        assert x.reverse() == fm("1+{1}-{1,2}-{1,2,3}")
        assert ~x == x.reverse()
        assert x.conj() == fm("1-{1}-{1,2}+{1,2,3}")

    def test_grade_parts(self):
        x = fm(self.x)
        assert x(1) == fm("{1}")
        assert x(2) == fm("{1,2}")
        assert x(100) == FramedMulti()
        assert x(-1) == FramedMulti()
        assert x.even() + x.odd() == x

    def test_quad_and_norm(self):
        x = fm("2+3{1}+{-1}")
        assert x.quad() == 4 + 9 - 1
        assert x.norm() == 4 + 9 + 1
        assert x.max_abs() == 3

    def test_truncated(self):
        assert fm("1+1e-20{1}").truncated() == 1.0
        assert fm("1+0.25{1}").truncated(0.5) == 1.0
        assert FramedMulti().truncated() == FramedMulti()

    def test_vector_part(self):
        x = fm("{1}+3{3}+5{1,2}")
        assert x.vector_part(IndexSet([1, 2, 3])) == [1.0, 0.0, 3.0]
        assert x.vector_part() == [1.0, 0.0, 3.0]


# ── Folding and centring ──────────────────────────────────────────────

class TestCentring:

    def test_fold_unfold(self):
        frame = IndexSet([-4, 2, 7])
        x = fm("1+{-4,7}-2{2}")
        folded = x.fold(frame)
        assert folded == fm("1+{-1,2}-2{1}")
        assert folded.unfold(frame) == x

    def test_qp1_pm1_on_split_plane(self):
        value, p, q = fm("{-1}").centre_qp1_pm1(1, 1)
        assert (p, q) == (2, 0)
        assert value == fm("{1,2}")
        value, p, q = fm("{1}").centre_qp1_pm1(1, 1)
        assert value == fm("{2}")

    def test_qp1_pm1_is_an_involution(self):
        x = fm("1+2{-1}-{1}+3{-1,1}+0.5{-2,-1,1}")
        there, p, q = x.centre_qp1_pm1(1, 2)
        assert (p, q) == (3, 0)
        back, p, q = there.centre_qp1_pm1(p, q)
        assert (p, q) == (1, 2)
        assert back == x

    def test_four_shifts_are_inverse(self):
        x = fm("1+{-4}-2{-3,-1}+{-4,-3,-2,-1}+0.5{-2,1}")
        there, p, q = x.centre_pp4_qm4(1, 4)
        assert (p, q) == (5, 0)
        back, p, q = there.centre_pm4_qp4(p, q)
        assert (p, q) == (1, 4)
        assert back == x

    def test_centring_preserves_products(self):
        a, b = fm("{-1}+2{1}"), fm("3{-2}-{-1,1}")
        lhs, _, _ = (a * b).centre_pp4_qm4(1, 4)
        ca, _, _ = a.centre_pp4_qm4(1, 4)
        cb, _, _ = b.centre_pp4_qm4(1, 4)
        assert lhs == ca * cb


# ── Construction ──────────────────────────────────────────────────────

class TestConstruction:

    def test_from_term_and_dict(self):
        assert FramedMulti.term(IndexSet([1]), 2.0) == fm("2{1}")
        assert FramedMulti({IndexSet(): 1.0, IndexSet([2]): 0.0}) == 1.0

    def test_unsupported_value_raises(self):
        with pytest.raises(TypeError):
            FramedMulti(object())

    def test_random_fills_frame(self):
        frame = IndexSet([-1, 1, 2])
        gen = torch.Generator().manual_seed(0)
        x = FramedMulti.random(frame, generator=gen)
        assert x.frame.is_subset(frame)
        assert len(x) == 8

    def test_random_fill_zero_is_empty(self):
        assert len(FramedMulti.random(IndexSet([1, 2]), fill=0.0)) == 0

    def test_round_trip_through_matrix(self):
        from cliffmat.matrix_multi import MatrixMulti
        x = fm("1-{1}+0.5{1,2}")
        assert FramedMulti(MatrixMulti(x)) == x
