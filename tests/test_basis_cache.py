"""Basis element cache: sharing, folding keys, size limit and thread safety."""

import threading

import torch

import cliffmat.basis as basis
from cliffmat.basis import basis_element, basis_table, reset_basis_table
from cliffmat.config import tuning_override
from cliffmat.index_set import IndexSet


def counting_builder(monkeypatch):
    calls = []
    original = basis.build_basis_element

    def build(folded_set, p, q):
        calls.append((folded_set, p, q))
        return original(folded_set, p, q)

    monkeypatch.setattr(basis, "build_basis_element", build)
    return calls


class TestBasisCache:

    def test_repeat_lookup_returns_same_matrix(self):
        ist, frame = IndexSet([1, 2]), IndexSet([1, 2, 3])
        first = basis_element(ist, frame)
        assert basis_element(ist, frame) is first
        assert len(basis_table()) == 1

    def test_built_once(self, monkeypatch):
        calls = counting_builder(monkeypatch)
        ist, frame = IndexSet([-1, 2]), IndexSet([-1, 1, 2])
        first = basis_element(ist, frame).clone()
        second = basis_element(ist, frame)
        assert len(calls) == 1
        assert torch.equal(first, second)

    def test_large_frames_bypass_cache(self, monkeypatch):
        calls = counting_builder(monkeypatch)
        ist, frame = IndexSet([1]), IndexSet([1, 2])
        with tuning_override(basis_max_count=1):
            basis_element(ist, frame)
            basis_element(ist, frame)
        assert len(calls) == 2
        assert len(basis_table()) == 0

    def test_folded_keys_are_shared(self, monkeypatch):
        calls = counting_builder(monkeypatch)
        a = basis_element(IndexSet([3]), IndexSet([3, 5]))
        b = basis_element(IndexSet([1]), IndexSet([1, 2]))
        assert a is b
        assert len(calls) == 1

    def test_reset_empties_table(self):
        basis_element(IndexSet([1]), IndexSet([1]))
        table = basis_table()
        assert len(table) == 1
        reset_basis_table()
        assert basis_table() is not table
        assert len(basis_table()) == 0

    def test_concurrent_lookups_agree(self):
        frame = IndexSet([-2, -1, 1, 2, 3])
        sets = [IndexSet.from_subset_value(v, frame) for v in range(1 << frame.count())]
        results = [[] for _ in range(4)]

        def worker(out):
            for ist in sets:
                out.append(basis_element(ist, frame))

        threads = [threading.Thread(target=worker, args=(out,)) for out in results]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(basis_table()) == len(sets)
        for out in results[1:]:
            assert all(x is y for x, y in zip(out, results[0]))


def test_first_use_from_threads_creates_one_table():
    from cliffmat.generators import generator_table

    barrier = threading.Barrier(8)
    basis_tables, generator_tables = [], []

    def worker():
        barrier.wait()
        basis_tables.append(basis_table())
        generator_tables.append(generator_table())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({id(t) for t in basis_tables}) == 1
    assert len({id(t) for t in generator_tables}) == 1
