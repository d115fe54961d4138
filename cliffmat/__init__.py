# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Clifford algebra multivectors in sparse and dense matrix form."""

from cliffmat.config import Tuning, get_tuning, load_tuning, set_tuning, tuning_override
from cliffmat.errors import AlgebraError
from cliffmat.index_set import IndexSet
from cliffmat.framed_multi import FramedMulti
from cliffmat.matrix_multi import MatrixMulti, folded_dim, offset_level

__version__ = "0.1.0"

__all__ = [
    "AlgebraError",
    "FramedMulti",
    "IndexSet",
    "MatrixMulti",
    "Tuning",
    "folded_dim",
    "get_tuning",
    "load_tuning",
    "offset_level",
    "set_tuning",
    "tuning_override",
]
