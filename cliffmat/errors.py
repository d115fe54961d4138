# cliffmat: Matrix Representations of Clifford Algebras
# Copyright (C) 2026 Eunkyum Kim <nemonanconcode@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# This project is fully open-source, including for commercial use.
# We believe Geometric Algebra is the future of AI, and we want
# the industry to build upon this "unbending" paradigm.

"""Exceptions raised by cliffmat."""


class AlgebraError(ValueError):
    """A domain or precondition violation in a Clifford algebra operation.

    The message names the failing operation, e.g.
    ``"MatrixMulti(value, frame): cannot initialize with value outside of frame"``.
    """

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation}: {reason}")
