"""
GF(2) matrix tests: products, inversion, invertible sampling and vector reshaping.
"""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from gf2 import (
    BitMatrix,
    BitVector,
    DimensionMismatchError,
    RandomSourceError,
    SingularMatrixError,
    square_matrix_from_vector,
    vector_from_matrix,
    vector_from_square_matrix,
)


def test_known_product():
    a = BitMatrix([[1, 1], [0, 1]])
    b = BitMatrix([[1, 0], [1, 1]])
    assert a @ b == BitMatrix([[0, 1], [1, 1]])


def test_multiply_dimension_mismatch():
    with pytest.raises(DimensionMismatchError):
        BitMatrix.random(3, 4).multiply(BitMatrix.random(3, 4))


def test_multiply_vector():
    m = BitMatrix([[1, 1, 0], [0, 1, 1]])
    assert m.multiply_vector(BitVector([1, 1, 1])) == BitVector([0, 0])
    with pytest.raises(DimensionMismatchError):
        m.multiply_vector(BitVector([1, 1]))


@pytest.mark.parametrize("n", [1, 2, 8, 33, 64])
def test_inverse_of_random_invertible(n):
    m = BitMatrix.random_invertible(n)
    inverse = m.inverse()
    assert m @ inverse == BitMatrix.identity(n)
    assert inverse @ m == BitMatrix.identity(n)


def test_inverse_leaves_input_untouched():
    m = BitMatrix.random_invertible(8)
    before = m.bits.copy()
    m.inverse()
    assert (m.bits == before).all()


def test_singular_inverse_raises():
    with pytest.raises(SingularMatrixError):
        BitMatrix.zeros(4, 4).inverse()
    with pytest.raises(SingularMatrixError):
        BitMatrix([[1, 0, 1], [1, 0, 1], [0, 1, 0]]).inverse()


def test_non_square_inverse_raises():
    with pytest.raises(DimensionMismatchError):
        BitMatrix.random(2, 3).inverse()


def test_rank_and_invertibility():
    assert BitMatrix.identity(5).rank() == 5
    assert BitMatrix.zeros(3, 5).rank() == 0
    singular = BitMatrix([[1, 1], [1, 1]])
    assert singular.rank() == 1
    assert not singular.is_invertible()
    assert not BitMatrix.random(2, 3).is_invertible()


def test_random_invertible_gives_up_on_broken_source(monkeypatch):
    monkeypatch.setattr(BitMatrix, "random", classmethod(lambda cls, rows, cols: cls.zeros(rows, cols)))
    with pytest.raises(RandomSourceError):
        BitMatrix.random_invertible(4, max_attempts=10)


def test_square_reshape_roundtrip():
    v = BitVector.random(64)
    m = square_matrix_from_vector(v)
    assert m.shape == (8, 8)
    assert m.row(1) == v.part(8, 16)
    assert vector_from_square_matrix(m) == v


def test_reshape_requires_perfect_square():
    with pytest.raises(DimensionMismatchError):
        square_matrix_from_vector(BitVector.random(10))
    with pytest.raises(DimensionMismatchError):
        vector_from_square_matrix(BitMatrix.random(2, 3))
    assert len(vector_from_matrix(BitMatrix.random(2, 3))) == 6


def test_transpose_and_add():
    m = BitMatrix([[1, 0, 1], [0, 0, 1]])
    assert m.transpose() == BitMatrix([[1, 0], [0, 0], [1, 1]])
    assert m.add(m) == BitMatrix.zeros(2, 3)


def test_from_rows_rejects_ragged_rows():
    assert BitMatrix.from_rows([BitVector([1, 0]), BitVector([0, 1])]) == BitMatrix.identity(2)
    with pytest.raises(DimensionMismatchError):
        BitMatrix.from_rows([BitVector([1, 0]), BitVector([0, 1, 1])])
