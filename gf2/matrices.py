"""
Bit matrices over GF(2).

- Products are integer matrix products reduced mod 2 (XOR of ANDs).
- Inversion is Gauss-Jordan elimination on [M | I]; row operations stay sequential.
- Random invertible matrices are rejection-sampled; about 3.46 draws are expected
  for any size, so a long run of singular draws points at the random source.
- Square matrices reshape losslessly to/from vectors of length n*n (row-major).
"""

import logging
import math
from typing import Iterable, List, Union

import numpy as np

from .bitvectors import BitVector, random_bits
from .errors import DimensionMismatchError, RandomSourceError, SingularMatrixError

logger = logging.getLogger(__name__)

MAX_SAMPLING_ATTEMPTS = 1000


def gf2_matmul(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """Product of 0/1 arrays over GF(2). Broadcasts like numpy.matmul."""
    product = np.matmul(lhs.astype(np.int64), rhs.astype(np.int64))
    return (product & 1).astype(np.uint8)


def _eliminate(augmented: np.ndarray, columns: int) -> int:
    """
    Reduce `augmented` in place to reduced row echelon form over its first `columns`
    columns. Returns the rank.
    """
    rows = augmented.shape[0]
    rank = 0
    for col in range(columns):
        if rank == rows:
            break
        candidates = np.flatnonzero(augmented[rank:, col])
        if len(candidates) == 0:
            continue
        pivot = rank + candidates[0]
        if pivot != rank:
            augmented[[rank, pivot]] = augmented[[pivot, rank]]
        mask = augmented[:, col].astype(bool)
        mask[rank] = False
        augmented[mask] ^= augmented[rank]
        rank += 1
    return rank


class BitMatrix:
    """Immutable rows x cols matrix over GF(2)."""

    __slots__ = ("_bits",)

    def __init__(self, rows: Union[Iterable[Iterable[int]], np.ndarray]):
        if isinstance(rows, np.ndarray):
            array = rows
        else:
            array = np.array([r.bits if isinstance(r, BitVector) else list(r) for r in rows])
        if array.ndim != 2:
            raise DimensionMismatchError("BitMatrix requires a two-dimensional array of bits")
        bits = (array != 0).astype(np.uint8)
        bits.flags.writeable = False
        self._bits = bits

    @classmethod
    def _wrap(cls, bits: np.ndarray) -> "BitMatrix":
        matrix = cls.__new__(cls)
        bits.flags.writeable = False
        matrix._bits = bits
        return matrix

    # ------------------------------------------------------------------ factories

    @classmethod
    def identity(cls, n: int) -> "BitMatrix":
        return cls._wrap(np.eye(n, dtype=np.uint8))

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "BitMatrix":
        return cls._wrap(np.zeros((rows, cols), dtype=np.uint8))

    @classmethod
    def random(cls, rows: int, cols: int) -> "BitMatrix":
        return cls._wrap(random_bits(rows * cols).reshape(rows, cols).copy())

    @classmethod
    def random_invertible(cls, n: int, max_attempts: int = MAX_SAMPLING_ATTEMPTS) -> "BitMatrix":
        """
        Rejection-sample a uniformly random invertible n x n matrix.
        Raises RandomSourceError after max_attempts singular draws.
        """
        for attempt in range(1, max_attempts + 1):
            candidate = cls.random(n, n)
            if candidate.is_invertible():
                logger.debug("Sampled invertible %dx%d matrix after %d attempt(s)", n, n, attempt)
                return candidate
        raise RandomSourceError(
            f"No invertible {n}x{n} matrix after {max_attempts} attempts; check the random source"
        )

    @classmethod
    def from_rows(cls, rows: Iterable[BitVector]) -> "BitMatrix":
        rows = list(rows)
        if not rows:
            return cls.zeros(0, 0)
        widths = {len(r) for r in rows}
        if len(widths) != 1:
            raise DimensionMismatchError(f"Rows have differing lengths: {sorted(widths)}")
        return cls._wrap(np.stack([r.bits for r in rows]).astype(np.uint8))

    # ------------------------------------------------------------------ accessors

    @property
    def bits(self) -> np.ndarray:
        """Read-only 0/1 uint8 array of shape (rows, cols)."""
        return self._bits

    def rows(self) -> int:
        return self._bits.shape[0]

    def cols(self) -> int:
        return self._bits.shape[1]

    @property
    def shape(self):
        return self._bits.shape

    def row(self, index: int) -> BitVector:
        return BitVector(self._bits[index])

    def get_rows(self) -> List[BitVector]:
        return [BitVector(r) for r in self._bits]

    def get(self, row: int, col: int) -> int:
        return int(self._bits[row, col])

    def is_square(self) -> bool:
        return self.rows() == self.cols()

    # ------------------------------------------------------------------ algebra

    def multiply(self, rhs: "BitMatrix") -> "BitMatrix":
        if self.cols() != rhs.rows():
            raise DimensionMismatchError(
                f"Cannot multiply {self.rows()}x{self.cols()} by {rhs.rows()}x{rhs.cols()}"
            )
        return BitMatrix._wrap(gf2_matmul(self._bits, rhs._bits))

    def __matmul__(self, rhs: "BitMatrix") -> "BitMatrix":
        return self.multiply(rhs)

    def multiply_vector(self, vector: BitVector) -> BitVector:
        """Matrix-vector product M * v."""
        if self.cols() != len(vector):
            raise DimensionMismatchError(
                f"Cannot multiply {self.rows()}x{self.cols()} matrix by vector of length {len(vector)}"
            )
        return BitVector._wrap(gf2_matmul(self._bits, vector.bits))

    def add(self, other: "BitMatrix") -> "BitMatrix":
        if self.shape != other.shape:
            raise DimensionMismatchError(f"Shape mismatch: {self.shape} vs {other.shape}")
        return BitMatrix._wrap(self._bits ^ other._bits)

    def transpose(self) -> "BitMatrix":
        return BitMatrix._wrap(np.ascontiguousarray(self._bits.T))

    def rank(self) -> int:
        scratch = self._bits.copy()
        return _eliminate(scratch, self.cols())

    def is_invertible(self) -> bool:
        return self.is_square() and self.rank() == self.rows()

    def inverse(self) -> "BitMatrix":
        """
        Gauss-Jordan elimination with an adjoined identity.
        Raises SingularMatrixError when some column has no pivot.
        """
        if not self.is_square():
            raise DimensionMismatchError(f"Cannot invert non-square {self.rows()}x{self.cols()} matrix")
        n = self.rows()
        augmented = np.hstack([self._bits, np.eye(n, dtype=np.uint8)])
        for col in range(n):
            candidates = np.flatnonzero(augmented[col:, col])
            if len(candidates) == 0:
                raise SingularMatrixError(f"Matrix is singular: no pivot in column {col}")
            pivot = col + candidates[0]
            if pivot != col:
                augmented[[col, pivot]] = augmented[[pivot, col]]
            mask = augmented[:, col].astype(bool)
            mask[col] = False
            augmented[mask] ^= augmented[col]
        return BitMatrix._wrap(np.ascontiguousarray(augmented[:, n:]))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitMatrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._bits, other._bits))

    def __hash__(self) -> int:
        return hash((self.shape, np.packbits(self._bits).tobytes()))

    def __repr__(self) -> str:
        rows = ", ".join("".join(str(b) for b in r) for r in self._bits)
        return f"BitMatrix([{rows}])"


def square_root_length(length: int) -> int:
    """Side of the square matrix a vector of `length` bits reshapes into."""
    side = math.isqrt(length)
    if side * side != length:
        raise DimensionMismatchError(f"Vector length {length} is not a perfect square")
    return side


def square_matrix_from_vector(vector: BitVector) -> BitMatrix:
    """Reinterpret a length n*n vector as an n x n matrix, row-major."""
    side = square_root_length(len(vector))
    return BitMatrix._wrap(vector.bits.reshape(side, side).copy())


def vector_from_matrix(matrix: BitMatrix) -> BitVector:
    """Flatten any matrix row-major."""
    return BitVector._wrap(matrix.bits.reshape(-1).copy())


def vector_from_square_matrix(matrix: BitMatrix) -> BitVector:
    if not matrix.is_square():
        raise DimensionMismatchError(f"Matrix {matrix.rows()}x{matrix.cols()} is not square")
    return vector_from_matrix(matrix)
