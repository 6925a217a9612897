"""
Error taxonomy for GF(2) algebra.

- SingularMatrixError: inversion found no pivot in some column.
- DimensionMismatchError: operand shapes are incompatible (always a caller precondition).
- RandomSourceError: rejection sampling ran far past its expected trial count.
"""


class SingularMatrixError(ValueError):
    """Raised when a matrix without full rank is inverted."""


class DimensionMismatchError(ValueError):
    """Raised when vectors, matrices or functions have incompatible shapes."""


class RandomSourceError(RuntimeError):
    """Raised when sampling an invertible matrix exhausts its attempt bound."""
