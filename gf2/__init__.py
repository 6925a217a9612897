"""GF(2) algebra: bit vectors, bit matrices and multivariate polynomial functions."""

from .errors import (
    SingularMatrixError,
    DimensionMismatchError,
    RandomSourceError,
)
from .bitvectors import (
    BitVector,
    concatenate,
    marshal_bitvector,
    unmarshal_bitvector,
)
from .matrices import (
    BitMatrix,
    square_matrix_from_vector,
    vector_from_square_matrix,
    vector_from_matrix,
)
from .polynomials import (
    PolynomialFunction,
    ParameterizedPolynomialFunction,
    compose,
    right_multiply,
    left_multiply,
    two_sided_multiply,
)
from . import functions

__all__ = [
    "SingularMatrixError",
    "DimensionMismatchError",
    "RandomSourceError",
    "BitVector",
    "concatenate",
    "marshal_bitvector",
    "unmarshal_bitvector",
    "BitMatrix",
    "square_matrix_from_vector",
    "vector_from_square_matrix",
    "vector_from_matrix",
    "PolynomialFunction",
    "ParameterizedPolynomialFunction",
    "compose",
    "right_multiply",
    "left_multiply",
    "two_sided_multiply",
    "functions",
]
