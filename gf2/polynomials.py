"""
Multivariate polynomial functions over GF(2) in the contributions model.

A function holds one row per monomial (the input positions whose AND forms the term)
and one contribution row per monomial (the output bits the term flips when it is 1):

    output(x)[j] = XOR over monomials m with m(x) = 1 of contribution[m][j]

Two variants share one implementation:
- PolynomialFunction ("plain"): monomials range over the input.
- ParameterizedPolynomialFunction ("parameterized"): named pipeline functions are
  evaluated on the input first and their outputs appended, in mapping order; the
  monomials range over that extended input.

Operations never mutate a function. Transforms rebuild whichever variant they were
given with dataclasses.replace, so pipelines are carried through unchanged.

Composition substitutes the inner function's outputs for the outer function's
variables and expands products of sums over GF(2). The resulting monomial count can
reach the product of both monomial counts; callers bound degrees upstream.
"""

import dataclasses
import logging
from types import MappingProxyType
from typing import ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .bitvectors import BitVector
from .errors import DimensionMismatchError
from .matrices import BitMatrix, gf2_matmul, square_root_length

logger = logging.getLogger(__name__)

# Composition results above this many monomials are logged as a warning.
COMPOSITION_WARNING_MONOMIALS = 250_000

BitRows = Union[np.ndarray, Sequence[BitVector]]


def _as_bit_rows(rows: BitRows, width: int, label: str) -> np.ndarray:
    """Copy rows into a read-only (count, width) 0/1 uint8 array."""
    if isinstance(rows, np.ndarray):
        array = rows
    elif len(rows) == 0:
        array = np.zeros((0, width), dtype=np.uint8)
    else:
        array = np.stack([r.bits if isinstance(r, BitVector) else np.asarray(r) for r in rows])
    if array.ndim != 2 or array.shape[1] != width:
        raise DimensionMismatchError(f"Each {label} must have length {width}, got shape {array.shape}")
    bits = (array != 0).astype(np.uint8)
    bits.flags.writeable = False
    return bits


@dataclasses.dataclass(frozen=True, eq=False, repr=False)
class PolynomialFunction:
    """Plain polynomial function: monomials over the input bits."""

    input_length: int
    output_length: int
    monomials: BitRows
    contributions: BitRows

    kind: ClassVar[str] = "plain"

    def __post_init__(self):
        if self.input_length < 0 or self.output_length < 0:
            raise DimensionMismatchError("Input and output lengths must be non-negative")
        monomials = _as_bit_rows(self.monomials, self.extended_input_length, "monomial")
        contributions = _as_bit_rows(self.contributions, self.output_length, "contribution")
        if len(monomials) != len(contributions):
            raise DimensionMismatchError(
                f"{len(monomials)} monomials but {len(contributions)} contributions"
            )
        object.__setattr__(self, "monomials", monomials)
        object.__setattr__(self, "contributions", contributions)

    @property
    def extended_input_length(self) -> int:
        """Width of the monomials."""
        return self.input_length

    def get_pipelines(self) -> Mapping[str, "PolynomialFunction"]:
        return MappingProxyType({})

    def get_monomials(self) -> List[BitVector]:
        return [BitVector(m) for m in self.monomials]

    def get_contributions(self) -> List[BitVector]:
        return [BitVector(c) for c in self.contributions]

    def monomial_count(self) -> int:
        return len(self.monomials)

    def degree(self) -> int:
        if len(self.monomials) == 0:
            return 0
        return int(self.monomials.sum(axis=1).max())

    # ------------------------------------------------------------------ evaluation

    def _extend_input(self, bits: np.ndarray) -> np.ndarray:
        return bits

    def _evaluate(self, bits: np.ndarray) -> np.ndarray:
        extended = self._extend_input(bits)
        active = np.all(self.monomials <= extended, axis=1)
        return np.bitwise_xor.reduce(self.contributions[active], axis=0)

    def apply(self, lhs: BitVector, rhs: Optional[BitVector] = None) -> BitVector:
        """
        Evaluate at lhs, or at lhs || rhs when both halves are given
        (each half must be input_length / 2 bits).
        """
        if rhs is not None:
            if len(lhs) != len(rhs) or len(lhs) + len(rhs) != self.input_length:
                raise DimensionMismatchError(
                    f"Halves of length {len(lhs)} and {len(rhs)} do not fit input length {self.input_length}"
                )
            bits = np.concatenate([lhs.bits, rhs.bits])
        else:
            if len(lhs) != self.input_length:
                raise DimensionMismatchError(
                    f"Input of length {len(lhs)} does not fit input length {self.input_length}"
                )
            bits = lhs.bits
        return BitVector._wrap(self._evaluate(bits))

    def __call__(self, lhs: BitVector, rhs: Optional[BitVector] = None) -> BitVector:
        return self.apply(lhs, rhs)

    def compose(self, inner: "PolynomialFunction") -> "PolynomialFunction":
        """self ∘ inner: apply inner first, then self."""
        return compose(self, inner)

    # ------------------------------------------------------------------ value semantics

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PolynomialFunction):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.input_length == other.input_length
            and self.output_length == other.output_length
            and np.array_equal(self.monomials, other.monomials)
            and np.array_equal(self.contributions, other.contributions)
            and dict(self.get_pipelines()) == dict(other.get_pipelines())
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(input_length={self.input_length}, "
            f"output_length={self.output_length}, monomials={len(self.monomials)})"
        )


@dataclasses.dataclass(frozen=True, eq=False, repr=False)
class ParameterizedPolynomialFunction(PolynomialFunction):
    """Polynomial function whose input is extended by named pipeline outputs."""

    pipelines: Mapping[str, PolynomialFunction]

    kind: ClassVar[str] = "parameterized"

    def __post_init__(self):
        pipelines = dict(self.pipelines)
        for name, pipeline in pipelines.items():
            if pipeline.input_length != self.input_length:
                raise DimensionMismatchError(
                    f"Pipeline '{name}' takes {pipeline.input_length} bits, function takes {self.input_length}"
                )
        object.__setattr__(self, "pipelines", MappingProxyType(pipelines))
        super().__post_init__()

    @property
    def extended_input_length(self) -> int:
        return self.input_length + sum(p.output_length for p in self.pipelines.values())

    def get_pipelines(self) -> Mapping[str, PolynomialFunction]:
        return self.pipelines

    def _extend_input(self, bits: np.ndarray) -> np.ndarray:
        return np.concatenate([bits] + [p._evaluate(bits) for p in self.pipelines.values()])


# ---------------------------------------------------------------------- collection


def _collect(monomials: np.ndarray, contributions: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Merge equal monomials by XOR of their contributions; drop cancelled terms."""
    if len(monomials) == 0:
        return monomials, contributions
    unique, inverse = np.unique(monomials, axis=0, return_inverse=True)
    totals = np.zeros((len(unique), contributions.shape[1]), dtype=np.int64)
    np.add.at(totals, inverse.reshape(-1), contributions)
    totals &= 1
    keep = totals.any(axis=1)
    return unique[keep].astype(np.uint8), totals[keep].astype(np.uint8)


def _odd_rows(rows: np.ndarray) -> np.ndarray:
    """Rows occurring an odd number of times (x + x = 0 over GF(2))."""
    if len(rows) == 0:
        return rows
    unique, counts = np.unique(rows, axis=0, return_counts=True)
    return unique[(counts & 1).astype(bool)]


def _exact_tensordot(lhs: np.ndarray, rhs: np.ndarray, axes) -> np.ndarray:
    """tensordot reduced mod 2; float64 products are exact below 2**53 summands."""
    product = np.tensordot(lhs.astype(np.float64), rhs.astype(np.float64), axes=axes)
    return (product.astype(np.int64) & 1).astype(np.uint8)


# ---------------------------------------------------------------------- composition


def _compose_quadratic(
    outer_monomials: np.ndarray,
    outer_contributions: np.ndarray,
    inner_monomials: np.ndarray,
    inner_contributions: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Bilinear expansion for outer functions of degree <= 2.

    With x_i = sum_a A[i, a] m_a (A = inner contributions transposed), the quadratic
    part sum_{i<j} Q[i, j] x_i x_j becomes sum_{a, b} (A^T Q A)[a, b] m_a m_b and the
    linear part sum_i L[i] x_i becomes sum_a (A^T L)[a] m_a. Using m_a m_a = m_a.
    """
    variables = outer_monomials.shape[1]
    outputs = outer_contributions.shape[1]
    width = inner_monomials.shape[1]
    terms = len(inner_monomials)
    degrees = outer_monomials.sum(axis=1)
    incidence = inner_contributions.T

    constant = np.bitwise_xor.reduce(outer_contributions[degrees == 0], axis=0)

    linear = np.zeros((variables, outputs), dtype=np.int64)
    if np.any(degrees == 1):
        singles = np.nonzero(outer_monomials[degrees == 1])[1]
        np.add.at(linear, singles, outer_contributions[degrees == 1])

    quadratic = np.zeros((variables, variables, outputs), dtype=np.int64)
    if np.any(degrees == 2):
        pairs = np.nonzero(outer_monomials[degrees == 2])[1].reshape(-1, 2)
        np.add.at(quadratic, (pairs[:, 0], pairs[:, 1]), outer_contributions[degrees == 2])

    per_term = _exact_tensordot(incidence, linear & 1, axes=([0], [0]))
    left = _exact_tensordot(incidence, quadratic & 1, axes=([0], [0]))
    # products[a, b] = sum_{i, j} A[i, a] Q[i, j] A[j, b]
    products = _exact_tensordot(left, incidence, axes=([1], [0])).transpose(0, 2, 1)

    first, second = np.triu_indices(terms, k=1)
    cross = products[first, second] ^ products[second, first]
    nonzero = cross.any(axis=1)
    first, second, cross = first[nonzero], second[nonzero], cross[nonzero]
    diagonal = products[np.arange(terms), np.arange(terms)] ^ per_term

    monomials = np.concatenate(
        [
            inner_monomials[first] | inner_monomials[second],
            inner_monomials,
            np.zeros((1, width), dtype=np.uint8),
        ]
    )
    contributions = np.concatenate([cross, diagonal, constant.reshape(1, outputs).astype(np.uint8)])
    return _collect(monomials, contributions)


def _compose_generic(
    outer_monomials: np.ndarray,
    outer_contributions: np.ndarray,
    inner_monomials: np.ndarray,
    inner_contributions: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Expand each outer monomial as a product of inner output polynomials."""
    width = inner_monomials.shape[1]
    outputs = outer_contributions.shape[1]
    supports = [inner_monomials[inner_contributions[:, i].astype(bool)] for i in range(outer_monomials.shape[1])]
    monomial_blocks = [np.zeros((0, width), dtype=np.uint8)]
    contribution_blocks = [np.zeros((0, outputs), dtype=np.uint8)]
    for monomial, contribution in zip(outer_monomials, outer_contributions):
        product = np.zeros((1, width), dtype=np.uint8)
        for variable in np.flatnonzero(monomial):
            expanded = product[:, None, :] | supports[variable][None, :, :]
            product = _odd_rows(expanded.reshape(-1, width))
            if len(product) == 0:
                break
        monomial_blocks.append(product)
        contribution_blocks.append(np.broadcast_to(contribution, (len(product), outputs)))
    return _collect(np.concatenate(monomial_blocks), np.concatenate(contribution_blocks))


def _pass_through(monomials: np.ndarray, contributions: np.ndarray, extra: int) -> Tuple[np.ndarray, np.ndarray]:
    """Append `extra` identity variables to a function's inputs and outputs."""
    terms, width = monomials.shape
    outputs = contributions.shape[1]
    identity = np.eye(extra, dtype=np.uint8)
    monomials = np.block(
        [[monomials, np.zeros((terms, extra), np.uint8)], [np.zeros((extra, width), np.uint8), identity]]
    )
    contributions = np.block(
        [[contributions, np.zeros((terms, extra), np.uint8)], [np.zeros((extra, outputs), np.uint8), identity]]
    )
    return monomials, contributions


def compose(outer: PolynomialFunction, inner: PolynomialFunction) -> PolynomialFunction:
    """
    outer ∘ inner. Plain ∘ plain is plain. Otherwise the result is parameterized with
    inner's pipelines followed by each of outer's pipelines composed with inner.
    """
    if outer.input_length != inner.output_length:
        raise DimensionMismatchError(
            f"Cannot compose function taking {outer.input_length} bits with one producing {inner.output_length}"
        )
    inner_monomials, inner_contributions = inner.monomials, inner.contributions
    extra = outer.extended_input_length - outer.input_length
    if extra:
        inner_monomials, inner_contributions = _pass_through(inner_monomials, inner_contributions, extra)

    logger.debug(
        "Composing %d outer monomials (degree %d) with %d inner monomials",
        outer.monomial_count(),
        outer.degree(),
        len(inner_monomials),
    )
    if outer.degree() <= 2:
        monomials, contributions = _compose_quadratic(
            outer.monomials, outer.contributions, inner_monomials, inner_contributions
        )
    else:
        monomials, contributions = _compose_generic(
            outer.monomials, outer.contributions, inner_monomials, inner_contributions
        )
    if len(monomials) > COMPOSITION_WARNING_MONOMIALS:
        logger.warning("Composition produced %d monomials", len(monomials))

    pipelines: Dict[str, PolynomialFunction] = dict(inner.get_pipelines())
    for name, pipeline in outer.get_pipelines().items():
        if name in pipelines:
            raise ValueError(f"Pipeline name collision during composition: '{name}'")
        pipelines[name] = compose(pipeline, inner)

    if pipelines:
        return ParameterizedPolynomialFunction(
            inner.input_length, outer.output_length, monomials, contributions, pipelines
        )
    return PolynomialFunction(inner.input_length, outer.output_length, monomials, contributions)


# ---------------------------------------------------------------------- linear transforms


def _transform(
    f: PolynomialFunction, lhs: Optional[BitMatrix] = None, rhs: Optional[BitMatrix] = None
) -> PolynomialFunction:
    """Replace each contribution c with vec(lhs · sq(c) · rhs); monomials untouched."""
    side = square_root_length(f.output_length)
    blocks = f.contributions.reshape(len(f.contributions), side, side)
    if rhs is not None:
        if rhs.rows() != side:
            raise DimensionMismatchError(
                f"Contributions reshape to {side}x{side}; cannot right multiply by {rhs.rows()}x{rhs.cols()}"
            )
        blocks = gf2_matmul(blocks, rhs.bits)
    if lhs is not None:
        if lhs.cols() != blocks.shape[1]:
            raise DimensionMismatchError(
                f"Contributions reshape to {blocks.shape[1]}x{blocks.shape[2]}; "
                f"cannot left multiply by {lhs.rows()}x{lhs.cols()}"
            )
        blocks = gf2_matmul(lhs.bits, blocks)
    flattened = blocks.reshape(len(blocks), blocks.shape[1] * blocks.shape[2])
    return dataclasses.replace(f, output_length=flattened.shape[1], contributions=flattened)


def right_multiply(f: PolynomialFunction, rhs: BitMatrix) -> PolynomialFunction:
    return _transform(f, rhs=rhs)


def left_multiply(f: PolynomialFunction, lhs: BitMatrix) -> PolynomialFunction:
    return _transform(f, lhs=lhs)


def two_sided_multiply(f: PolynomialFunction, lhs: BitMatrix, rhs: BitMatrix) -> PolynomialFunction:
    return _transform(f, lhs=lhs, rhs=rhs)
