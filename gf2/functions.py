"""
Factories for common polynomial functions: random quadratics, linear and affine maps,
identity, mirrored (two independent halves) and truncated functions.
"""

import dataclasses
import secrets

import numpy as np

from .bitvectors import BitVector, random_bits
from .errors import DimensionMismatchError
from .matrices import BitMatrix
from .polynomials import PolynomialFunction, _collect


def dense_random_multivariate_quadratic(input_length: int, output_length: int) -> PolynomialFunction:
    """Every monomial of degree 1 and 2 over the input, each with a random contribution."""
    first, second = np.triu_indices(input_length, k=1)
    pairs = np.zeros((len(first), input_length), dtype=np.uint8)
    rows = np.arange(len(first))
    pairs[rows, first] = 1
    pairs[rows, second] = 1
    monomials = np.concatenate([np.eye(input_length, dtype=np.uint8), pairs])
    contributions = random_bits(len(monomials) * output_length).reshape(len(monomials), output_length)
    return PolynomialFunction(input_length, output_length, monomials, contributions)


def random_function(
    input_length: int, output_length: int, monomial_count: int, max_degree: int = 2
) -> PolynomialFunction:
    """Sparse random function: monomial_count random monomials of degree 1..max_degree."""
    if not 1 <= max_degree <= input_length:
        raise ValueError("max_degree must be between 1 and input_length")
    monomials = np.zeros((monomial_count, input_length), dtype=np.uint8)
    for row in monomials:
        degree = 1 + secrets.randbelow(max_degree)
        variables = set()
        while len(variables) < degree:
            variables.add(secrets.randbelow(input_length))
        row[list(variables)] = 1
    contributions = random_bits(monomial_count * output_length).reshape(monomial_count, output_length)
    monomials, contributions = _collect(monomials, contributions)
    return PolynomialFunction(input_length, output_length, monomials, contributions)


def linear(matrix: BitMatrix) -> PolynomialFunction:
    """x -> M x. Monomial i is x_i; its contribution is column i of M."""
    return PolynomialFunction(
        matrix.cols(), matrix.rows(), np.eye(matrix.cols(), dtype=np.uint8), matrix.bits.T
    )


def affine(matrix: BitMatrix, offset: BitVector) -> PolynomialFunction:
    """x -> M x + offset. The offset is the contribution of the empty monomial."""
    if len(offset) != matrix.rows():
        raise DimensionMismatchError(f"Offset of length {len(offset)} for {matrix.rows()} output bits")
    monomials = np.concatenate([np.eye(matrix.cols(), dtype=np.uint8), np.zeros((1, matrix.cols()), np.uint8)])
    contributions = np.concatenate([matrix.bits.T, offset.bits.reshape(1, -1)])
    monomials, contributions = _collect(monomials, contributions)
    return PolynomialFunction(matrix.cols(), matrix.rows(), monomials, contributions)


def identity(n: int) -> PolynomialFunction:
    return linear(BitMatrix.identity(n))


def mirror(f: PolynomialFunction) -> PolynomialFunction:
    """
    Apply a plain function independently to both halves of a doubled input:
    (x, y) -> f(x) || f(y).
    """
    if f.get_pipelines():
        raise ValueError("Only plain functions can be mirrored")
    terms = len(f.monomials)
    empty_in = np.zeros((terms, f.input_length), dtype=np.uint8)
    empty_out = np.zeros((terms, f.output_length), dtype=np.uint8)
    monomials = np.block([[f.monomials, empty_in], [empty_in, f.monomials]])
    contributions = np.block([[f.contributions, empty_out], [empty_out, f.contributions]])
    monomials, contributions = _collect(monomials, contributions)
    return PolynomialFunction(2 * f.input_length, 2 * f.output_length, monomials, contributions)


def truncate(f: PolynomialFunction, output_length: int) -> PolynomialFunction:
    """Keep the leading output_length output bits."""
    if not 0 <= output_length <= f.output_length:
        raise DimensionMismatchError(f"Cannot keep {output_length} of {f.output_length} output bits")
    monomials, contributions = _collect(f.monomials, f.contributions[:, :output_length])
    return dataclasses.replace(f, output_length=output_length, monomials=monomials, contributions=contributions)
