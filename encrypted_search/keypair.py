"""
Keypair capability consumed by the search keys.

The search protocol only composes with the keypair's polynomial functions:
- public side: encrypter, taking plaintext || nonce to a ciphertext;
- private side: decryptor (ciphertext -> plaintext) and mirrored_decryptor
  (two ciphertexts -> two plaintexts, each half decrypted independently).

PrivateKey / PublicKey below are a reference affine keypair, E * (m || r) + offset.
They satisfy decrypt(encrypt(m)) == m and are used by tests and demos; they are an
algebraic stand-in and offer no confidentiality.
"""

import logging
from typing import Protocol

from gf2 import BitMatrix, BitVector, DimensionMismatchError, PolynomialFunction, concatenate
from gf2.functions import affine, mirror

logger = logging.getLogger(__name__)


class PublicKeyCapability(Protocol):
    """Anything exposing an encrypter over plaintext || nonce."""

    @property
    def encrypter(self) -> PolynomialFunction:
        ...


class PrivateKeyCapability(Protocol):
    """Anything exposing decryptor and mirrored_decryptor functions."""

    @property
    def decryptor(self) -> PolynomialFunction:
        ...

    @property
    def mirrored_decryptor(self) -> PolynomialFunction:
        ...


class PrivateKey:
    """Reference keypair secret: an invertible affine map over ciphertext_length bits."""

    def __init__(self, ciphertext_length: int = 128, plaintext_length: int = 64):
        if not 0 < plaintext_length <= ciphertext_length:
            raise ValueError("plaintext_length must be in (0, ciphertext_length]")
        self._ciphertext_length = ciphertext_length
        self._plaintext_length = plaintext_length
        matrix = BitMatrix.random_invertible(ciphertext_length)
        offset = BitVector.random(ciphertext_length)
        leading_rows = BitMatrix(matrix.inverse().bits[:plaintext_length])
        self._encrypter = affine(matrix, offset)
        self._decryptor = affine(leading_rows, leading_rows.multiply_vector(offset))
        self._mirrored_decryptor = mirror(self._decryptor)
        logger.debug("Generated %d/%d-bit reference keypair", ciphertext_length, plaintext_length)

    @property
    def ciphertext_length(self) -> int:
        return self._ciphertext_length

    @property
    def plaintext_length(self) -> int:
        return self._plaintext_length

    @property
    def nonce_length(self) -> int:
        return self._ciphertext_length - self._plaintext_length

    @property
    def encrypter(self) -> PolynomialFunction:
        return self._encrypter

    @property
    def decryptor(self) -> PolynomialFunction:
        return self._decryptor

    @property
    def mirrored_decryptor(self) -> PolynomialFunction:
        return self._mirrored_decryptor

    def decrypt(self, ciphertext: BitVector) -> BitVector:
        return self._decryptor.apply(ciphertext)


class PublicKey:
    """Public half of the reference keypair."""

    def __init__(self, private_key: PrivateKey):
        self._encrypter = private_key.encrypter
        self._plaintext_length = private_key.plaintext_length
        self._nonce_length = private_key.nonce_length

    @property
    def encrypter(self) -> PolynomialFunction:
        return self._encrypter

    @property
    def plaintext_length(self) -> int:
        return self._plaintext_length

    def encrypt(self, plaintext: BitVector) -> BitVector:
        """Encrypt plaintext with a fresh random nonce appended."""
        if len(plaintext) != self._plaintext_length:
            raise DimensionMismatchError(
                f"Plaintext of length {len(plaintext)}; expected {self._plaintext_length}"
            )
        return self._encrypter.apply(concatenate(plaintext, BitVector.random(self._nonce_length)))
