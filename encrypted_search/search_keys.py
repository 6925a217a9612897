"""
Encrypted search private key.

- Two private squaring matrices blind the delegated hasher functions:
  hL = composed * L (right multiply), hR = R * composed (left multiply),
  where composed = global_hash ∘ mirrored_decryptor.
- Removing the squaring matrices gives (H L) L^-1 R^-1 (R H) = H H for
  H = sq(global_hash(hash || nonce)). The multiplication order here and in the
  bridge key must not change without re-deriving that identity.
- Search tokens are the keypair encryption of hash(term) || random nonce.
"""

import logging
from typing import NamedTuple, Optional, Tuple

from gf2 import (
    BitMatrix,
    BitVector,
    DimensionMismatchError,
    PolynomialFunction,
    SingularMatrixError,
    concatenate,
    left_multiply,
    right_multiply,
    square_matrix_from_vector,
)

from .config import SearchConfiguration, default_configuration
from .keypair import PrivateKeyCapability, PublicKeyCapability

logger = logging.getLogger(__name__)

LEFT_SQUARING_MATRIX = "leftMatrix"
RIGHT_SQUARING_MATRIX = "rightMatrix"
DEFAULT_SQUARING_DIMENSION = 8


class QueryHasherPair(NamedTuple):
    """Delegated hasher functions (hL, hR) over two concatenated ciphertexts."""

    left: PolynomialFunction
    right: PolynomialFunction

    def evaluate(self, encrypted_hash: BitVector, encrypted_nonce: BitVector) -> Tuple[BitMatrix, BitMatrix]:
        """Return (hL(c), hR(c)) reshaped to square matrices."""
        return (
            square_matrix_from_vector(self.left.apply(encrypted_hash, encrypted_nonce)),
            square_matrix_from_vector(self.right.apply(encrypted_hash, encrypted_nonce)),
        )


class EncryptedSearchPrivateKey:
    """Key owner's secret: left and right squaring matrices."""

    def __init__(
        self,
        left_squaring_matrix: BitMatrix,
        right_squaring_matrix: BitMatrix,
        config: Optional[SearchConfiguration] = None,
    ):
        if not left_squaring_matrix.is_square() or left_squaring_matrix.shape != right_squaring_matrix.shape:
            raise DimensionMismatchError(
                f"Squaring matrices must be square and equal in size, got "
                f"{left_squaring_matrix.shape} and {right_squaring_matrix.shape}"
            )
        if not (left_squaring_matrix.is_invertible() and right_squaring_matrix.is_invertible()):
            raise SingularMatrixError("Squaring matrices must be invertible")
        self._left = left_squaring_matrix
        self._right = right_squaring_matrix
        self._config = config if config is not None else default_configuration()

    @classmethod
    def generate(
        cls, sqr_root_hash_length: int = DEFAULT_SQUARING_DIMENSION, config: Optional[SearchConfiguration] = None
    ) -> "EncryptedSearchPrivateKey":
        """Sample two independent invertible squaring matrices."""
        logger.debug("Generating %dx%d squaring matrices", sqr_root_hash_length, sqr_root_hash_length)
        return cls(
            BitMatrix.random_invertible(sqr_root_hash_length),
            BitMatrix.random_invertible(sqr_root_hash_length),
            config,
        )

    @property
    def left_squaring_matrix(self) -> BitMatrix:
        return self._left

    @property
    def right_squaring_matrix(self) -> BitMatrix:
        return self._right

    @property
    def config(self) -> SearchConfiguration:
        return self._config

    def hash(self, term: str) -> BitVector:
        """
        Digest of the UTF-8 term, folded to half width by XOR of its low and high halves.
        Deterministic for a given configuration.
        """
        digest = BitVector.from_bytes(self._config.hash.digest(term.encode("utf-8")))
        half = self._config.hash.search_hash_bits
        return digest.part(0, half) ^ digest.part(half, len(digest))

    def prepare_search_token(self, public_key: PublicKeyCapability, term: str) -> BitVector:
        """
        Encrypt hash(term) || random nonce of equal length.
        Decrypting the token with the matching private key yields hash(term).
        """
        search_hash = self.hash(term)
        return public_key.encrypter.apply(concatenate(search_hash, BitVector.random(len(search_hash))))

    def get_query_hasher_pair(
        self, global_hash: PolynomialFunction, private_keypair: PrivateKeyCapability
    ) -> QueryHasherPair:
        """
        Derive (hL, hR) from global_hash ∘ mirrored_decryptor, blinded on the right
        by the left squaring matrix and on the left by the right squaring matrix.
        """
        composed = global_hash.compose(private_keypair.mirrored_decryptor)
        logger.debug("Hasher pair composed over %d monomials", composed.monomial_count())
        return QueryHasherPair(
            right_multiply(composed, self._left),
            left_multiply(composed, self._right),
        )

    def new_document_key(self) -> BitMatrix:
        """Fresh random invertible matrix: the secret basis for one document's index."""
        return BitMatrix.random_invertible(self._config.document_key_size)
