"""
Per-document sharing keys and delegation bridge keys.

- Sharing key: document key D and middle = D^-1, the transform that sits between
  the two halves of a hasher pair evaluation.
- Bridge key: bridge = L^-1 * middle * R^-1. For hasher results hL(c) = H L and
  hR(c) = R H this gives hL(c) * bridge * hR(c) = H * middle * H, without the
  holder learning L or R.
- Matching compares the combined value with a document's index value in constant time.
"""

import hmac

from gf2 import (
    BitMatrix,
    BitVector,
    PolynomialFunction,
    square_matrix_from_vector,
    vector_from_square_matrix,
)

from .search_keys import EncryptedSearchPrivateKey, QueryHasherPair

DOCUMENT_KEY = "documentKey"
BRIDGE = "bridge"


def constant_time_equals(a: bytes, b: bytes) -> bool:
    """Constant-time comparison of encoded index values."""
    return hmac.compare_digest(a, b)


class EncryptedSearchSharingKey:
    """Per-document secret and its derived middle transform."""

    def __init__(self, document_key: BitMatrix):
        self._document_key = document_key
        self._middle = document_key.inverse()

    @property
    def document_key(self) -> BitMatrix:
        return self._document_key

    @property
    def middle(self) -> BitMatrix:
        return self._middle

    def index_value(
        self, global_hash: PolynomialFunction, search_hash: BitVector, search_nonce: BitVector
    ) -> BitVector:
        """vec(H * middle * H) with H = sq(global_hash(search_hash || search_nonce))."""
        h = square_matrix_from_vector(global_hash.apply(search_hash, search_nonce))
        return vector_from_square_matrix(h.multiply(self._middle).multiply(h))


class EncryptedSearchBridgeKey:
    """Delegation artifact for one (private key, sharing key) pair."""

    def __init__(self, private_key: EncryptedSearchPrivateKey, sharing_key: EncryptedSearchSharingKey):
        left_inverse = private_key.left_squaring_matrix.inverse()
        right_inverse = private_key.right_squaring_matrix.inverse()
        self._bridge = left_inverse.multiply(sharing_key.middle).multiply(right_inverse)

    @classmethod
    def from_bridge(cls, bridge: BitMatrix) -> "EncryptedSearchBridgeKey":
        """Rebuild a bridge key received from its owner."""
        key = cls.__new__(cls)
        key._bridge = bridge
        return key

    @property
    def bridge(self) -> BitMatrix:
        return self._bridge

    def combine(self, left_result: BitMatrix, right_result: BitMatrix) -> BitVector:
        """vec(hL(c) * bridge * hR(c))."""
        return vector_from_square_matrix(left_result.multiply(self._bridge).multiply(right_result))


def search_matches(
    bridge_key: EncryptedSearchBridgeKey,
    hasher_pair: QueryHasherPair,
    encrypted_hash: BitVector,
    encrypted_nonce: BitVector,
    index_value: BitVector,
) -> bool:
    """Evaluate the hasher pair on an encrypted query and test it against an index value."""
    left, right = hasher_pair.evaluate(encrypted_hash, encrypted_nonce)
    candidate = bridge_key.combine(left, right)
    if len(candidate) != len(index_value):
        return False
    return constant_time_equals(candidate.to_bytes(), index_value.to_bytes())
