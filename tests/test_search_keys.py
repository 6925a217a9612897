"""
Search key flow: token preparation, delegated hasher pairs, sharing and bridge keys.
Runs the full owner -> delegate -> server path against the reference keypair.
"""

import hashlib
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
    SingularMatrixError,
    concatenate,
    square_matrix_from_vector,
    vector_from_square_matrix,
)
from gf2.functions import dense_random_multivariate_quadratic
from encrypted_search import (
    EncryptedSearchBridgeKey,
    EncryptedSearchPrivateKey,
    EncryptedSearchSharingKey,
    HashConfiguration,
    PrivateKey,
    PublicKey,
    SearchConfiguration,
    constant_time_equals,
    search_matches,
)

CONFIG = SearchConfiguration(HashConfiguration("blake2b", 128), 8)


@pytest.fixture(scope="module")
def keypair():
    private = PrivateKey(128, 64)
    return private, PublicKey(private)


@pytest.fixture(scope="module")
def global_hash():
    return dense_random_multivariate_quadratic(128, 64)


@pytest.fixture(scope="module")
def search_key():
    return EncryptedSearchPrivateKey.generate(8, CONFIG)


@pytest.fixture(scope="module")
def hasher_pair(search_key, global_hash, keypair):
    return search_key.get_query_hasher_pair(global_hash, keypair[0])


@pytest.fixture(scope="module")
def sharing_key(search_key):
    return EncryptedSearchSharingKey(search_key.new_document_key())


@pytest.fixture(scope="module")
def bridge_key(search_key, sharing_key):
    return EncryptedSearchBridgeKey(search_key, sharing_key)


def _query(search_key, public_key, term, nonce):
    return search_key.prepare_search_token(public_key, term), public_key.encrypt(nonce)


def test_reference_keypair_roundtrip(keypair):
    private, public = keypair
    message = BitVector.random(64)
    assert private.decrypt(public.encrypt(message)) == message
    with pytest.raises(DimensionMismatchError):
        public.encrypt(BitVector.random(63))


def test_search_token_decrypts_to_term_hash(search_key, keypair):
    private, public = keypair
    token = search_key.prepare_search_token(public, "risefall")
    assert len(token) == 128
    assert private.decrypt(token) == search_key.hash("risefall")


def test_tokens_are_randomized(search_key, keypair):
    public = keypair[1]
    assert search_key.prepare_search_token(public, "risefall") != search_key.prepare_search_token(public, "risefall")


def test_hash_folds_blake2b_digest(search_key):
    digest = hashlib.blake2b("risefall".encode("utf-8"), digest_size=16).digest()
    folded = bytes(a ^ b for a, b in zip(digest[:8], digest[8:]))
    assert search_key.hash("risefall") == BitVector.from_bytes(folded)
    assert search_key.hash("risefall") == search_key.hash("risefall")
    assert search_key.hash("risefall") != search_key.hash("rise fall")


def test_hasher_pair_blinding_cancels(search_key, hasher_pair, global_hash, keypair):
    public = keypair[1]
    term_hash, nonce = search_key.hash("risefall"), BitVector.random(64)
    left, right = hasher_pair.evaluate(*_query(search_key, public, "risefall", nonce))
    h = square_matrix_from_vector(global_hash.apply(term_hash, nonce))
    assert left == h @ search_key.left_squaring_matrix
    assert right == search_key.right_squaring_matrix @ h
    unblinded = left @ search_key.left_squaring_matrix.inverse() @ search_key.right_squaring_matrix.inverse() @ right
    assert unblinded == h @ h


def test_bridge_recovers_index_value(search_key, hasher_pair, sharing_key, bridge_key, global_hash, keypair):
    public = keypair[1]
    term_hash, nonce = search_key.hash("risefall"), BitVector.random(64)
    left, right = hasher_pair.evaluate(*_query(search_key, public, "risefall", nonce))
    h = square_matrix_from_vector(global_hash.apply(term_hash, nonce))
    expected = vector_from_square_matrix(h @ sharing_key.middle @ h)
    assert bridge_key.combine(left, right) == expected
    assert sharing_key.index_value(global_hash, term_hash, nonce) == expected


def test_search_matches_only_the_indexed_term(search_key, hasher_pair, sharing_key, bridge_key, global_hash, keypair):
    public = keypair[1]
    nonce = BitVector.random(64)
    index_value = sharing_key.index_value(global_hash, search_key.hash("risefall"), nonce)
    hit = _query(search_key, public, "risefall", nonce)
    miss = _query(search_key, public, "sunrise", nonce)
    assert search_matches(bridge_key, hasher_pair, *hit, index_value)
    assert not search_matches(bridge_key, hasher_pair, *miss, index_value)
    assert not search_matches(bridge_key, hasher_pair, *hit, index_value.part(0, 32))


def test_bridge_for_other_document_does_not_match(search_key, hasher_pair, sharing_key, global_hash, keypair):
    public = keypair[1]
    nonce = BitVector.random(64)
    index_value = sharing_key.index_value(global_hash, search_key.hash("risefall"), nonce)
    other = EncryptedSearchBridgeKey(search_key, EncryptedSearchSharingKey(search_key.new_document_key()))
    assert not search_matches(other, hasher_pair, *_query(search_key, public, "risefall", nonce), index_value)


def test_bridge_value(search_key, sharing_key, bridge_key):
    expected = (
        search_key.left_squaring_matrix.inverse()
        @ sharing_key.middle
        @ search_key.right_squaring_matrix.inverse()
    )
    assert bridge_key.bridge == expected
    assert EncryptedSearchBridgeKey.from_bridge(expected).bridge == expected


def test_hasher_pair_shapes(hasher_pair):
    assert hasher_pair.left.input_length == 256
    assert hasher_pair.left.output_length == 64
    assert hasher_pair.right.output_length == 64
    assert hasher_pair.left.kind == "plain"


def test_document_keys_are_fresh_and_invertible(search_key):
    first, second = search_key.new_document_key(), search_key.new_document_key()
    assert first.shape == (8, 8)
    assert first.is_invertible()
    assert first != second


def test_sharing_key_middle_is_inverse():
    document_key = BitMatrix.random_invertible(8)
    sharing_key = EncryptedSearchSharingKey(document_key)
    assert document_key @ sharing_key.middle == BitMatrix.identity(8)
    with pytest.raises(SingularMatrixError):
        EncryptedSearchSharingKey(BitMatrix.zeros(8, 8))


def test_private_key_validates_matrices():
    invertible = BitMatrix.random_invertible(8)
    with pytest.raises(DimensionMismatchError):
        EncryptedSearchPrivateKey(invertible, BitMatrix.random_invertible(4), CONFIG)
    with pytest.raises(DimensionMismatchError):
        EncryptedSearchPrivateKey(BitMatrix.random(8, 4), BitMatrix.random(8, 4), CONFIG)
    with pytest.raises(SingularMatrixError):
        EncryptedSearchPrivateKey(invertible, BitMatrix.zeros(8, 8), CONFIG)


def test_generate_uses_requested_dimension():
    key = EncryptedSearchPrivateKey.generate(4, CONFIG)
    assert key.left_squaring_matrix.shape == (4, 4)
    assert key.right_squaring_matrix.is_invertible()
    assert key.config is CONFIG


def test_constant_time_equals():
    assert constant_time_equals(b"\x01\x02", b"\x01\x02")
    assert not constant_time_equals(b"\x01\x02", b"\x01\x03")


def test_hash_width_follows_configuration():
    key = EncryptedSearchPrivateKey(
        BitMatrix.identity(4), BitMatrix.identity(4), SearchConfiguration(HashConfiguration("sha256", 256), 4)
    )
    assert len(key.hash("risefall")) == 128
    assert len(concatenate(key.hash("a"), key.hash("b"))) == 256
