"""
Configuration tests: hash algorithm validation, digest widths and defaults.
"""

import hashlib
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from encrypted_search import HashConfiguration, SearchConfiguration, default_configuration
from encrypted_search import config


@pytest.mark.parametrize(
    "algorithm, bits",
    [
        ("blake2b", 128),
        ("blake2b", 512),
        ("blake2s", 256),
        ("md5", 128),
        ("sha256", 64),
        ("sha3_256", 256),
        ("shake128", 1024),
        ("shake256", 48),
    ],
)
def test_digest_width(algorithm, bits):
    digest = HashConfiguration(algorithm, bits).digest(b"risefall")
    assert len(digest) == bits // 8
    assert HashConfiguration(algorithm, bits).digest(b"risefall") == digest


def test_digests_match_reference_implementations():
    assert HashConfiguration("sha256", 256).digest(b"abc") == hashlib.sha256(b"abc").digest()
    assert HashConfiguration("md5", 128).digest(b"abc") == hashlib.md5(b"abc").digest()
    assert HashConfiguration("shake128", 96).digest(b"abc") == hashlib.shake_128(b"abc").digest(12)
    assert HashConfiguration("blake2s", 128).digest(b"abc") == hashlib.blake2s(b"abc", digest_size=16).digest()


def test_search_hash_is_half_width():
    assert HashConfiguration("blake2b", 128).search_hash_bits == 64


def test_rejects_unknown_algorithm():
    with pytest.raises(ValueError):
        HashConfiguration("murmur3", 128)


@pytest.mark.parametrize("bits", [0, 8, 24, -16])
def test_rejects_bad_widths(bits):
    with pytest.raises(ValueError):
        HashConfiguration("blake2b", bits)


def test_rejects_width_beyond_algorithm():
    with pytest.raises(ValueError):
        HashConfiguration("md5", 256)


def test_document_key_size_must_be_positive():
    with pytest.raises(ValueError):
        SearchConfiguration(HashConfiguration("blake2b", 128), 0)


def test_defaults_come_from_environment_values():
    defaults = default_configuration()
    assert defaults.hash.algorithm == config.HASH_ALGORITHM
    assert defaults.hash.bits == config.HASH_BITS
    assert defaults.document_key_size == config.DOCUMENT_KEY_SIZE
    assert "blake2b" in config.SUPPORTED_HASH_ALGORITHMS
