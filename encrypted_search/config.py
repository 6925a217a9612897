"""
Search key configuration from environment.

- GF2SEARCH_HASH_ALGORITHM / GF2SEARCH_HASH_BITS: term digest before folding (default BLAKE2b-128).
- GF2SEARCH_DOCUMENT_KEY_SIZE: dimension of per-document key matrices (default 8).
- Values are read once into defaults; components take explicit configuration objects,
  so several schemes with different parameters can coexist in one process.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

try:
    from Cryptodome.Hash import BLAKE2b, BLAKE2s, MD5, SHA256, SHA3_256, SHAKE128, SHAKE256
except ImportError:
    from Crypto.Hash import BLAKE2b, BLAKE2s, MD5, SHA256, SHA3_256, SHAKE128, SHAKE256

# Load .env before any configuration is read
load_dotenv()

HASH_ALGORITHM = os.environ.get("GF2SEARCH_HASH_ALGORITHM", "blake2b").strip().lower()
HASH_BITS = int(os.environ.get("GF2SEARCH_HASH_BITS", "128"))
DOCUMENT_KEY_SIZE = int(os.environ.get("GF2SEARCH_DOCUMENT_KEY_SIZE", "8"))

# Maximum digest width in bits; None for extendable-output functions.
_MAX_BITS = {
    "blake2b": 512,
    "blake2s": 256,
    "md5": 128,
    "sha256": 256,
    "sha3_256": 256,
    "shake128": None,
    "shake256": None,
}
SUPPORTED_HASH_ALGORITHMS = frozenset(_MAX_BITS)


@dataclass(frozen=True)
class HashConfiguration:
    """Digest algorithm and width used to hash search terms."""

    algorithm: str = HASH_ALGORITHM
    bits: int = HASH_BITS

    def __post_init__(self):
        if self.algorithm not in SUPPORTED_HASH_ALGORITHMS:
            raise ValueError(
                f"Unsupported hash algorithm '{self.algorithm}'; "
                f"expected one of {sorted(SUPPORTED_HASH_ALGORITHMS)}"
            )
        if self.bits < 16 or self.bits % 16:
            raise ValueError("Hash bits must be a positive multiple of 16")
        limit = _MAX_BITS[self.algorithm]
        if limit is not None and self.bits > limit:
            raise ValueError(f"{self.algorithm} produces at most {limit} bits")

    @property
    def search_hash_bits(self) -> int:
        """Width of a folded search hash."""
        return self.bits // 2

    def digest(self, data: bytes) -> bytes:
        """bits // 8 bytes of digest over data."""
        size = self.bits // 8
        if self.algorithm == "blake2b":
            return BLAKE2b.new(data=data, digest_bits=self.bits).digest()
        if self.algorithm == "blake2s":
            return BLAKE2s.new(data=data, digest_bits=self.bits).digest()
        if self.algorithm == "shake128":
            return SHAKE128.new(data).read(size)
        if self.algorithm == "shake256":
            return SHAKE256.new(data).read(size)
        fixed = {"md5": MD5, "sha256": SHA256, "sha3_256": SHA3_256}[self.algorithm]
        return fixed.new(data).digest()[:size]


@dataclass(frozen=True)
class SearchConfiguration:
    """Parameters of one encrypted-search key scheme."""

    hash: HashConfiguration = field(default_factory=HashConfiguration)
    document_key_size: int = DOCUMENT_KEY_SIZE

    def __post_init__(self):
        if self.document_key_size < 1:
            raise ValueError("document_key_size must be at least 1")


def default_configuration() -> SearchConfiguration:
    """Configuration built from environment defaults."""
    return SearchConfiguration()
