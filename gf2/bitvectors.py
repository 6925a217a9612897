"""
Fixed-length bit vectors over GF(2).

- Immutable value type: XOR / AND, sub-range extraction, concatenation.
- Bit i lives in byte i // 8 at position i % 8 (little-endian bit order), and in
  64-bit word i // 64 at position i % 64.
- Randomness via get_random_bytes (OS entropy); no shared generator state.
- Wire codec: Base64 of { size:int32, words[0]:int64, ..., words[n]:int64 }, big-endian.
"""

import base64
import struct
from typing import Iterable, List, Optional, Union

import numpy as np

try:
    from Cryptodome.Random import get_random_bytes
except ImportError:
    from Crypto.Random import get_random_bytes

from .errors import DimensionMismatchError

INTEGER_BYTES = 4
WORD_BYTES = 8
WORD_BITS = 64


def random_bits(count: int) -> np.ndarray:
    """Return `count` uniformly random bits as a uint8 array of 0/1."""
    if count < 0:
        raise ValueError("Bit count must be non-negative")
    raw = np.frombuffer(get_random_bytes((count + 7) // 8), dtype=np.uint8)
    return np.unpackbits(raw, bitorder="little")[:count]


def _readonly(bits: np.ndarray) -> np.ndarray:
    bits.flags.writeable = False
    return bits


class BitVector:
    """Immutable fixed-length vector over GF(2)."""

    __slots__ = ("_bits",)

    def __init__(self, bits: Union[Iterable[int], np.ndarray]):
        # astype always copies, so a caller-owned buffer is never aliased
        array = np.asarray(bits)
        if array.ndim != 1:
            raise DimensionMismatchError("BitVector requires a one-dimensional sequence of bits")
        self._bits = _readonly((array != 0).astype(np.uint8))

    @classmethod
    def _wrap(cls, bits: np.ndarray) -> "BitVector":
        """Adopt a freshly computed 0/1 uint8 array without copying."""
        vector = cls.__new__(cls)
        vector._bits = _readonly(bits)
        return vector

    # ------------------------------------------------------------------ factories

    @classmethod
    def zeros(cls, size: int) -> "BitVector":
        return cls._wrap(np.zeros(size, dtype=np.uint8))

    @classmethod
    def random(cls, size: int) -> "BitVector":
        """Uniformly random vector (used for nonces)."""
        return cls._wrap(random_bits(size).copy())

    @classmethod
    def from_bytes(cls, data: bytes, size: Optional[int] = None) -> "BitVector":
        """
        Build a vector from bytes; bit i is bit i % 8 of byte i // 8.
        size defaults to 8 * len(data) and may not exceed it.
        """
        if size is None:
            size = len(data) * 8
        if size < 0 or size > len(data) * 8:
            raise DimensionMismatchError(f"Cannot take {size} bits from {len(data)} bytes")
        raw = np.frombuffer(bytes(data), dtype=np.uint8)
        return cls._wrap(np.unpackbits(raw, bitorder="little")[:size].copy())

    @classmethod
    def from_elements(cls, words: Iterable[int], size: int) -> "BitVector":
        """Inverse of elements(): rebuild from 64-bit backing words."""
        array = np.fromiter((w & 0xFFFFFFFFFFFFFFFF for w in words), dtype="<u8")
        if len(array) * WORD_BITS < size:
            raise DimensionMismatchError(f"{len(array)} words cannot hold {size} bits")
        return cls.from_bytes(array.tobytes(), size)

    # ------------------------------------------------------------------ accessors

    @property
    def bits(self) -> np.ndarray:
        """Read-only 0/1 uint8 view of the vector."""
        return self._bits

    def size(self) -> int:
        return len(self._bits)

    def __len__(self) -> int:
        return len(self._bits)

    def __getitem__(self, index: int) -> int:
        return int(self._bits[index])

    def __iter__(self):
        return (int(b) for b in self._bits)

    def cardinality(self) -> int:
        """Number of set bits."""
        return int(self._bits.sum())

    def to_bytes(self) -> bytes:
        return np.packbits(self._bits, bitorder="little").tobytes()

    def elements(self) -> List[int]:
        """64-bit backing words; bit i is bit i % 64 of word i // 64."""
        packed = self.to_bytes()
        padding = (-len(packed)) % WORD_BYTES
        return [int(w) for w in np.frombuffer(packed + b"\x00" * padding, dtype="<u8")]

    # ------------------------------------------------------------------ algebra

    def _check_same_size(self, other: "BitVector") -> None:
        if len(self) != len(other):
            raise DimensionMismatchError(f"Length mismatch: {len(self)} vs {len(other)}")

    def __xor__(self, other: "BitVector") -> "BitVector":
        self._check_same_size(other)
        return BitVector._wrap(self._bits ^ other._bits)

    def __and__(self, other: "BitVector") -> "BitVector":
        self._check_same_size(other)
        return BitVector._wrap(self._bits & other._bits)

    def part(self, start: int, end: int) -> "BitVector":
        """Bits [start, end) as a new vector."""
        if not 0 <= start <= end <= len(self):
            raise DimensionMismatchError(f"Range [{start}, {end}) outside vector of length {len(self)}")
        return BitVector._wrap(self._bits[start:end].copy())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitVector):
            return NotImplemented
        return len(self) == len(other) and bool(np.array_equal(self._bits, other._bits))

    def __hash__(self) -> int:
        return hash((len(self), self.to_bytes()))

    def __repr__(self) -> str:
        return f"BitVector('{''.join(str(b) for b in self._bits)}')"


def concatenate(*vectors: BitVector) -> BitVector:
    """Concatenate vectors in order."""
    if not vectors:
        return BitVector.zeros(0)
    return BitVector._wrap(np.concatenate([v.bits for v in vectors]))


def marshal_bitvector(vector: Optional[BitVector]) -> Optional[str]:
    """
    Turn a BitVector into a Base64 string.
    Layout: { bit_vector_size:int, bit_vector_bits[0]:long, ..., bit_vector_bits[n]:long }.
    """
    if vector is None:
        return None
    words = vector.elements()
    payload = struct.pack(f">i{len(words)}Q", len(vector), *words)
    return base64.b64encode(payload).decode("ascii")


def unmarshal_bitvector(encoded: Optional[str]) -> Optional[BitVector]:
    """Inverse of marshal_bitvector. Rejects truncated or malformed payloads."""
    if encoded is None:
        return None
    decoded = base64.b64decode(encoded, validate=True)
    if len(decoded) < INTEGER_BYTES or (len(decoded) - INTEGER_BYTES) % WORD_BYTES:
        raise ValueError(f"Invalid bit vector payload length {len(decoded)}")
    (size,) = struct.unpack_from(">i", decoded)
    if size < 0:
        raise ValueError(f"Invalid bit vector size {size}")
    count = (len(decoded) - INTEGER_BYTES) // WORD_BYTES
    words = struct.unpack_from(f">{count}Q", decoded, INTEGER_BYTES)
    return BitVector.from_elements(words, size)
