"""
Deterministic 32-bit hashing for seeded ranking and rotation.

Responsibilities:
- Map any string to a reproducible unsigned 32-bit integer.
- Map any string to a reproducible float in [0, 1].

Non-Responsibilities:
- No cryptographic guarantees.
- No randomness, clock or process state.

Invariant:
Output depends only on the input text. The constants below are fixed so that
values match the discovery page's JavaScript implementation byte for byte.
"""

from typing import Any, List

MURMUR_M = 0x5BD1E995
MASK32 = 0xFFFFFFFF


def _code_units(text: str) -> List[int]:
    """Low byte of each UTF-16 code unit (JavaScript's charCodeAt(i) & 0xff)."""
    data = text.encode("utf-16-le", "surrogatepass")
    return list(data[0::2])


def hash32(text: Any) -> int:
    """
    MurmurHash2-style mix of ``text``.

    The seed is the input length in UTF-16 code units, blocks are 4 units wide,
    and the trailing 1-3 units are folded in before the final avalanche.
    ``hash32("") == 0``.
    """
    units = _code_units(str(text))
    length = len(units)
    h = length & MASK32
    i = 0

    while length >= i + 4:
        k = units[i] | (units[i + 1] << 8) | (units[i + 2] << 16) | (units[i + 3] << 24)
        k = (k * MURMUR_M) & MASK32
        k ^= k >> 24
        k = (k * MURMUR_M) & MASK32
        h = ((h * MURMUR_M) & MASK32) ^ k
        i += 4

    remaining = length - i
    if remaining == 3:
        h ^= units[i + 2] << 16
    if remaining >= 2:
        h ^= units[i + 1] << 8
    if remaining >= 1:
        h ^= units[i]
        h = (h * MURMUR_M) & MASK32

    h ^= h >> 13
    h = (h * MURMUR_M) & MASK32
    h ^= h >> 15

    return h


def hash01(text: Any) -> float:
    """Normalized hash in [0, 1]."""
    return hash32(text) / MASK32
