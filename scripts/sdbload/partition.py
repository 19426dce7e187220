"""
Partition assignment: maps record keys onto a fixed set of domains.
"""
import zlib

from .config import ConfigurationError


MASK_32 = 0xFFFFFFFF


def avalanche_hash(value: int) -> int:
    """
    32-bit integer bit-mixing hash (Thomas Wang).

    Spreads monotonic sequence numbers across the whole 32-bit range so
    consecutive items land on different domains and the per-domain
    buffers fill up at staggered times. Returns a signed 32-bit int.
    """
    key = value & MASK_32
    key = (~key + (key << 15)) & MASK_32
    key ^= key >> 12
    key = (key + (key << 2)) & MASK_32
    key ^= key >> 4
    key = (key * 2057) & MASK_32
    key ^= key >> 16
    return to_int32(key)


def to_int32(value: int) -> int:
    """Wrap an integer to the signed 32-bit range."""
    value &= MASK_32
    return value - (1 << 32) if value & 0x80000000 else value


def domain_for_id(item_id: int, domain_count: int) -> int:
    """Domain index for an integer id."""
    _check_count(domain_count)
    return abs(item_id) % domain_count


def domain_for_key(key: str, domain_count: int) -> int:
    """
    Domain index for a string key.

    CRC-32 of the UTF-8 bytes is stable across runs and processes, so
    reloading a key always targets the domain that already holds it.
    """
    _check_count(domain_count)
    return zlib.crc32(key.encode("utf-8")) % domain_count


def domain_name(prefix: str, index: int) -> str:
    """Domain name for an index: prefix plus the index zero-padded to two digits."""
    return f"{prefix}{index:02d}"


def domain_names(prefix: str, domain_count: int) -> list:
    _check_count(domain_count)
    return [domain_name(prefix, index) for index in range(domain_count)]


def _check_count(domain_count: int):
    if domain_count < 1:
        raise ConfigurationError(f"domain_count must be at least 1, got {domain_count}")
