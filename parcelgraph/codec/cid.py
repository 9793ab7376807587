"""
Content identifier derivation.

A 32-byte sha2-256 digest is wrapped as a multihash, prefixed with the CIDv1
version and the raw-binary multicodec, and rendered in lowercase unpadded
base32 with the multibase prefix "b":

    [0x01][0x55][0x12][0x20][32 digest bytes]  ->  "b" + base32(...)
"""

from __future__ import annotations

import base64
import binascii
import re

from parcelgraph.shared.errors import MalformedHashError

CID_VERSION = 0x01
RAW_CODEC = 0x55
SHA2_256 = 0x12
DIGEST_LENGTH = 32
MULTIBASE_BASE32 = "b"

CID_PREFIX = bytes([CID_VERSION, RAW_CODEC, SHA2_256, DIGEST_LENGTH])

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def hash_to_bytes(value: str) -> bytes:
    """Parse a 0x-prefixed (or bare) 64-digit hex string into 32 bytes."""
    if not isinstance(value, str):
        raise MalformedHashError(value, "expected a hex string")
    digits = value[2:] if value[:2] in ("0x", "0X") else value
    if len(digits) != DIGEST_LENGTH * 2:
        raise MalformedHashError(
            value, f"expected {DIGEST_LENGTH * 2} hex digits, got {len(digits)}"
        )
    if not _HEX_RE.match(digits):
        raise MalformedHashError(value, "contains non-hex characters")
    return bytes.fromhex(digits)


def encode_cid(digest: bytes) -> str:
    """Build the CIDv1 (raw, sha2-256) text form for a 32-byte digest."""
    if len(digest) != DIGEST_LENGTH:
        raise MalformedHashError(digest.hex(), f"expected {DIGEST_LENGTH} bytes")
    encoded = base64.b32encode(CID_PREFIX + digest).decode("ascii")
    return MULTIBASE_BASE32 + encoded.lower().rstrip("=")


def bytes32_to_cid(value: str) -> str:
    """Derive the CID for an on-chain bytes32 content hash."""
    return encode_cid(hash_to_bytes(value))


def decode_cid(cid: str) -> bytes:
    """Return the 32-byte digest addressed by a CID produced by `encode_cid`."""
    if not isinstance(cid, str) or not cid.startswith(MULTIBASE_BASE32):
        raise MalformedHashError(cid, "not a base32 multibase string")
    body = cid[1:].upper()
    body += "=" * (-len(body) % 8)
    try:
        raw = base64.b32decode(body)
    except binascii.Error as exc:
        raise MalformedHashError(cid, f"invalid base32: {exc}") from exc
    if len(raw) != len(CID_PREFIX) + DIGEST_LENGTH or not raw.startswith(CID_PREFIX):
        raise MalformedHashError(cid, "not a CIDv1 raw sha2-256 identifier")
    return raw[len(CID_PREFIX):]
