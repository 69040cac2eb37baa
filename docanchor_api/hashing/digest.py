"""Digest engine: canonical bytes32 digests for anchored documents.

Two hashing paths converge on the same representation (``0x`` + 64
lower-case hex characters):

* file bytes are hashed with keccak-256, the ledger's native primitive;
* text content is hashed with SHA-256 and then normalized to bytes32.

The paths are not interchangeable. A document verifies only when the
candidate is re-hashed with the same method that was used when it was
anchored.
"""

import enum
import hashlib
import string
from dataclasses import dataclass
from typing import Optional, Union

from web3 import Web3

from docanchor_api.errors import InvalidInputError, MalformedHashError

BYTES32_HEX_LENGTH = 64
_HEX_DIGITS = frozenset(string.hexdigits)


class HashMethod(str, enum.Enum):
    """How a digest was derived."""

    FILE_KECCAK = "file-keccak256"
    CONTENT_SHA256 = "content-sha256"


@dataclass(frozen=True)
class Digest:
    """A canonical bytes32 digest and the method that produced it."""

    value: str
    method: HashMethod

    def __str__(self) -> str:
        return self.value

    def as_bytes(self) -> bytes:
        return bytes.fromhex(self.value[2:])


def normalize_to_bytes32(hex_string: str) -> str:
    """Left-pad a hex digest to exactly 32 bytes.

    Strips an optional ``0x`` prefix, lower-cases, pads with ``0`` up to 64
    characters and re-applies the prefix. A payload longer than 64
    characters cannot shrink losslessly and raises MalformedHashError.
    """
    if not isinstance(hex_string, str):
        raise MalformedHashError(detail=f"expected hex string, got {type(hex_string).__name__}")

    payload = hex_string.strip()
    if payload[:2] in ("0x", "0X"):
        payload = payload[2:]

    if len(payload) > BYTES32_HEX_LENGTH:
        raise MalformedHashError(
            detail=f"digest has {len(payload)} hex characters, maximum is {BYTES32_HEX_LENGTH}"
        )
    if not all(ch in _HEX_DIGITS for ch in payload):
        raise MalformedHashError(detail=f"digest contains non-hex characters: {hex_string!r}")

    return "0x" + payload.lower().rjust(BYTES32_HEX_LENGTH, "0")


def hash_content(content: Union[bytes, str]) -> Digest:
    """SHA-256 over text content (UTF-8 encoded when given as str)."""
    if isinstance(content, str):
        try:
            content = content.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidInputError("Content must be valid UTF-8 text", detail=str(e)) from e
    raw_hex = hashlib.sha256(content).hexdigest()
    return Digest(value=normalize_to_bytes32(raw_hex), method=HashMethod.CONTENT_SHA256)


def hash_file(data: bytes) -> Digest:
    """Keccak-256 over raw file bytes, natively comparable on-chain."""
    return Digest(value=Web3.to_hex(Web3.keccak(data)), method=HashMethod.FILE_KECCAK)


def digest_document(file_bytes: Optional[bytes] = None, text: Optional[str] = None) -> Digest:
    """Digest exactly one of file bytes or text content.

    File bytes take the keccak path, text the SHA-256 path.
    """
    if file_bytes is None and text is None:
        raise InvalidInputError("Report file or content is required")
    if file_bytes is not None and text is not None:
        raise InvalidInputError("Provide either a report file or report content, not both")
    if file_bytes is not None:
        return hash_file(file_bytes)
    return hash_content(text)
