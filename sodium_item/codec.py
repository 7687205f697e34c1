"""
Codec
Standard base64 (RFC 4648, padded) between transport text and raw bytes.

Decoding is canonical: text whose padding bits are set, or that would
re-encode differently, is rejected, so encode(decode(t)) == t always holds.
"""

import base64
import binascii

from sodium_item.errors import DecodeError


def encode(data: bytes) -> str:
    """Encode bytes as padded standard base64 text. Empty bytes give ""."""
    return base64.b64encode(bytes(data)).decode("ascii")


def decode(text: str, field: str = None) -> bytes:
    """
    Decode padded standard base64 text.

    Args:
        text: The base64 text.
        field: Name of the input being decoded, used in error messages.

    Returns:
        The decoded bytes.

    Raises:
        DecodeError: If the text is not canonical standard base64.
    """
    if not isinstance(text, str):
        raise DecodeError(f"expected text, got {type(text).__name__}", field)

    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(str(e), field) from e

    # Non-zero trailing bits decode fine but would not round-trip
    if encode(raw) != text:
        raise DecodeError("non-canonical base64 encoding", field)

    return raw
