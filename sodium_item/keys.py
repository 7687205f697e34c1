"""
Recipient public keys.

A sealed box needs exactly 32 bytes of X25519 public key. Under the
lenient policy a decoded key of any other length is copied into a 32-byte
zero buffer: short keys are zero-filled at the end and long keys are cut to
their first 32 bytes. That mirrors a fixed-size buffer copy and is kept for
compatibility, not because it is safe. A zero-filled key usually still
seals, but nobody holds the matching private key; an all-zero key is
refused by the primitive. Use the strict policy to reject
anything that is not exactly 32 bytes.
"""

import logging
from enum import Enum

from nacl.public import PublicKey
import nacl.exceptions

from sodium_item.errors import InvalidKeyError, SealError

logger = logging.getLogger(__name__)

PUBLIC_KEY_SIZE = 32


class KeyPolicy(Enum):
    """How to treat a decoded public key whose length is not 32 bytes."""
    LENIENT = "lenient"  # zero-fill or truncate
    STRICT = "strict"    # raise InvalidKeyError


def normalize_public_key(key: bytes, policy: KeyPolicy = KeyPolicy.LENIENT) -> bytes:
    """
    Bring a decoded public key to exactly PUBLIC_KEY_SIZE bytes.

    Args:
        key: Decoded key bytes, any length.
        policy: What to do when the length is wrong.

    Returns:
        32 bytes of key material.

    Raises:
        InvalidKeyError: Under KeyPolicy.STRICT, if len(key) != 32.
    """
    size = len(key)
    if size == PUBLIC_KEY_SIZE:
        return bytes(key)

    if policy is KeyPolicy.STRICT:
        raise InvalidKeyError(
            f"public_key_base64 must decode to {PUBLIC_KEY_SIZE} bytes, got {size}"
        )

    logger.warning(
        "public_key_base64 decoded to %d bytes; %s to %d bytes",
        size,
        "zero-filling" if size < PUBLIC_KEY_SIZE else "truncating",
        PUBLIC_KEY_SIZE,
    )
    buf = bytearray(PUBLIC_KEY_SIZE)
    head = key[:PUBLIC_KEY_SIZE]
    buf[:len(head)] = head
    return bytes(buf)


def load_public_key(key: bytes) -> PublicKey:
    """
    Wrap 32 normalized key bytes as a NaCl recipient key.

    Raises:
        SealError: If the primitive rejects the key structurally.
    """
    try:
        return PublicKey(key)
    except (ValueError, TypeError, nacl.exceptions.CryptoError) as e:
        raise SealError(f"Failed to load public_key_base64 for sealing: {e}") from e
