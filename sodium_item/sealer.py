"""
Sealer — Anonymous Sealed-Box Encryption
Seals plaintext to a recipient public key and derives the item fingerprints.

Flow for one computation:
1. Decode public_key_base64 and content_base64
2. Normalize the key to 32 bytes (see sodium_item.keys)
3. Seal with a fresh ephemeral key pair (NaCl crypto_box_seal)
4. Fingerprint the encoded plaintext and the encoded ciphertext together

Sealing is randomized: the same request never produces the same
ciphertext twice, so the result fingerprint changes on every computation.
Only the reconciler decides when a computation happens.
"""

import logging
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes
from nacl.public import SealedBox
import nacl.exceptions

from sodium_item import codec
from sodium_item.errors import SealError
from sodium_item.keys import KeyPolicy, normalize_public_key, load_public_key

logger = logging.getLogger(__name__)

# crypto_box_SEALBYTES: ephemeral public key (32) + Poly1305 tag (16)
SEAL_OVERHEAD = 48
FINGERPRINT_SIZE = 20  # SHA-1, 160 bits


@dataclass(frozen=True)
class EncryptionRequest:
    """The inputs of one computation. Compared structurally."""
    public_key: bytes   # exactly 32 bytes
    plaintext: bytes    # may be empty

    @classmethod
    def from_base64(
        cls,
        public_key_b64: str,
        content_b64: str,
        policy: KeyPolicy = KeyPolicy.LENIENT,
    ) -> "EncryptionRequest":
        """Decode both transport fields and normalize the key."""
        plaintext = codec.decode(content_b64, field="content_base64")
        key = codec.decode(public_key_b64, field="public_key_base64")
        return cls(public_key=normalize_public_key(key, policy), plaintext=plaintext)

    @property
    def public_key_base64(self) -> str:
        return codec.encode(self.public_key)

    @property
    def content_base64(self) -> str:
        return codec.encode(self.plaintext)

    def __repr__(self) -> str:
        return f"EncryptionRequest(public_key=<{len(self.public_key)} bytes>, plaintext=<redacted>)"


@dataclass(frozen=True)
class EncryptionResult:
    """The outputs of one computation. Both fingerprints come from the same run."""
    ciphertext: bytes
    content_fingerprint: str
    result_fingerprint: str

    @property
    def ciphertext_base64(self) -> str:
        return codec.encode(self.ciphertext)

    def __repr__(self) -> str:
        return (
            f"EncryptionResult(ciphertext=<{len(self.ciphertext)} bytes>, "
            f"content_fingerprint={self.content_fingerprint!r}, "
            f"result_fingerprint={self.result_fingerprint!r})"
        )


def seal(plaintext: bytes, public_key: bytes) -> bytes:
    """
    Anonymously seal plaintext to a 32-byte recipient public key.

    Args:
        plaintext: Bytes to seal, any length including zero.
        public_key: Normalized 32-byte X25519 public key.

    Returns:
        Ciphertext, len(plaintext) + SEAL_OVERHEAD bytes.

    Raises:
        SealError: If the key is rejected or the primitive fails
            (including failure to obtain randomness).
    """
    box = SealedBox(load_public_key(public_key))
    try:
        ciphertext = box.encrypt(bytes(plaintext))
    except (nacl.exceptions.CryptoError, OSError) as e:
        raise SealError(f"Failed to encrypt content_base64: {e}") from e

    if len(ciphertext) != len(plaintext) + SEAL_OVERHEAD:
        raise SealError(
            f"Failed to encrypt content_base64: expected {len(plaintext) + SEAL_OVERHEAD} "
            f"bytes of ciphertext, got {len(ciphertext)}"
        )
    return bytes(ciphertext)


def fingerprint(text: str) -> str:
    """
    Fingerprint an encoded text value: SHA-1 of its UTF-8 bytes, lowercase hex.

    Used for change detection and identity, not as a security boundary.
    """
    digest = hashes.Hash(hashes.SHA1())
    digest.update(text.encode("utf-8"))
    return digest.finalize().hex()


def compute(request: EncryptionRequest) -> EncryptionResult:
    """Seal the request and derive both fingerprints from the same run."""
    ciphertext = seal(request.plaintext, request.public_key)
    result = EncryptionResult(
        ciphertext=ciphertext,
        content_fingerprint=fingerprint(codec.encode(request.plaintext)),
        result_fingerprint=fingerprint(codec.encode(ciphertext)),
    )
    logger.debug(
        "sealed %d bytes -> %d bytes, id=%s",
        len(request.plaintext),
        len(ciphertext),
        result.result_fingerprint,
    )
    return result


def encrypt(
    public_key_b64: str,
    content_b64: str,
    policy: KeyPolicy = KeyPolicy.LENIENT,
) -> tuple[str, str, str]:
    """
    One-shot encryption over transport text.

    Args:
        public_key_b64: Recipient public key, standard base64.
        content_b64: Plaintext, standard base64.
        policy: Key length policy.

    Returns:
        (ciphertext_base64, content_fingerprint_hex, result_fingerprint_hex)

    Raises:
        DecodeError, InvalidKeyError, SealError
    """
    result = compute(EncryptionRequest.from_base64(public_key_b64, content_b64, policy))
    return result.ciphertext_base64, result.content_fingerprint, result.result_fingerprint
