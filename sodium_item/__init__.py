"""
sodium_item — Declared Encrypted Items
Anonymous sealed-box encryption with stable reconciliation.

Given a recipient's X25519 public key and some content (both base64), an
item holds the sealed ciphertext plus two fingerprints:
1. content_checksum — SHA-1 of the encoded content (input drift indicator)
2. id               — SHA-1 of the encoded ciphertext (the item's identity)

Sealing is randomized, so an item is only recomputed when its inputs change.
Re-reading or re-applying the same inputs returns the stored result.

Usage:
    from sodium_item import encrypt, reconcile, EncryptionRequest
    ciphertext_b64, content_fp, item_id = encrypt(public_key_b64, content_b64)

    item, changed = reconcile(None, EncryptionRequest.from_base64(pk_b64, content_b64))
    item, changed = reconcile(item, EncryptionRequest.from_base64(pk_b64, content_b64))
    assert not changed
"""

from sodium_item.codec import encode, decode
from sodium_item.errors import (
    SodiumItemError,
    DecodeError,
    InvalidKeyError,
    SealError,
    StateError,
)
from sodium_item.keys import KeyPolicy, PUBLIC_KEY_SIZE
from sodium_item.sealer import (
    EncryptionRequest,
    EncryptionResult,
    SEAL_OVERHEAD,
    seal,
    fingerprint,
    compute,
    encrypt,
)
from sodium_item.reconcile import Item, ItemState, reconcile, read, destroy

__version__ = "0.1.0"
__all__ = [
    "encode",
    "decode",
    "SodiumItemError",
    "DecodeError",
    "InvalidKeyError",
    "SealError",
    "StateError",
    "KeyPolicy",
    "PUBLIC_KEY_SIZE",
    "EncryptionRequest",
    "EncryptionResult",
    "SEAL_OVERHEAD",
    "seal",
    "fingerprint",
    "compute",
    "encrypt",
    "Item",
    "ItemState",
    "reconcile",
    "read",
    "destroy",
]
