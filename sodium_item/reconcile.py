"""
Reconciler — Item Lifecycle
Decides when an encrypted item is recomputed and when its stored result is reused.

States:
  ABSENT               — nothing stored (previous is None)
  PRESENT(req, result) — last request and the result computed from it

Transitions:
  ABSENT  --reconcile(r)-->   PRESENT(r, compute(r))        changed
  PRESENT(r) --reconcile(r)-->  PRESENT(r) unchanged        not changed
  PRESENT(r) --reconcile(r')--> PRESENT(r', compute(r'))    changed
  PRESENT --read-->    the same item
  PRESENT --destroy--> ABSENT

Sealing is randomized, so the stored result is authoritative while the
request is unchanged. Recomputing on every pass would give a new id each
time with no input change.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sodium_item import codec
from sodium_item.errors import StateError
from sodium_item.keys import KeyPolicy
from sodium_item.sealer import (
    EncryptionRequest,
    EncryptionResult,
    SEAL_OVERHEAD,
    compute,
    fingerprint,
)

logger = logging.getLogger(__name__)


class ItemState(Enum):
    ABSENT = "absent"
    PRESENT = "present"


@dataclass(frozen=True)
class Item:
    """
    A computed encrypted item: the request it was computed from and its result.

    Items are immutable. A recomputation always yields a new Item, so the
    request, the ciphertext, both fingerprints and the id change together.
    """
    request: EncryptionRequest
    result: EncryptionResult

    @property
    def id(self) -> str:
        """Identity of the item: the fingerprint of its encoded ciphertext."""
        return self.result.result_fingerprint

    @property
    def state(self) -> ItemState:
        return ItemState.PRESENT

    def to_record(self) -> dict:
        """Flatten to the attribute record a state store persists."""
        return {
            "public_key_base64": self.request.public_key_base64,
            "content_base64": self.request.content_base64,
            "encrypted_value_base64": self.result.ciphertext_base64,
            "content_checksum": self.result.content_fingerprint,
            "id": self.id,
        }

    @classmethod
    def from_record(cls, record: dict, policy: KeyPolicy = KeyPolicy.LENIENT) -> "Item":
        """
        Rebuild an item from a stored record, checking its invariants.

        Raises:
            StateError: If a field is missing, or the stored fingerprints
                do not match the stored encoded values.
            DecodeError, InvalidKeyError: If a stored field is malformed.
        """
        missing = [
            name for name in (
                "public_key_base64",
                "content_base64",
                "encrypted_value_base64",
                "content_checksum",
                "id",
            )
            if name not in record
        ]
        if missing:
            raise StateError(f"Stored item is missing fields: {', '.join(missing)}")

        request = EncryptionRequest.from_base64(
            record["public_key_base64"], record["content_base64"], policy
        )
        ciphertext = codec.decode(record["encrypted_value_base64"], field="encrypted_value_base64")

        if len(ciphertext) != len(request.plaintext) + SEAL_OVERHEAD:
            raise StateError("Stored encrypted_value_base64 has the wrong length for content_base64")
        if fingerprint(record["content_base64"]) != record["content_checksum"]:
            raise StateError("Stored content_checksum does not match content_base64")
        if fingerprint(record["encrypted_value_base64"]) != record["id"]:
            raise StateError("Stored id does not match encrypted_value_base64")

        result = EncryptionResult(
            ciphertext=ciphertext,
            content_fingerprint=record["content_checksum"],
            result_fingerprint=record["id"],
        )
        return cls(request=request, result=result)


def state_of(item: Item | None) -> ItemState:
    """State of a possibly-absent item."""
    return ItemState.ABSENT if item is None else item.state


def reconcile(previous: Item | None, desired: EncryptionRequest) -> tuple[Item, bool]:
    """
    Bring an item in line with the desired request.

    Args:
        previous: The stored item, or None when absent.
        desired: The request the item should reflect.

    Returns:
        (item, changed). When the request is unchanged, item is previous
        itself and changed is False.

    Raises:
        SealError: If recomputation fails. previous is left as it was.
    """
    if previous is not None and previous.request == desired:
        logger.debug("item %s unchanged, keeping stored result", previous.id)
        return previous, False

    item = Item(request=desired, result=compute(desired))
    if previous is None:
        logger.info("created item %s", item.id)
    else:
        logger.info("replaced item %s with %s", previous.id, item.id)
    return item, True


def read(item: Item) -> Item:
    """Return the stored item unchanged. Never recomputes."""
    return item


def destroy(item: Item | None) -> None:
    """
    Drop an item. Sealing has nothing to undo, so this only returns the
    absent state; removing the stored record is the store's job.
    """
    if item is not None:
        logger.info("destroyed item %s", item.id)
    return None
