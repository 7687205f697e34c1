"""
Encrypted item resource and data source.

These are the collaborators around the core: they take plain attribute
records, run them through the reconciler, and persist what comes back.

Resource lifecycle (named items in a StateStore):
1. create  — compute and store a new item
2. read    — return the stored record, never recompute
3. update  — recompute only if public_key_base64 or content_base64 changed
4. apply   — create or update, whichever applies
5. delete  — forget the stored record
6. import  — adopt an existing record after checking it

The data source has no state: every read computes a fresh ciphertext.
"""

import logging

from sodium_item.errors import StateError
from sodium_item.keys import KeyPolicy
from sodium_item.reconcile import Item, destroy, reconcile
from sodium_item.reconcile import read as read_item
from sodium_item.schema import (
    ENCRYPTED_ITEM_DATA_SOURCE,
    ENCRYPTED_ITEM_RESOURCE,
    check_config,
    redact,
)
from sodium_item.sealer import EncryptionRequest, compute
from sodium_item.store import StateStore

logger = logging.getLogger(__name__)


def _request_from_config(config: dict, schema, policy: KeyPolicy) -> EncryptionRequest:
    inputs = check_config(config, schema)
    return EncryptionRequest.from_base64(
        inputs["public_key_base64"], inputs["content_base64"], policy
    )


class EncryptedItemResource:
    """
    Named encrypted items kept in a state store.

    Args:
        store: Where item records live.
        policy: Key length policy applied to every request.
    """

    schema = ENCRYPTED_ITEM_RESOURCE

    def __init__(self, store: StateStore, policy: KeyPolicy = KeyPolicy.LENIENT):
        self.store = store
        self.policy = policy

    def _load(self, name: str) -> Item | None:
        record = self.store.get(name)
        if record is None:
            return None
        try:
            return Item.from_record(record, self.policy)
        except StateError as e:
            raise StateError(f"Stored item {name!r} is inconsistent: {e}") from e

    def _save(self, name: str, item: Item) -> dict:
        record = item.to_record()
        self.store.put(name, record)
        return record

    def create(self, name: str, config: dict) -> dict:
        """
        Compute and store a new item.

        Raises:
            ValueError: If an item with this name already exists, or the
                config is missing a required attribute.
            DecodeError, InvalidKeyError, SealError: From the computation.
        """
        if self.store.get(name) is not None:
            raise ValueError(f"Item {name!r} already exists")
        desired = _request_from_config(config, self.schema, self.policy)
        item, _ = reconcile(None, desired)
        record = self._save(name, item)
        logger.info("created %s: %s", name, redact(record, self.schema))
        return record

    def read(self, name: str) -> dict | None:
        """Return the stored record unchanged, or None if absent."""
        item = self._load(name)
        if item is None:
            return None
        return read_item(item).to_record()

    def update(self, name: str, config: dict) -> tuple[dict, bool]:
        """
        Reconcile a stored item with a new config.

        Returns:
            (record, changed). The record is untouched when nothing changed.

        Raises:
            KeyError: If there is no item with this name.
        """
        previous = self._load(name)
        if previous is None:
            raise KeyError(name)
        desired = _request_from_config(config, self.schema, self.policy)
        item, changed = reconcile(previous, desired)
        if not changed:
            return previous.to_record(), False
        record = self._save(name, item)
        logger.info("updated %s: %s", name, redact(record, self.schema))
        return record, True

    def apply(self, name: str, config: dict) -> tuple[dict, bool]:
        """One reconciliation pass: create if absent, otherwise update."""
        previous = self._load(name)
        desired = _request_from_config(config, self.schema, self.policy)
        item, changed = reconcile(previous, desired)
        if not changed:
            return item.to_record(), False
        record = self._save(name, item)
        logger.info(
            "%s %s: %s",
            "created" if previous is None else "updated",
            name,
            redact(record, self.schema),
        )
        return record, True

    def delete(self, name: str) -> bool:
        """Forget a stored item. Returns False if it was already absent."""
        item = self._load(name)
        destroy(item)
        return self.store.delete(name)

    def import_state(self, name: str, item_id: str, record: dict) -> dict:
        """
        Adopt an existing record under name, identified by its id.

        Raises:
            StateError: If the record's id differs from item_id or the
                record is not an object or fails its fingerprint checks.
            ValueError: If an item with this name already exists.
        """
        if self.store.get(name) is not None:
            raise ValueError(f"Item {name!r} already exists")
        if not isinstance(record, dict):
            raise StateError(f"Imported record for {name!r} is not a JSON object")
        if record.get("id") != item_id:
            raise StateError(f"Imported record id does not match {item_id!r}")
        item = Item.from_record(record, self.policy)
        saved = self._save(name, item)
        logger.info("imported %s as %s", item_id, name)
        return saved

    def names(self) -> list[str]:
        return self.store.names()


class EncryptedItemDataSource:
    """
    Stateless lookup: seal the configured content and return the record.

    Every read produces a new ciphertext and therefore a new id.
    """

    schema = ENCRYPTED_ITEM_DATA_SOURCE

    def __init__(self, policy: KeyPolicy = KeyPolicy.LENIENT):
        self.policy = policy

    def read(self, config: dict) -> dict:
        request = _request_from_config(config, self.schema, self.policy)
        item = Item(request=request, result=compute(request))
        record = item.to_record()
        logger.debug("read data source: %s", redact(record, self.schema))
        return record
