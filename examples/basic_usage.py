"""
sodium_item — Basic Usage Example

Seals a secret to a recipient's public key and shows that re-applying the
same inputs keeps the stored ciphertext, while changed inputs replace it.
"""

import base64
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from nacl.public import PrivateKey, SealedBox

from sodium_item.resource import EncryptedItemResource
from sodium_item.schema import redact
from sodium_item.store import FileStateStore


def main():
    # The recipient keeps the private key; we only ever see the public half
    recipient = PrivateKey.generate()
    public_key_b64 = base64.b64encode(bytes(recipient.public_key)).decode()

    print("=" * 50)
    print("  sodium_item — Sealed Items")
    print("=" * 50)

    resource = EncryptedItemResource(FileStateStore("./example-state"))
    config = {
        "public_key_base64": public_key_b64,
        "content_base64": base64.b64encode(b"hunter2").decode(),
    }

    record, changed = resource.apply("db_password", config)
    print(f"\nFirst apply:  changed={changed} id={record['id']}")

    record_again, changed = resource.apply("db_password", config)
    print(f"Second apply: changed={changed} id={record_again['id']}")

    config["content_base64"] = base64.b64encode(b"correct horse").decode()
    updated, changed = resource.apply("db_password", config)
    print(f"New content:  changed={changed} id={updated['id']}")

    print("\nStored record (sensitive fields masked):")
    for key, value in redact(updated).items():
        print(f"  {key}: {value}")

    # Only the recipient can open it
    ciphertext = base64.b64decode(updated["encrypted_value_base64"])
    print(f"\nRecipient decrypts: {SealedBox(recipient).decrypt(ciphertext).decode()}")

    resource.delete("db_password")


if __name__ == "__main__":
    main()
