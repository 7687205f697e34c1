"""
Attribute schema for the encrypted item resource and data source.

Static tables: which fields the caller must supply, which are computed,
and which must be masked wherever records are shown or logged.
"""

from dataclasses import dataclass

REDACTED = "(sensitive value)"

RESOURCE_TYPE = "encrypted_item"


@dataclass(frozen=True)
class Attribute:
    """One field of an item record."""
    name: str
    description: str
    required: bool = False
    computed: bool = False
    sensitive: bool = False


ENCRYPTED_ITEM_RESOURCE = (
    Attribute(
        "public_key_base64",
        "Public key to use when encrypting, base64 encoded.",
        required=True,
    ),
    Attribute(
        "content_base64",
        "Base64 encoded version of the raw string to encrypt.",
        required=True,
        sensitive=True,
    ),
    Attribute(
        "encrypted_value_base64",
        "Base64 encoded version of the encrypted result.",
        computed=True,
        sensitive=True,
    ),
    Attribute(
        "content_checksum",
        "SHA-1 hex digest of content_base64.",
        computed=True,
    ),
    Attribute(
        "id",
        "SHA-1 hex digest of encrypted_value_base64.",
        computed=True,
    ),
)

# The data source exposes the same fields; it is computed on every read.
ENCRYPTED_ITEM_DATA_SOURCE = ENCRYPTED_ITEM_RESOURCE


def required_names(schema=ENCRYPTED_ITEM_RESOURCE) -> list[str]:
    return [a.name for a in schema if a.required]


def check_config(config: dict, schema=ENCRYPTED_ITEM_RESOURCE) -> dict:
    """
    Validate a caller-supplied config against the schema.

    Returns:
        Only the required (input) fields, as plain strings.

    Raises:
        ValueError: If a required field is missing or not a string, or a
            computed field is set by the caller.
    """
    for attr in schema:
        if attr.computed and attr.name in config:
            raise ValueError(f"{attr.name} is computed and cannot be set")

    inputs = {}
    for name in required_names(schema):
        value = config.get(name)
        if value is None:
            raise ValueError(f"Missing required attribute {name}")
        if not isinstance(value, str):
            raise ValueError(f"Attribute {name} must be a string")
        inputs[name] = value
    return inputs


def redact(record: dict, schema=ENCRYPTED_ITEM_RESOURCE) -> dict:
    """Copy a record with every sensitive value replaced by REDACTED."""
    sensitive = {a.name for a in schema if a.sensitive}
    return {
        key: (REDACTED if key in sensitive and value is not None else value)
        for key, value in record.items()
    }
