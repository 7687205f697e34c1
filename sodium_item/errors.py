"""
Errors raised by sodium_item.

Messages name the field and the step that failed. They never carry key
material, plaintext or ciphertext.
"""


class SodiumItemError(Exception):
    """Base class for sodium_item errors."""


class DecodeError(SodiumItemError, ValueError):
    """Input text is not well-formed standard base64."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        if field:
            message = f"Unable to decode {field}: {message}"
        super().__init__(message)


class InvalidKeyError(SodiumItemError, ValueError):
    """Decoded public key has the wrong size under the strict key policy."""


class SealError(SodiumItemError, RuntimeError):
    """The sealing primitive rejected its input or could not get randomness."""


class StateError(SodiumItemError):
    """A stored record does not satisfy the item's fingerprint invariant."""
