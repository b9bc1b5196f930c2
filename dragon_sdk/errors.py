"""
Satoshi Dragons SDK - Errors

Every rejection is terminal for the transaction attempt that caused it.
Nothing is retried; the caller builds and submits a corrected transaction.
"""


class DragonError(Exception):
    """Base class for all dragon protocol rejections."""


class AuthorizationError(DragonError):
    """Signature does not verify under the dragon's owner key."""


class OutputsMismatchError(DragonError):
    """Enclosing transaction outputs do not hash to the committed value."""

    def __init__(self, expected: bytes, actual: bytes):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"hashOutputs check failed: expected {expected.hex()[:16]}..., "
            f"got {actual.hex()[:16]}..."
        )


class PrevoutLinkError(DragonError):
    """Paired dragons do not descend from the same challenge transaction."""


class EntropyError(DragonError):
    """Block header or merkle proof failed validation."""


class InvalidStateError(DragonError):
    """Transition would start from, or produce, a state that breaks the lifecycle rules."""


class StateEncodingError(DragonError, ValueError):
    """State bytes are malformed or a field is not representable."""


class LedgerError(DragonError):
    """Transaction conflicts with the current UTXO set."""
