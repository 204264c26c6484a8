"""Exception hierarchy for the sharegate engine.

Gate denials and quota exhaustion are NOT exceptions. They are routine
outcomes returned as values (GateDecision, ConsumeOutcome, ResolveResult).
The exceptions here signal operational or integrity conditions.
"""

from __future__ import annotations

from sharegate.contracts.enums import IdDomain


class ShareGateError(Exception):
    """Base class for all sharegate errors."""

    retryable: bool = False


class ItemNotFoundError(ShareGateError):
    """Raised when an owner operation names an item that does not exist."""

    def __init__(self, short_id: str) -> None:
        self.short_id = short_id
        super().__init__(f"Item not found: {short_id}")


class OwnerTokenInvalidError(ShareGateError):
    """Raised when the supplied owner token does not match the item."""

    def __init__(self, short_id: str) -> None:
        self.short_id = short_id
        super().__init__(f"Owner token rejected for item {short_id}")


class CapacityExhaustedError(ShareGateError):
    """Raised when identifier allocation runs out of attempts.

    This is keyspace pressure, not a bug. Callers should report the
    service as busy and retry later.

    Attributes:
        domain: Identifier domain that could not be allocated
        attempts: Number of candidates tried
    """

    retryable = True

    def __init__(self, domain: IdDomain, attempts: int) -> None:
        self.domain = domain
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a free {domain.value} after {attempts} attempts. "
            "Identifier space is under pressure - retry later."
        )


class IdentifierConflictError(ShareGateError):
    """Raised by the store when an insert violates identifier uniqueness.

    Happens when two concurrent creations pick the same free candidate.
    The creation path treats it as an ordinary collision.
    """

    retryable = True


class EnvelopeCorruptedError(ShareGateError):
    """Raised when a sealed envelope fails authentication.

    Covers tampered data and a wrong master secret alike. No partial
    plaintext is ever produced.
    """


class EnvelopeFormatError(EnvelopeCorruptedError):
    """Raised when an envelope is structurally invalid.

    Detected before any cryptographic work: wrong field count, bad
    base64, or wrong salt/nonce/tag length.
    """


class ConfigurationMissingError(ShareGateError):
    """Raised when required configuration (the master secret) is absent."""


class WeakPasswordError(ShareGateError):
    """Raised at creation when a gate password fails the strength rules.

    Attributes:
        problems: Human-readable list of rule violations
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("Weak password: " + "; ".join(problems))
