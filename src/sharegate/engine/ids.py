"""Public identifier allocation.

Identifiers are drawn uniformly from a 62-symbol alphabet. Uniqueness is
decided by the store, never by an in-process lock: a candidate that turns
out to be taken is a collision and a fresh one is drawn, up to a small
fixed budget.
"""

from __future__ import annotations

import secrets
import string
from collections.abc import Callable
from typing import Protocol

from sharegate.contracts.enums import IdDomain
from sharegate.contracts.errors import CapacityExhaustedError
from sharegate.core.logging import get_logger

ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
DEFAULT_LENGTH = 8
DEFAULT_MAX_ATTEMPTS = 5

logger = get_logger(__name__)


class IdentifierLookup(Protocol):
    """Minimal store interface required by IdAllocator."""

    def identifier_exists(self, domain: IdDomain, candidate: str) -> bool:
        """Whether candidate is already taken in domain."""
        ...


def random_identifier(length: int = DEFAULT_LENGTH) -> str:
    """Draw one identifier from the 62-symbol alphabet.

    Example:
        >>> len(random_identifier(8))
        8
    """
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


class IdAllocator:
    """Allocates short ids and secondary ids with bounded collision retry.

    Example:
        allocator = IdAllocator(store)
        short_id = allocator.allocate(IdDomain.SHORT_ID)
    """

    def __init__(
        self,
        lookup: IdentifierLookup,
        *,
        length: int = DEFAULT_LENGTH,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        candidate_factory: Callable[[int], str] | None = None,
    ) -> None:
        """Initialize allocator.

        Args:
            lookup: Store used for existence checks
            length: Identifier length in symbols
            max_attempts: Candidates tried before giving up
            candidate_factory: Produces a candidate of the given length
                (defaults to random_identifier)
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")
        self._lookup = lookup
        self._length = length
        self._max_attempts = max_attempts
        self._candidate_factory = candidate_factory or random_identifier

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def allocate(self, domain: IdDomain) -> str:
        """Return an identifier not currently used in domain.

        Args:
            domain: Which uniqueness domain to allocate in

        Returns:
            A free identifier

        Raises:
            CapacityExhaustedError: If every attempt collided
        """
        for attempt in range(1, self._max_attempts + 1):
            candidate = self._candidate_factory(self._length)
            if not self._lookup.identifier_exists(domain, candidate):
                return candidate
            logger.warning(
                "identifier_collision",
                domain=domain.value,
                attempt=attempt,
                max_attempts=self._max_attempts,
            )

        logger.error(
            "identifier_capacity_exhausted",
            domain=domain.value,
            attempts=self._max_attempts,
        )
        raise CapacityExhaustedError(domain, self._max_attempts)
