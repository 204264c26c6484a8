"""Access gate: the ordered decision over an item's protections.

Evaluation order is fixed and is part of the contract:

    existence -> expiry -> quota -> delayed release -> quiz -> password

The first failing gate decides the denial. A locked item therefore never
reveals its quiz question, and an expired item never asks for a password.

The gate is pure. It reads the item, the supplied credentials and the
clock value it is given; it never writes anything. Whether a view is
actually consumed is decided afterwards by ViewAccountant.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from sharegate.contracts.enums import DenialReason
from sharegate.contracts.items import Credentials, Item
from sharegate.contracts.results import GateDecision

_NO_CREDENTIALS = Credentials()


class CredentialVerifier(Protocol):
    """One-way verification primitive used by the gate."""

    def verify_password(self, password: str, hashed: str) -> bool: ...

    def verify_quiz_answer(self, answer: str, hashed: str) -> bool: ...


class AccessGate:
    """Evaluates every configured gate of an item in the fixed order.

    Example:
        gate = AccessGate(CredentialHasher())
        decision = gate.evaluate(item, Credentials(password="P@ss1234"), now)
        if not decision.allowed:
            prompt_for(decision.reason)
    """

    def __init__(self, verifier: CredentialVerifier) -> None:
        self._verifier = verifier

    def evaluate(
        self,
        item: Item | None,
        credentials: Credentials | None,
        now: datetime,
    ) -> GateDecision:
        """Decide whether credentials open item at time now.

        Args:
            item: The stored item, or None if it does not exist
            credentials: What the consumer supplied (None = nothing)
            now: Evaluation time (timezone-aware)

        Returns:
            GateDecision.allow() or a denial carrying its reason
        """
        if item is None:
            return GateDecision.deny(DenialReason.NOT_FOUND)

        if item.expires_at is not None and now > item.expires_at:
            return GateDecision.deny(DenialReason.EXPIRED)

        if item.view_limit is not None and item.view_count >= item.view_limit:
            return GateDecision.deny(DenialReason.QUOTA_EXHAUSTED)

        if item.unlock_at is not None and now < item.unlock_at:
            return GateDecision.deny(DenialReason.LOCKED, unlock_at=item.unlock_at)

        supplied = credentials or _NO_CREDENTIALS

        if item.has_quiz:
            assert item.quiz_answer_hash is not None  # has_quiz guarantees it
            if not supplied.quiz_answer or not self._verifier.verify_quiz_answer(
                supplied.quiz_answer, item.quiz_answer_hash
            ):
                return GateDecision.deny(
                    DenialReason.QUIZ_FAILED, quiz_question=item.quiz_question
                )

        if item.password_hash is not None:
            if not supplied.password:
                return GateDecision.deny(DenialReason.PASSWORD_REQUIRED)
            if not self._verifier.verify_password(supplied.password, item.password_hash):
                return GateDecision.deny(DenialReason.PASSWORD_INVALID)

        return GateDecision.allow()
