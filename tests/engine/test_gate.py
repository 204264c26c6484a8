# tests/engine/test_gate.py
"""Tests for AccessGate ordering and gate semantics."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from sharegate.contracts import Credentials, DenialReason, Item
from sharegate.core.security import CredentialHasher
from sharegate.engine.gate import AccessGate

MakeItem = Callable[..., Item]

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)
QUESTION = "Capital of France?"


class CountingVerifier:
    """Verifier that records calls and accepts fixed plaintexts."""

    def __init__(self, password: str = "P@ss1234", answer: str = "paris") -> None:
        self.password = password
        self.answer = answer
        self.calls: list[str] = []

    def verify_password(self, password: str, hashed: str) -> bool:
        self.calls.append("password")
        return password == self.password

    def verify_quiz_answer(self, answer: str, hashed: str) -> bool:
        self.calls.append("quiz")
        return answer.strip().casefold() == self.answer


@pytest.fixture
def gate() -> AccessGate:
    return AccessGate(CountingVerifier())


@pytest.fixture
def gated(make_item: MakeItem) -> Item:
    """Item with every gate configured and currently satisfiable."""
    return make_item(
        password_hash="hashed-password",
        quiz_question=QUESTION,
        quiz_answer_hash="hashed-answer",
        view_limit=3,
        view_count=1,
        expires_at=NOW + timedelta(days=1),
        unlock_at=NOW - timedelta(hours=1),
    )


class TestSingleGates:
    def test_missing_item(self, gate: AccessGate) -> None:
        assert gate.evaluate(None, None, NOW).reason is DenialReason.NOT_FOUND

    def test_ungated_item_allowed(self, gate: AccessGate, make_item: MakeItem) -> None:
        decision = gate.evaluate(make_item(), None, NOW)
        assert decision.allowed
        assert decision.reason is None

    def test_expiry_boundary(self, gate: AccessGate, make_item: MakeItem) -> None:
        """Expired strictly after expires_at."""
        item = make_item(expires_at=NOW)
        assert gate.evaluate(item, None, NOW).allowed
        assert (
            gate.evaluate(item, None, NOW + timedelta(microseconds=1)).reason
            is DenialReason.EXPIRED
        )

    def test_quota_reached(self, gate: AccessGate, make_item: MakeItem) -> None:
        assert gate.evaluate(make_item(view_limit=2, view_count=1), None, NOW).allowed
        assert (
            gate.evaluate(make_item(view_limit=2, view_count=2), None, NOW).reason
            is DenialReason.QUOTA_EXHAUSTED
        )

    def test_locked_reports_unlock_time(self, gate: AccessGate, make_item: MakeItem) -> None:
        unlock = NOW + timedelta(minutes=5)
        decision = gate.evaluate(make_item(unlock_at=unlock), None, NOW)

        assert decision.reason is DenialReason.LOCKED
        assert decision.unlock_at == unlock

    def test_unlocked_at_exact_time(self, gate: AccessGate, make_item: MakeItem) -> None:
        assert gate.evaluate(make_item(unlock_at=NOW), None, NOW).allowed

    def test_quiz_failure_reports_question(self, gate: AccessGate, make_item: MakeItem) -> None:
        item = make_item(quiz_question=QUESTION, quiz_answer_hash="h")
        decision = gate.evaluate(item, Credentials(quiz_answer="Lyon"), NOW)

        assert decision.reason is DenialReason.QUIZ_FAILED
        assert decision.quiz_question == QUESTION

    def test_quiz_without_answer_fails(self, gate: AccessGate, make_item: MakeItem) -> None:
        item = make_item(quiz_question=QUESTION, quiz_answer_hash="h")
        assert gate.evaluate(item, None, NOW).reason is DenialReason.QUIZ_FAILED

    def test_password_required_then_invalid(self, gate: AccessGate, make_item: MakeItem) -> None:
        item = make_item(password_hash="h")

        assert gate.evaluate(item, None, NOW).reason is DenialReason.PASSWORD_REQUIRED
        assert (
            gate.evaluate(item, Credentials(password=""), NOW).reason
            is DenialReason.PASSWORD_REQUIRED
        )
        assert (
            gate.evaluate(item, Credentials(password="wrong"), NOW).reason
            is DenialReason.PASSWORD_INVALID
        )
        assert gate.evaluate(item, Credentials(password="P@ss1234"), NOW).allowed


class TestOrdering:
    def test_all_gates_satisfied(self, gate: AccessGate, gated: Item) -> None:
        credentials = Credentials(password="P@ss1234", quiz_answer=" PARIS ")
        assert gate.evaluate(gated, credentials, NOW).allowed

    def test_correct_quiz_without_password(self, gate: AccessGate, gated: Item) -> None:
        decision = gate.evaluate(gated, Credentials(quiz_answer="Paris"), NOW)
        assert decision.reason is DenialReason.PASSWORD_REQUIRED

    def test_quiz_checked_before_password(self, gate: AccessGate, gated: Item) -> None:
        decision = gate.evaluate(gated, Credentials(password="P@ss1234"), NOW)
        assert decision.reason is DenialReason.QUIZ_FAILED

    def test_expiry_beats_everything(self, gate: AccessGate, gated: Item) -> None:
        """Past expiry, not even a spent quota or a lock is reported."""
        later = NOW + timedelta(days=2)
        decision = gate.evaluate(gated, Credentials(password="P@ss1234"), later)
        assert decision.reason is DenialReason.EXPIRED

    def test_expired_and_exhausted_reports_expired(
        self, gate: AccessGate, make_item: MakeItem
    ) -> None:
        item = make_item(expires_at=NOW - timedelta(seconds=1), view_limit=1, view_count=1)
        assert gate.evaluate(item, None, NOW).reason is DenialReason.EXPIRED

    def test_quota_before_lock(self, gate: AccessGate, make_item: MakeItem) -> None:
        item = make_item(view_limit=1, view_count=1, unlock_at=NOW + timedelta(hours=1))
        assert gate.evaluate(item, None, NOW).reason is DenialReason.QUOTA_EXHAUSTED

    def test_locked_item_hides_quiz(self, make_item: MakeItem) -> None:
        verifier = CountingVerifier()
        gate = AccessGate(verifier)
        item = make_item(
            unlock_at=NOW + timedelta(hours=1),
            quiz_question=QUESTION,
            quiz_answer_hash="h",
            password_hash="h",
        )

        decision = gate.evaluate(item, Credentials(password="P@ss1234", quiz_answer="paris"), NOW)

        assert decision.reason is DenialReason.LOCKED
        assert decision.quiz_question is None
        assert verifier.calls == []

    def test_gate_never_mutates_item(self, gate: AccessGate, gated: Item) -> None:
        before = gated.view_count
        gate.evaluate(gated, Credentials(password="P@ss1234", quiz_answer="paris"), NOW)
        assert gated.view_count == before


class TestWithRealHashes:
    def test_bcrypt_backed_gate(self, hasher: CredentialHasher, make_item: MakeItem) -> None:
        gate = AccessGate(hasher)
        item = make_item(
            password_hash=hasher.hash_password("P@ss1234"),
            quiz_question=QUESTION,
            quiz_answer_hash=hasher.hash_quiz_answer("Paris"),
        )

        assert gate.evaluate(
            item, Credentials(password="P@ss1234", quiz_answer="  paris"), NOW
        ).allowed
        assert (
            gate.evaluate(item, Credentials(password="P@ss1235", quiz_answer="paris"), NOW).reason
            is DenialReason.PASSWORD_INVALID
        )
