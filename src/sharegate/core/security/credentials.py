"""One-way hashing for gate passwords and quiz answers.

Uses bcrypt. Plaintext credentials are never stored or logged; only the
bcrypt hash is persisted and comparison is done by bcrypt itself.
"""

from __future__ import annotations

import hashlib
import re

import bcrypt

DEFAULT_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of its input
_BCRYPT_MAX_BYTES = 72

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
_SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*()_+\-=\[\]{}|;:,.<>?]")
_COMMON_PASSWORDS = frozenset({"password", "12345678", "qwerty123", "password123"})


def _bcrypt_input(secret: str) -> bytes:
    """Encode a secret for bcrypt, pre-hashing anything past the 72-byte window."""
    raw = secret.encode("utf-8")
    if len(raw) <= _BCRYPT_MAX_BYTES:
        return raw
    return hashlib.sha256(raw).hexdigest().encode("ascii")


def normalize_quiz_answer(answer: str) -> str:
    """Quiz answers compare trimmed and case-insensitively.

    Example:
        >>> normalize_quiz_answer("  Paris ")
        'paris'
    """
    return answer.strip().casefold()


def password_problems(password: str) -> list[str]:
    """Check a gate password against the strength rules.

    Returns:
        List of rule violations; empty if the password is acceptable
    """
    if not password:
        return ["Password is required"]

    problems: list[str] = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"Minimum {MIN_PASSWORD_LENGTH} characters required")
    if len(password) > MAX_PASSWORD_LENGTH:
        problems.append(f"Maximum {MAX_PASSWORD_LENGTH} characters allowed")
    if not re.search(r"[A-Z]", password):
        problems.append("Must contain uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Must contain lowercase letter")
    if not re.search(r"[0-9]", password):
        problems.append("Must contain number")
    if not _SPECIAL_CHARACTERS.search(password):
        problems.append("Must contain special character")
    if password.lower() in _COMMON_PASSWORDS:
        problems.append("Password too common")
    return problems


class CredentialHasher:
    """bcrypt hashing and verification for gate credentials.

    Example:
        hasher = CredentialHasher(rounds=10)
        stored = hasher.hash_password("P@ss1234")
        hasher.verify_password("P@ss1234", stored)  # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self._rounds = rounds

    def _hash(self, secret: str) -> str:
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(_bcrypt_input(secret), salt).decode("ascii")

    @staticmethod
    def _verify(secret: str, hashed: str) -> bool:
        return bcrypt.checkpw(_bcrypt_input(secret), hashed.encode("ascii"))

    def hash_password(self, password: str) -> str:
        return self._hash(password)

    def verify_password(self, password: str, hashed: str) -> bool:
        return self._verify(password, hashed)

    def hash_quiz_answer(self, answer: str) -> str:
        """Hash the normalized form of a quiz answer."""
        return self._hash(normalize_quiz_answer(answer))

    def verify_quiz_answer(self, answer: str, hashed: str) -> bool:
        """Verify a supplied answer, normalized the same way as at creation."""
        return self._verify(normalize_quiz_answer(answer), hashed)
