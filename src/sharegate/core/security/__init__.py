"""Security utilities for sharegate: content sealing and credential hashing."""

from sharegate.core.security.credentials import (
    CredentialHasher,
    normalize_quiz_answer,
    password_problems,
)
from sharegate.core.security.envelope import (
    ContentEnvelope,
    get_master_secret,
    looks_sealed,
)

__all__ = [
    "ContentEnvelope",
    "CredentialHasher",
    "get_master_secret",
    "looks_sealed",
    "normalize_quiz_answer",
    "password_problems",
]
