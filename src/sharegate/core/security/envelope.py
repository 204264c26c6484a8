"""At-rest sealing of inline text content.

Each seal derives a fresh AES-256-GCM key from the deployment master
secret and a fresh random salt (PBKDF2-HMAC-SHA256), then encrypts with a
fresh random nonce. The envelope is four base64 fields joined by ":":

    salt(64 bytes) : nonce(16 bytes) : tag(16 bytes) : ciphertext

Usage:
    from sharegate.core.security import ContentEnvelope

    envelope = ContentEnvelope(master_secret=secret)
    sealed = envelope.seal("meet at noon")
    envelope.open(sealed)  # "meet at noon"

    # Master secret from SHAREGATE_MASTER_SECRET
    envelope = ContentEnvelope()
"""

from __future__ import annotations

import base64
import binascii
import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from sharegate.contracts.errors import (
    ConfigurationMissingError,
    EnvelopeCorruptedError,
    EnvelopeFormatError,
)

_ENV_VAR = "SHAREGATE_MASTER_SECRET"

SALT_LENGTH = 64
NONCE_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32
DEFAULT_KDF_ITERATIONS = 100_000
MIN_KDF_ITERATIONS = 100_000
MIN_SECRET_LENGTH = 32

_FIELD_SEPARATOR = ":"
_FIELD_COUNT = 4
_BASE64_FIELD = re.compile(r"^[A-Za-z0-9+/]+=*$")


def get_master_secret() -> bytes:
    """Get the master secret from environment.

    Returns:
        The master secret as bytes

    Raises:
        ConfigurationMissingError: If SHAREGATE_MASTER_SECRET is not set
            or is too short
    """
    try:
        secret = os.environ[_ENV_VAR]
    except KeyError:
        raise ConfigurationMissingError(
            f"Environment variable {_ENV_VAR} must be set to seal or open text content. "
            "Generate a random secret of at least 32 characters and set it in your "
            "deployment environment."
        ) from None
    return _validated_secret(secret)


def _validated_secret(secret: str) -> bytes:
    if len(secret.strip()) < MIN_SECRET_LENGTH:
        raise ConfigurationMissingError(
            f"Master secret must be at least {MIN_SECRET_LENGTH} characters long."
        )
    return secret.encode("utf-8")


def looks_sealed(text: str | None) -> bool:
    """Heuristic: does text have the shape of a sealed envelope?

    Checks for four non-empty base64 fields. This separates legacy
    plaintext from sealed payloads during migration and is NOT a security
    check - plaintext can look sealed.

    Example:
        >>> looks_sealed("hello world")
        False
        >>> looks_sealed("YWJj:ZGVm:Z2hp:amts")
        True
    """
    if not text:
        return False
    parts = text.split(_FIELD_SEPARATOR)
    if len(parts) != _FIELD_COUNT:
        return False
    return all(part and _BASE64_FIELD.match(part) for part in parts)


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(field: str, name: str) -> bytes:
    if not field or not _BASE64_FIELD.match(field):
        raise EnvelopeFormatError(f"Envelope {name} is not valid base64.")
    try:
        return base64.b64decode(field, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EnvelopeFormatError(f"Envelope {name} is not valid base64.") from e


class ContentEnvelope:
    """Seals and opens inline text with AES-256-GCM.

    Stateless apart from configuration: safe to share across threads.
    """

    def __init__(
        self,
        master_secret: str | None = None,
        *,
        kdf_iterations: int = DEFAULT_KDF_ITERATIONS,
    ) -> None:
        """Initialize envelope.

        Args:
            master_secret: Deployment master secret. If not provided, read
                from SHAREGATE_MASTER_SECRET at each seal/open, so a missing
                secret only fails textual operations.
            kdf_iterations: PBKDF2 iterations (at least 100,000)

        Raises:
            ValueError: If kdf_iterations is below the minimum
            ConfigurationMissingError: If master_secret is given but too short
        """
        if kdf_iterations < MIN_KDF_ITERATIONS:
            raise ValueError(
                f"kdf_iterations must be at least {MIN_KDF_ITERATIONS}, got {kdf_iterations}"
            )
        self._kdf_iterations = kdf_iterations
        self._master_secret = (
            _validated_secret(master_secret) if master_secret is not None else None
        )

    def require(self) -> None:
        """Fail fast if no usable master secret is available.

        Call at startup in deployments that store text content.

        Raises:
            ConfigurationMissingError: If the master secret is missing
        """
        self._secret()

    def _secret(self) -> bytes:
        if self._master_secret is not None:
            return self._master_secret
        return get_master_secret()

    def _derive_key(self, secret: bytes, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=self._kdf_iterations,
        )
        return kdf.derive(secret)

    def seal(self, plaintext: str) -> str:
        """Encrypt text into an envelope.

        Sealing the same text twice never gives the same envelope.

        Args:
            plaintext: Non-empty text to seal

        Returns:
            "salt:nonce:tag:ciphertext", each field base64

        Raises:
            ValueError: If plaintext is empty
            ConfigurationMissingError: If no master secret is available
        """
        if not plaintext:
            raise ValueError("Cannot seal empty text")
        secret = self._secret()

        salt = os.urandom(SALT_LENGTH)
        nonce = os.urandom(NONCE_LENGTH)
        key = self._derive_key(secret, salt)

        # AESGCM appends the tag to the ciphertext
        sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

        return _FIELD_SEPARATOR.join(
            [_b64encode(salt), _b64encode(nonce), _b64encode(tag), _b64encode(ciphertext)]
        )

    def open(self, envelope: str) -> str:
        """Decrypt an envelope produced by seal().

        Structure is validated before any key derivation.

        Args:
            envelope: Sealed text

        Returns:
            Original plaintext

        Raises:
            EnvelopeFormatError: If the envelope is structurally invalid
            EnvelopeCorruptedError: If authentication fails (tampering or
                wrong master secret)
            ConfigurationMissingError: If no master secret is available
        """
        if not envelope:
            raise EnvelopeFormatError("Cannot open an empty envelope.")

        parts = envelope.split(_FIELD_SEPARATOR)
        if len(parts) != _FIELD_COUNT:
            raise EnvelopeFormatError(
                f"Envelope has {len(parts)} fields, expected {_FIELD_COUNT}."
            )

        salt = _b64decode(parts[0], "salt")
        nonce = _b64decode(parts[1], "nonce")
        tag = _b64decode(parts[2], "tag")
        ciphertext = _b64decode(parts[3], "ciphertext")

        if len(salt) != SALT_LENGTH:
            raise EnvelopeFormatError("Invalid salt length. Data may be corrupted.")
        if len(nonce) != NONCE_LENGTH:
            raise EnvelopeFormatError("Invalid nonce length. Data may be corrupted.")
        if len(tag) != TAG_LENGTH:
            raise EnvelopeFormatError("Invalid tag length. Data may be corrupted.")

        key = self._derive_key(self._secret(), salt)
        try:
            plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
        except InvalidTag:
            raise EnvelopeCorruptedError(
                "Envelope failed authentication: wrong master secret or corrupted data."
            ) from None

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EnvelopeCorruptedError("Envelope plaintext is not valid UTF-8.") from e
