# tests/core/security/test_envelope.py
"""Tests for the text sealing envelope."""

import base64

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from sharegate.contracts import (
    ConfigurationMissingError,
    EnvelopeCorruptedError,
    EnvelopeFormatError,
)
from sharegate.core.security import ContentEnvelope, looks_sealed

SECRET = "unit-test-master-secret-0123456789"


def _fields(sealed: str) -> list[bytes]:
    return [base64.b64decode(part) for part in sealed.split(":")]


def _join(fields: list[bytes]) -> str:
    return ":".join(base64.b64encode(f).decode("ascii") for f in fields)


class TestSealOpen:
    # Every seal and open runs 100k PBKDF2 iterations
    @settings(max_examples=25)
    @given(plaintext=st.text(min_size=1, max_size=200))
    def test_round_trip(self, plaintext: str) -> None:
        envelope = ContentEnvelope(SECRET)
        assert envelope.open(envelope.seal(plaintext)) == plaintext

    @pytest.mark.parametrize(
        "plaintext",
        ["meet at noon", "línea 1\nlínea 2\r\n", "密码 🔐 пароль", " ", "a" * 10_000],
    )
    def test_round_trip_examples(self, plaintext: str) -> None:
        envelope = ContentEnvelope(SECRET)
        assert envelope.open(envelope.seal(plaintext)) == plaintext

    def test_sealing_is_non_deterministic(self) -> None:
        envelope = ContentEnvelope(SECRET)
        first = envelope.seal("same text")
        second = envelope.seal("same text")

        assert first != second
        salt_a, nonce_a, _, _ = _fields(first)
        salt_b, nonce_b, _, _ = _fields(second)
        assert salt_a != salt_b
        assert nonce_a != nonce_b

    def test_envelope_layout(self) -> None:
        sealed = ContentEnvelope(SECRET).seal("hello")
        salt, nonce, tag, ciphertext = _fields(sealed)

        assert len(salt) == 64
        assert len(nonce) == 16
        assert len(tag) == 16
        assert len(ciphertext) == len(b"hello")

    def test_empty_text_rejected(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            ContentEnvelope(SECRET).seal("")

    def test_wrong_secret_fails_authentication(self) -> None:
        sealed = ContentEnvelope(SECRET).seal("hello")
        other = ContentEnvelope("another-master-secret-0123456789ab")

        with pytest.raises(EnvelopeCorruptedError):
            other.open(sealed)


class TestTamperDetection:
    @pytest.mark.parametrize("field_index", [2, 3], ids=["tag", "ciphertext"])
    def test_every_flipped_byte_is_detected(self, field_index: int) -> None:
        envelope = ContentEnvelope(SECRET)
        fields = _fields(envelope.seal("tamper me"))

        for position in range(len(fields[field_index])):
            tampered = list(fields)
            data = bytearray(tampered[field_index])
            data[position] ^= 0x01
            tampered[field_index] = bytes(data)

            with pytest.raises(EnvelopeCorruptedError):
                envelope.open(_join(tampered))

    def test_flipped_salt_is_detected(self) -> None:
        envelope = ContentEnvelope(SECRET)
        salt, nonce, tag, ciphertext = _fields(envelope.seal("tamper me"))
        salt = bytes([salt[0] ^ 0x01]) + salt[1:]

        with pytest.raises(EnvelopeCorruptedError):
            envelope.open(_join([salt, nonce, tag, ciphertext]))


class TestFormatValidation:
    @pytest.mark.parametrize(
        "envelope_text",
        [
            "",
            "not an envelope",
            "YWJj:ZGVm:Z2hp",
            "YWJj:ZGVm:Z2hp:amts:bW5v",
            "!!!!:ZGVm:Z2hp:amts",
        ],
    )
    def test_structural_errors(self, envelope_text: str) -> None:
        with pytest.raises(EnvelopeFormatError):
            ContentEnvelope(SECRET).open(envelope_text)

    def test_wrong_lengths_rejected_before_crypto(self) -> None:
        envelope = ContentEnvelope(SECRET)
        salt, nonce, tag, ciphertext = _fields(envelope.seal("hello"))

        with pytest.raises(EnvelopeFormatError, match="salt"):
            envelope.open(_join([salt[:32], nonce, tag, ciphertext]))
        with pytest.raises(EnvelopeFormatError, match="nonce"):
            envelope.open(_join([salt, nonce[:12], tag, ciphertext]))
        with pytest.raises(EnvelopeFormatError, match="tag"):
            envelope.open(_join([salt, nonce, tag[:8], ciphertext]))

    def test_format_error_is_a_corruption_error(self) -> None:
        assert issubclass(EnvelopeFormatError, EnvelopeCorruptedError)


class TestMasterSecret:
    def test_secret_from_environment(self, master_secret: str) -> None:
        envelope = ContentEnvelope()
        assert envelope.open(envelope.seal("hello")) == "hello"

    def test_missing_secret_fails_only_on_use(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SHAREGATE_MASTER_SECRET", raising=False)
        envelope = ContentEnvelope()  # construction does not need the secret

        with pytest.raises(ConfigurationMissingError, match="SHAREGATE_MASTER_SECRET"):
            envelope.seal("hello")
        with pytest.raises(ConfigurationMissingError):
            envelope.require()

    def test_short_secret_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SHAREGATE_MASTER_SECRET", "short")
        with pytest.raises(ConfigurationMissingError, match="32"):
            ContentEnvelope().require()

    def test_short_explicit_secret_rejected(self) -> None:
        with pytest.raises(ConfigurationMissingError):
            ContentEnvelope("short")

    def test_iteration_floor(self) -> None:
        with pytest.raises(ValueError, match="100000"):
            ContentEnvelope(SECRET, kdf_iterations=1_000)


class TestLooksSealed:
    def test_sealed_output_looks_sealed(self) -> None:
        assert looks_sealed(ContentEnvelope(SECRET).seal("hello"))

    @pytest.mark.parametrize(
        "text",
        [None, "", "hello world", "a:b:c", "https://example.com/a:b", "YWJj::Z2hp:amts"],
    )
    def test_plaintext_does_not_look_sealed(self, text: str | None) -> None:
        assert not looks_sealed(text)
