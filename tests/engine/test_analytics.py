# tests/engine/test_analytics.py
"""Tests for access analytics helpers."""

import hashlib
from datetime import UTC, datetime

import pytest

from sharegate.contracts import ClientInfo
from sharegate.engine.analytics import build_access_record, device_type, hash_ip

IPHONE = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148"
IPAD = "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) Mobile/15E148"
ANDROID_PHONE = "Mozilla/5.0 (Linux; Android 14; Pixel 8) Chrome/120.0 Mobile Safari/537.36"
ANDROID_TABLET = "Mozilla/5.0 (Linux; Android 13; SM-X700) Chrome/120.0 Safari/537.36"
WINDOWS = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0 Safari/537.36"
MAC = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) Safari/605.1.15"


class TestDeviceType:
    @pytest.mark.parametrize(
        ("agent", "expected"),
        [
            (IPHONE, "Mobile"),
            (ANDROID_PHONE, "Mobile"),
            (IPAD, "Tablet"),
            (ANDROID_TABLET, "Tablet"),
            (WINDOWS, "Desktop"),
            (MAC, "Desktop"),
            ("curl/8.4.0", "Unknown"),
            ("", "Unknown"),
            (None, "Unknown"),
        ],
    )
    def test_classification(self, agent: str | None, expected: str) -> None:
        assert device_type(agent) == expected


class TestHashIp:
    def test_sha256_hex(self) -> None:
        assert hash_ip("203.0.113.7") == hashlib.sha256(b"203.0.113.7").hexdigest()

    def test_missing_ip(self) -> None:
        assert hash_ip(None) is None
        assert hash_ip("") is None


class TestBuildAccessRecord:
    def test_raw_ip_never_kept(self) -> None:
        when = datetime(2030, 1, 1, tzinfo=UTC)
        record = build_access_record(
            "item-1", ClientInfo(user_agent=IPHONE, ip_address="203.0.113.7"), when
        )

        assert record.item_id == "item-1"
        assert record.accessed_at == when
        assert record.device_type == "Mobile"
        assert record.user_agent == IPHONE
        assert record.ip_hash == hash_ip("203.0.113.7")
        assert "203.0.113.7" not in repr(record)

    def test_without_client(self) -> None:
        record = build_access_record("item-1", None, datetime(2030, 1, 1, tzinfo=UTC))

        assert record.device_type == "Unknown"
        assert record.ip_hash is None
        assert len(record.access_id) == 32
