"""Tests for contracts enums."""

import pytest


class TestContentKind:
    """ContentKind is the stored discriminator for item payloads."""

    def test_stored_values(self) -> None:
        from sharegate.contracts import ContentKind

        assert ContentKind.BLOB.value == "blob"
        assert ContentKind.REDIRECT.value == "redirect"
        assert ContentKind.TEXT.value == "text"
        assert ContentKind.DOC_EXTRACT.value == "doc_extract"
        assert ContentKind.SLIDE_EXTRACT.value == "slide_extract"
        assert len(list(ContentKind)) == 5

    def test_textual_kinds(self) -> None:
        from sharegate.contracts import ContentKind

        assert ContentKind.TEXT.is_textual
        assert ContentKind.DOC_EXTRACT.is_textual
        assert ContentKind.SLIDE_EXTRACT.is_textual
        assert not ContentKind.BLOB.is_textual
        assert not ContentKind.REDIRECT.is_textual

    def test_unknown_value_crashes(self) -> None:
        """No silent fallback for values the store should never hold."""
        from sharegate.contracts import ContentKind

        with pytest.raises(ValueError):
            ContentKind("text:legacy")


class TestItemType:
    @pytest.mark.parametrize(
        ("declared", "expected"),
        [
            ("pdf", "pdf"),
            ("image", "image"),
            ("archive", "zip"),
            ("document", "word"),
            ("presentation", "ppt"),
            ("  PDF ", "pdf"),
            ("spreadsheet", "universal"),
            ("", "universal"),
            (None, "universal"),
        ],
    )
    def test_from_declared(self, declared: str | None, expected: str) -> None:
        from sharegate.contracts import ItemType

        assert ItemType.from_declared(declared).value == expected


class TestDenialReason:
    def test_declaration_order_matches_evaluation_order(self) -> None:
        from sharegate.contracts import DenialReason

        assert [reason.value for reason in DenialReason] == [
            "not_found",
            "expired",
            "quota_exhausted",
            "locked",
            "quiz_failed",
            "password_required",
            "password_invalid",
        ]

    def test_terminal_reasons(self) -> None:
        """Terminal reasons cannot be fixed by supplying credentials."""
        from sharegate.contracts import DenialReason

        terminal = {reason for reason in DenialReason if reason.is_terminal}
        assert terminal == {
            DenialReason.NOT_FOUND,
            DenialReason.EXPIRED,
            DenialReason.QUOTA_EXHAUSTED,
        }


class TestIdDomain:
    def test_two_independent_domains(self) -> None:
        from sharegate.contracts import IdDomain

        assert {d.value for d in IdDomain} == {"short_id", "secondary_id"}
