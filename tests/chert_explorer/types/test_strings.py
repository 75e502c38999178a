"""Tests for the pattern-checked string value types."""

from __future__ import annotations

import pytest

from chert_explorer.types import AccountAddress, CommitteeId, Hash, ValidationError


class TestHash:
    """Tests for `Hash`."""

    def test_accepts_lowercase_hex(self) -> None:
        """64 lowercase hex digits are a valid hash."""
        assert Hash("ab" * 32) == "ab" * 32

    def test_canonicalizes_prefix_and_case(self) -> None:
        """A 0x prefix and uppercase digits are normalized away."""
        assert Hash("0x" + "AB" * 32) == "ab" * 32

    @pytest.mark.parametrize("value", ["ab" * 31, "zz" * 32, "", "ab" * 33])
    def test_rejects_malformed(self, value: str) -> None:
        """Wrong length or non-hex digits are rejected."""
        with pytest.raises(ValidationError, match="Malformed Hash"):
            Hash(value)

    def test_rejects_non_strings(self) -> None:
        """Only strings are accepted."""
        with pytest.raises(ValidationError, match="requires a string"):
            Hash(42)

    def test_is_valid_does_not_raise(self) -> None:
        """`is_valid` reports instead of raising."""
        assert Hash.is_valid("0" * 64)
        assert not Hash.is_valid("0" * 63)
        assert not Hash.is_valid(None)


class TestAccountAddress:
    """Tests for `AccountAddress`."""

    @pytest.mark.parametrize(
        "value",
        [
            "chert_" + "a" * 36,
            "chert_" + "0" * 64,
            "0x" + "1" * 40,
            "CHERT_" + "A" * 36,
        ],
    )
    def test_accepts_both_forms(self, value: str) -> None:
        """Prefixed and 0x addresses are both accepted."""
        assert AccountAddress(value) == value.lower()

    @pytest.mark.parametrize(
        "value",
        [
            "chert_" + "a" * 35,
            "c_" + "a" * 36,
            "0x" + "1" * 39,
            "not-an-address",
        ],
    )
    def test_rejects_malformed(self, value: str) -> None:
        """Short digests, one-letter prefixes and free text are rejected."""
        with pytest.raises(ValidationError):
            AccountAddress(value)


class TestCommitteeId:
    """Tests for `CommitteeId`."""

    def test_accepts_expected_format(self) -> None:
        """`committee_` plus 24 hex digits is valid."""
        assert CommitteeId("committee_" + "f" * 24) == "committee_" + "f" * 24

    def test_rejects_other_lengths(self) -> None:
        """Any other digit count is rejected."""
        with pytest.raises(ValidationError):
            CommitteeId("committee_" + "f" * 23)

    def test_repr_names_the_type(self) -> None:
        """The repr shows the value type."""
        assert repr(CommitteeId("committee_" + "0" * 24)).startswith("CommitteeId(")
