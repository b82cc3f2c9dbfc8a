"""Tests for the identity codec.

Verifies file name encoding, alias sanitization, and identity decoding
from bare and aliased snapshot file names.
"""

import pytest

from object_snapshot.backup.codec import (
    IDENTITY_LENGTH,
    decode_identity,
    encode_file_name,
    is_identity,
    normalize_identity,
    sanitize_alias,
)

IDENTITY = "0123456789abcdef0123456789abcdef"
OTHER = "fedcba9876543210fedcba9876543210"


class TestIsIdentity:
    """Identity format checks."""

    def test_lower_case_identity(self):
        """32 lower-case hex characters is an identity."""
        assert is_identity(IDENTITY)

    def test_upper_case_identity(self):
        """Identities are case-insensitive."""
        assert is_identity(IDENTITY.upper())

    @pytest.mark.parametrize(
        "text",
        ["", None, IDENTITY[:-1], IDENTITY + "0", "g" * IDENTITY_LENGTH, f"{IDENTITY[:16]}-{IDENTITY[16:]}"],
    )
    def test_rejects_non_identities(self, text):
        """Wrong length, non-hex, and dashed forms are rejected."""
        assert not is_identity(text)

    def test_normalize_lowercases(self):
        """normalize_identity returns the lower-case form."""
        assert normalize_identity(IDENTITY.upper()) == IDENTITY

    def test_normalize_rejects_invalid(self):
        """normalize_identity raises ValueError for invalid input."""
        with pytest.raises(ValueError, match="Invalid identity"):
            normalize_identity("not-an-identity")


class TestSanitizeAlias:
    """Alias sanitization for file names."""

    def test_plain_alias_unchanged(self):
        """A plain alias passes through."""
        assert sanitize_alias("Sword") == "Sword"

    def test_illegal_characters_replaced(self):
        """Characters illegal in file names become the placeholder."""
        assert sanitize_alias("a/b\\c:d*e?f") == "a_b_c_d_e_f"

    def test_trailing_separators_and_whitespace_trimmed(self):
        """Trailing separator characters, dots, and spaces are trimmed."""
        assert sanitize_alias("Shield__ . ") == "Shield"

    def test_empty_and_none(self):
        """Empty or missing aliases sanitize to an empty string."""
        assert sanitize_alias("") == ""
        assert sanitize_alias(None) == ""


class TestEncodeFileName:
    """encode_file_name() output."""

    def test_alias_separator_identity(self):
        """Aliased names are alias + separator + identity + extension."""
        assert encode_file_name(IDENTITY, "Sword") == f"Sword__{IDENTITY}.json"

    def test_bare_identity_without_alias(self):
        """Without an alias the name is the bare identity."""
        assert encode_file_name(IDENTITY) == f"{IDENTITY}.json"

    def test_alias_that_sanitizes_to_empty(self):
        """An alias of only illegal characters falls back to the bare name."""
        assert encode_file_name(IDENTITY, "///") == f"{IDENTITY}.json"

    def test_identity_is_lowercased(self):
        """The identity is written in canonical lower case."""
        assert encode_file_name(IDENTITY.upper(), "X") == f"X__{IDENTITY}.json"

    def test_custom_separator_and_extension(self):
        """Separator and extension are configurable."""
        name = encode_file_name(IDENTITY, "Sword", separator="--", extension=".snap")
        assert name == f"Sword--{IDENTITY}.snap"

    def test_invalid_identity_raises(self):
        """Invalid identities are rejected."""
        with pytest.raises(ValueError):
            encode_file_name("abc", "Sword")


class TestDecodeIdentity:
    """decode_identity() lookup rules."""

    def test_bare_identity_name(self):
        """A bare identity stem decodes to itself."""
        assert decode_identity(f"{IDENTITY}.json") == IDENTITY

    def test_aliased_name(self):
        """The identity embedded after the alias is found."""
        assert decode_identity(f"Sword__{IDENTITY}.json") == IDENTITY

    def test_case_insensitive(self):
        """Upper-case identities decode to lower case."""
        assert decode_identity(f"Sword__{IDENTITY.upper()}.json") == IDENTITY

    def test_no_identity(self):
        """Names without a hex run return None."""
        assert decode_identity("notes.json") is None
        assert decode_identity("Sword__1234.json") is None

    def test_longer_hex_run_is_not_an_identity(self):
        """A 33-character hex run is not cut down to an identity."""
        assert decode_identity(f"x_{IDENTITY}a.json") is None

    def test_first_embedded_run_wins(self):
        """With two hex runs the first one is returned (documented edge case)."""
        assert decode_identity(f"{OTHER}__{IDENTITY}.json") == OTHER

    @pytest.mark.parametrize(
        "alias",
        ["Sword", "Any Alias", "weird: name?", "Café", "v1.2", ""],
    )
    def test_encode_decode_identity_stable(self, alias):
        """Decoding an encoded name returns the identity for ordinary aliases."""
        assert decode_identity(encode_file_name(IDENTITY, alias)) == IDENTITY
