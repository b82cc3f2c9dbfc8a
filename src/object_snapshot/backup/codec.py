"""Identity codec: stable identities to and from snapshot file names.

A snapshot file name is ``{sanitized alias}{separator}{identity}{extension}``,
or the bare ``{identity}{extension}`` when there is no alias. The alias is
cosmetic; only the embedded identity is authoritative on lookup.

Usage:
    from object_snapshot.backup.codec import encode_file_name, decode_identity

    name = encode_file_name("0f3c...e1", "Sword")   # "Sword__0f3c...e1.json"
    decode_identity(name)                           # "0f3c...e1"
"""

import re
from pathlib import PurePath

IDENTITY_LENGTH = 32

DEFAULT_SEPARATOR = "__"
DEFAULT_EXTENSION = ".json"

_IDENTITY_RE = re.compile(rf"^[0-9a-fA-F]{{{IDENTITY_LENGTH}}}$")

# A fixed-width hex run not touching other hex characters
_EMBEDDED_IDENTITY_RE = re.compile(
    rf"(?<![0-9a-fA-F])[0-9a-fA-F]{{{IDENTITY_LENGTH}}}(?![0-9a-fA-F])"
)

# Characters illegal in file names on common platforms, plus control chars
_ILLEGAL_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def is_identity(text: str | None) -> bool:
    """Return ``True`` if *text* is exactly one identity (any case)."""
    return bool(text) and _IDENTITY_RE.match(text) is not None


def normalize_identity(text: str) -> str:
    """Return the canonical (lower-case) form of an identity.

    Raises:
        ValueError: If *text* is not a valid identity.
    """
    if not is_identity(text):
        raise ValueError(
            f"Invalid identity '{text}' (expected {IDENTITY_LENGTH} hex characters)"
        )
    return text.lower()


def sanitize_alias(
    alias: str | None,
    placeholder: str = "_",
    separator: str = DEFAULT_SEPARATOR,
) -> str:
    """Make *alias* safe for use in a file name.

    Illegal characters become *placeholder*; trailing separators, dots, and
    whitespace are trimmed.

    Examples:
        >>> sanitize_alias('Sword: "Legendary"')
        'Sword_ _Legendary'
        >>> sanitize_alias("Shield__ ")
        'Shield'
    """
    if not alias:
        return ""
    cleaned = _ILLEGAL_CHARS_RE.sub(placeholder, alias)
    trim = set(" \t.") | set(separator) | set(placeholder)
    return cleaned.rstrip("".join(trim)).strip()


def encode_file_name(
    identity: str,
    alias: str | None = None,
    separator: str = DEFAULT_SEPARATOR,
    extension: str = DEFAULT_EXTENSION,
) -> str:
    """Build the snapshot file name for *identity*.

    Args:
        identity: Stable identity (32 hex characters, any case).
        alias: Optional human-readable prefix. Omitted when it sanitizes
            to an empty string.
        separator: Text between alias and identity.
        extension: File extension including the dot.

    Returns:
        ``"{alias}{separator}{identity}{extension}"`` or
        ``"{identity}{extension}"``.

    Raises:
        ValueError: If *identity* is not a valid identity.
    """
    identity = normalize_identity(identity)
    prefix = sanitize_alias(alias, separator=separator)
    if prefix:
        return f"{prefix}{separator}{identity}{extension}"
    return f"{identity}{extension}"


def decode_identity(name: str) -> str | None:
    """Extract the identity from a snapshot file name.

    The stem (file name without extension) is accepted when it is a bare
    identity; otherwise the first embedded 32-character hex run is used.
    An alias containing its own hex run ahead of the real identity will
    therefore win -- a documented edge case.

    Returns:
        Lower-case identity, or ``None`` if the name holds none.

    Examples:
        >>> decode_identity("Sword__0123456789ABCDEF0123456789abcdef.json")
        '0123456789abcdef0123456789abcdef'
        >>> decode_identity("notes.json") is None
        True
    """
    stem = PurePath(name).stem
    if is_identity(stem):
        return stem.lower()

    match = _EMBEDDED_IDENTITY_RE.search(stem)
    if match is None:
        return None
    return match.group(0).lower()
