"""16-byte object identifiers and their dashed hex (guid) form."""

import re
from typing import Final
from uuid import UUID

from traveltime_client.domain.exceptions import FormatError

OBJECT_ID_LENGTH: Final[int] = 16

_DASHED_GUID_RE: Final[re.Pattern[str]] = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_PLAIN_GUID_RE: Final[re.Pattern[str]] = re.compile(r"^[0-9a-fA-F]{32}$")


def to_guid(data: bytes) -> str:
    """Render 16 raw bytes as a lowercase 8-4-4-4-12 guid.

    Args:
        data: Raw identifier bytes

    Returns:
        Dashed lowercase hex string

    Raises:
        FormatError: If data is not exactly 16 bytes

    Example:
        >>> to_guid(bytes(range(16)))
        '00010203-0405-0607-0809-0a0b0c0d0e0f'
    """
    if len(data) != OBJECT_ID_LENGTH:
        raise FormatError(
            f"Object id must be {OBJECT_ID_LENGTH} bytes, got {len(data)}"
        )
    return str(UUID(bytes=bytes(data)))


def from_guid(text: str) -> bytes:
    """Parse a dashed or undashed guid into its 16 raw bytes.

    Args:
        text: Guid string (case-insensitive, surrounding whitespace ignored)

    Returns:
        Raw identifier bytes

    Raises:
        FormatError: If text is not 32 hex digits in plain or 8-4-4-4-12 form
    """
    if not isinstance(text, str):
        raise FormatError(f"Guid must be a string, got {type(text).__name__}")

    candidate = text.strip()
    if not (_DASHED_GUID_RE.match(candidate) or _PLAIN_GUID_RE.match(candidate)):
        raise FormatError(f"Invalid guid: {text!r}")
    return bytes.fromhex(candidate.replace("-", ""))


class ObjectId:
    """Immutable remote object identifier."""

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes) -> None:
        if len(raw) != OBJECT_ID_LENGTH:
            raise FormatError(
                f"Object id must be {OBJECT_ID_LENGTH} bytes, got {len(raw)}"
            )
        self._raw = bytes(raw)

    @classmethod
    def from_guid(cls, text: str) -> "ObjectId":
        return cls(from_guid(text))

    @property
    def raw(self) -> bytes:
        return self._raw

    def to_guid(self) -> str:
        return to_guid(self._raw)

    def __str__(self) -> str:
        return self.to_guid()

    def __repr__(self) -> str:
        return f"ObjectId('{self.to_guid()}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectId):
            return NotImplemented
        return self._raw == other._raw

    def __hash__(self) -> int:
        return hash(self._raw)
