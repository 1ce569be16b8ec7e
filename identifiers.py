import re
import uuid

from errors import InvalidIdentifier

ID_LENGTH = 32
_ID_PATTERN = re.compile(r"[0-9a-f]{%d}" % ID_LENGTH)


def new_id() -> str:
    return uuid.uuid4().hex


def is_valid_id(value) -> bool:
    """True if value is a 32 character lowercase hex token."""
    return isinstance(value, str) and _ID_PATTERN.fullmatch(value) is not None


def ensure_valid_id(value, label: str = "id") -> str:
    if not is_valid_id(value):
        raise InvalidIdentifier(f"Invalid {label}")
    return value
