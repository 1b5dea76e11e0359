"""Broadcast channel names.

Names are derived, never registered: any publisher computes the same name
from (content type, content id) or from a user id.
"""
import re
from uuid import UUID

from vidsphere.models.content import ContentType

USER_CHANNEL_PREFIX = "user"

_CHANNEL_RE = re.compile(
    r"^(?P<kind>Video|Comment|Article|user):"
    r"(?P<id>[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12})$"
)


def content_channel(content_type: ContentType | str, content_id: UUID | str) -> str:
    kind = content_type.value if isinstance(content_type, ContentType) else content_type
    return f"{kind}:{content_id}"


def user_channel(user_id: UUID | str) -> str:
    return f"{USER_CHANNEL_PREFIX}:{user_id}"


def is_valid_channel(name: str) -> bool:
    return bool(name) and _CHANNEL_RE.match(name) is not None


def normalize_channel(name: str) -> str:
    """Canonical spelling of a client-supplied channel (lower-case hyphenated uuid)."""
    match = _CHANNEL_RE.match(name)
    if match is None:
        raise ValueError(f"Invalid channel: {name!r}")
    return f"{match.group('kind')}:{UUID(match.group('id'))}"
