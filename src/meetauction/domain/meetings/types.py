"""Room and credential value objects."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any


class CredentialRole(str, Enum):
    """Role a meeting credential grants."""

    MODERATOR = "moderator"
    PARTICIPANT = "participant"


@dataclass(frozen=True)
class RoomDescriptor:
    """A provisioned meeting room."""

    room_id: str
    base_url: str
    expires_at: datetime
    duration_minutes: int
    config: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CredentialClaims:
    """Verified contents of a meeting credential."""

    room_id: str
    subject_id: str
    role: CredentialRole
    expires_at: datetime
    display_name: str | None = None


def join_url(base_url: str, token: str) -> str:
    """URL a participant opens to enter the room pre-authenticated."""
    return f"{base_url}?jwt={token}"


def credential_ttl(duration_minutes: int) -> timedelta:
    """Credentials outlive the meeting by at least an hour, rounded up to whole hours."""
    return timedelta(hours=math.ceil(duration_minutes / 60) + 1)
