"""JaaS (8x8 Jitsi as a Service) room provisioner.

Rooms are not created through an API: a room exists as soon as a client
joins it with a valid token, so provisioning means picking a unique room
name and signing RS256 tokens the JaaS tenant accepts.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from cryptography.hazmat.primitives import serialization
from jose import ExpiredSignatureError, JWTError, jwt

from meetauction.config import Settings
from meetauction.domain.auctions.types import Identity
from meetauction.domain.meetings.types import CredentialClaims, CredentialRole, RoomDescriptor
from meetauction.shared.clock import Clock, utcnow
from meetauction.shared.exceptions import (
    ConfigurationError,
    RoomProvisioningError,
    TokenExpiredError,
    TokenInvalidError,
)
from meetauction.shared.logging import get_logger

logger = get_logger(__name__)

JAAS_AUDIENCE = "jitsi"
JAAS_ISSUER = "chat"
# Tolerate small clock skew between us and the video host
NOT_BEFORE_SKEW_SECONDS = 10

DEFAULT_ROOM_CONFIG: dict[str, Any] = {
    "enableWelcomePage": False,
    "enableClosePage": False,
    "prejoinPageEnabled": False,
    "requireDisplayName": True,
    "startWithAudioMuted": False,
    "startWithVideoMuted": False,
    "enableTalkWhileMuted": True,
    "disableModeratorIndicator": False,
    "interfaceConfig": {
        "TOOLBAR_BUTTONS": [
            "microphone",
            "camera",
            "hangup",
            "chat",
            "desktop",
            "fullscreen",
            "settings",
            "raisehand",
        ],
        "SHOW_JITSI_WATERMARK": False,
        "SHOW_WATERMARK_FOR_GUESTS": False,
        "SHOW_BRAND_WATERMARK": False,
    },
}


def _flag(value: bool) -> str:
    # JaaS expects string booleans in the context block
    return "true" if value else "false"


class JaasRoomProvisioner:
    """RoomProvisioner backed by a JaaS tenant.

    Without a private key (development only) tokens are signed with HS256
    and a shared secret; the video host will not accept those, but the rest
    of the flow can be exercised locally.
    """

    def __init__(
        self,
        *,
        domain: str,
        app_id: str,
        kid: str = "",
        private_key: str = "",
        fallback_secret: str | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.domain = domain
        self.app_id = app_id
        self.kid = kid
        self._clock = clock
        self._last_room_ms = 0

        if private_key:
            pem = private_key.replace("\\n", "\n").encode()
            try:
                key = serialization.load_pem_private_key(pem, password=None)
            except ValueError as e:
                raise ConfigurationError("JAAS_PRIVATE_KEY is not a valid PEM private key") from e
            self._signing_key: str = pem.decode()
            self._verify_key: str = (
                key.public_key()
                .public_bytes(
                    serialization.Encoding.PEM,
                    serialization.PublicFormat.SubjectPublicKeyInfo,
                )
                .decode()
            )
            self._algorithm = "RS256"
        elif fallback_secret:
            self._signing_key = fallback_secret
            self._verify_key = fallback_secret
            self._algorithm = "HS256"
            logger.warning(
                "jaas_not_configured",
                detail="signing meeting tokens with HS256; JaaS will reject them",
            )
        else:
            raise ConfigurationError("JAAS_PRIVATE_KEY is required to issue meeting credentials")

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def room_url(self, room_id: str) -> str:
        return f"https://{self.domain}/{self.app_id}/{room_id}"

    def _next_room_suffix(self) -> int:
        now_ms = int(self._clock().timestamp() * 1000)
        # Two rooms in the same millisecond still get distinct names
        self._last_room_ms = max(now_ms, self._last_room_ms + 1)
        return self._last_room_ms

    def create_room(self, room_name: str, duration_minutes: int) -> RoomDescriptor:
        if duration_minutes <= 0:
            raise RoomProvisioningError(
                "Meeting duration must be positive",
                details={"room_name": room_name, "duration_minutes": duration_minutes},
            )
        room_id = f"{room_name}-{self._next_room_suffix()}"
        expires_at = self._clock() + timedelta(minutes=duration_minutes)
        config = {**DEFAULT_ROOM_CONFIG, "subject": room_name.replace("-", " ").title()}

        logger.info(
            "meeting_room_created",
            room_id=room_id,
            duration_minutes=duration_minutes,
            expires_at=expires_at.isoformat(),
        )
        return RoomDescriptor(
            room_id=room_id,
            base_url=self.room_url(room_id),
            expires_at=expires_at,
            duration_minutes=duration_minutes,
            config=config,
        )

    def issue_credential(
        self,
        room_id: str,
        subject: Identity,
        role: CredentialRole,
        ttl: timedelta,
    ) -> str:
        now = self._clock()
        moderator = role is CredentialRole.MODERATOR
        claims: dict[str, Any] = {
            "aud": JAAS_AUDIENCE,
            "iss": JAAS_ISSUER,
            "sub": self.app_id,
            "room": room_id,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()) - NOT_BEFORE_SKEW_SECONDS,
            "exp": int((now + ttl).timestamp()),
            "context": {
                "user": {
                    "id": subject.user_id,
                    "name": subject.display_name,
                    "email": subject.email or "",
                    "moderator": _flag(moderator),
                    "avatar": "",
                },
                "features": {
                    "livestreaming": _flag(moderator),
                    "recording": _flag(moderator),
                    "transcription": "false",
                    "outbound-call": "false",
                },
            },
        }
        headers = {"kid": self.kid} if self.kid else None

        try:
            token = jwt.encode(claims, self._signing_key, algorithm=self._algorithm, headers=headers)
        except JWTError as e:
            raise RoomProvisioningError(f"Failed to sign meeting credential: {e}") from e

        logger.debug("meeting_credential_issued", room_id=room_id, role=role.value)
        return token

    def decode_credential(self, token: str) -> CredentialClaims:
        try:
            payload = jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                audience=JAAS_AUDIENCE,
                issuer=JAAS_ISSUER,
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Meeting credential has expired") from e
        except JWTError as e:
            raise TokenInvalidError(f"Invalid meeting credential: {e}") from e

        user = payload.get("context", {}).get("user", {})
        return CredentialClaims(
            room_id=payload["room"],
            subject_id=str(user.get("id", "")),
            role=CredentialRole.MODERATOR
            if user.get("moderator") == "true"
            else CredentialRole.PARTICIPANT,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
            display_name=user.get("name"),
        )


def build_room_provisioner(settings: Settings) -> JaasRoomProvisioner:
    """Build the provisioner from settings (HS256 fallback outside production only)."""
    return JaasRoomProvisioner(
        domain=settings.jaas_domain,
        app_id=settings.jaas_app_id,
        kid=settings.jaas_kid,
        private_key=settings.jaas_private_key,
        fallback_secret=None if settings.is_production else settings.app_secret_key,
    )
