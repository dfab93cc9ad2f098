"""Session token authentication provider."""

from jose import ExpiredSignatureError, JWTError, jwt

from meetauction.infrastructure.auth.provider import AuthProvider, AuthUser
from meetauction.shared.exceptions import ConfigurationError, TokenExpiredError, TokenInvalidError
from meetauction.shared.logging import get_logger
from meetauction.shared.wallets import is_wallet_address, normalize_wallet

logger = get_logger(__name__)


class SessionTokenAuthProvider(AuthProvider):
    """Verifies HS256 session JWTs issued by the wallet-auth service.

    Expected claims: sub, wallet, role (optional, default "user"),
    email and name (optional), aud, exp.
    """

    def __init__(self, secret: str, audience: str) -> None:
        if not secret:
            raise ConfigurationError("SESSION_JWT_SECRET is required for session auth")
        self.secret = secret
        self.audience = audience

    async def verify_token(self, token: str) -> AuthUser:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=["HS256"],
                audience=self.audience,
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Session has expired") from e
        except JWTError as e:
            logger.warning("jwt_decode_failed", error=str(e))
            raise TokenInvalidError("Session token is invalid") from e

        user_id = payload.get("sub")
        if not user_id:
            raise TokenInvalidError("Session token has no subject")

        wallet = payload.get("wallet")
        if wallet is not None:
            if not isinstance(wallet, str) or not is_wallet_address(wallet):
                raise TokenInvalidError("Session token carries a malformed wallet")
            wallet = normalize_wallet(wallet)

        return AuthUser(
            id=str(user_id),
            wallet=wallet,
            role=payload.get("role", "user"),
            email=payload.get("email"),
            display_name=payload.get("name"),
        )
