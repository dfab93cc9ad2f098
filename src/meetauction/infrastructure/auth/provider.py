"""Abstract authentication provider interface.

Login happens in the external wallet-auth service; this backend only
verifies the session tokens it hands out. Swapping that service means one
new AuthProvider implementation and a change in build_auth_provider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthUser:
    """Authenticated caller as seen by the API.

    The wallet is the one bound to the session; the access gate never takes
    a wallet from the request body.
    """

    id: str  # Auth service user id
    wallet: str | None  # Lower-case hex
    role: str = "user"
    email: str | None = None
    display_name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class AuthProvider(ABC):
    """Abstract authentication provider.

    Implementations:
    - SessionTokenAuthProvider: HS256 session tokens from the auth service
    - DevAuthProvider: local development only
    """

    @abstractmethod
    async def verify_token(self, token: str) -> AuthUser:
        """Verify a session token and return the authenticated user.

        Args:
            token: Bearer token from the Authorization header

        Returns:
            AuthUser with id, wallet and role

        Raises:
            TokenExpiredError: If the token has expired
            TokenInvalidError: If the token is invalid
            AuthenticationError: For other auth failures
        """
        pass

    async def close(self) -> None:
        """Release provider resources."""
        return None
