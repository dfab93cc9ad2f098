"""Authentication middleware for FastAPI."""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from meetauction.api.deps import get_auction_registry
from meetauction.config import Settings, get_settings
from meetauction.domain.auctions.registry import AuctionRegistry
from meetauction.infrastructure.auth.provider import AuthProvider, AuthUser
from meetauction.shared.exceptions import (
    AuthenticationError,
    TokenExpiredError,
    TokenInvalidError,
)
from meetauction.shared.logging import get_logger

logger = get_logger(__name__)

# HTTP Bearer scheme
security = HTTPBearer(auto_error=False)


def build_auth_provider(settings: Settings) -> AuthProvider:
    """Build the configured auth provider.

    Set AUTH_PROVIDER env var to "dev" for local testing without the auth service.
    """
    if settings.auth_provider == "dev":
        from meetauction.infrastructure.auth.dev import DevAuthProvider

        return DevAuthProvider()

    from meetauction.infrastructure.auth.session import SessionTokenAuthProvider

    return SessionTokenAuthProvider(settings.session_jwt_secret, settings.session_jwt_audience)


def get_auth_provider(request: Request) -> AuthProvider:
    """Get a cached auth provider instance (per FastAPI app)."""
    provider = getattr(request.app.state, "auth_provider", None)
    if provider is None:
        provider = build_auth_provider(get_settings())
        request.app.state.auth_provider = provider
    return provider


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_provider: Annotated[AuthProvider, Depends(get_auth_provider)],
) -> AuthUser:
    """Dependency to get the current authenticated user.

    Usage:
        @router.get("/me")
        async def get_me(user: CurrentUser):
            return {"wallet": user.wallet}
    """
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = await auth_provider.verify_token(credentials.credentials)
    except TokenExpiredError:
        raise HTTPException(
            status_code=401,
            detail="Session expired. Please sign in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except TokenInvalidError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e.message),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AuthenticationError as e:
        logger.warning("auth_failed", error=str(e))
        raise HTTPException(
            status_code=401,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.user = user
    logger.debug("user_authenticated", user_id=user.id, wallet=user.wallet)
    return user


def require_role(*roles: str) -> Callable[[AuthUser], Awaitable[AuthUser]]:
    """Dependency factory to require specific roles.

    Usage:
        @router.post("/admin/auctions/scan")
        async def scan(user: AuthUser = Depends(require_role("admin"))):
            ...
    """

    async def check_role(
        user: Annotated[AuthUser, Depends(get_current_user)],
    ) -> AuthUser:
        if user.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"This action requires one of the roles: {', '.join(roles)}",
            )
        return user

    return check_role


async def require_wallet(
    user: Annotated[AuthUser, Depends(get_current_user)],
    registry: Annotated[AuctionRegistry, Depends(get_auction_registry)],
) -> AuthUser:
    """Dependency for routes that act on the caller's wallet.

    Also keeps the users table current, so meeting credentials carry the
    caller's name instead of a placeholder.
    """
    if not user.wallet:
        raise HTTPException(status_code=400, detail="User wallet address not found")
    await registry.register_identity(
        user.id,
        user.wallet,
        email=user.email,
        display_name=user.display_name,
    )
    return user


# Common role dependencies
RequireAdmin = Annotated[AuthUser, Depends(require_role("admin"))]

# Type aliases for authenticated users
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
WalletUser = Annotated[AuthUser, Depends(require_wallet)]
