"""Development authentication provider for local testing.

This provider bypasses real authentication and creates a mock user.
NEVER use in production!
"""

from meetauction.infrastructure.auth.provider import AuthProvider, AuthUser
from meetauction.shared.logging import get_logger
from meetauction.shared.wallets import is_wallet_address, normalize_wallet

logger = get_logger(__name__)

DEV_USER_ID = "dev-user"
DEV_WALLET = "0x000000000000000000000000000000000000dead"


class DevAuthProvider(AuthProvider):
    """Development auth provider that accepts any token.

    A token that is itself a wallet address logs in as that wallet, which
    makes it easy to act as both creator and winner locally.
    """

    async def verify_token(self, token: str) -> AuthUser:
        logger.warning(
            "dev_auth_used",
            message="Using development auth - DO NOT USE IN PRODUCTION",
        )
        if is_wallet_address(token):
            wallet = normalize_wallet(token)
            return AuthUser(id=f"dev-{wallet}", wallet=wallet, role="admin")

        return AuthUser(
            id=DEV_USER_ID,
            wallet=DEV_WALLET,
            role="admin",
            email="dev@meetauction.local",
            display_name="Dev User",
        )
