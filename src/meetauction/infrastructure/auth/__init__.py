"""Authentication infrastructure."""

from meetauction.infrastructure.auth.provider import AuthProvider, AuthUser
from meetauction.infrastructure.auth.session import SessionTokenAuthProvider

__all__ = [
    "AuthProvider",
    "AuthUser",
    "SessionTokenAuthProvider",
]
