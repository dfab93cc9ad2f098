"""User model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from meetauction.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Application user, keyed by wallet.

    Authentication is handled by the external session service; we store its
    user id as external_user_id.
    """

    __tablename__ = "users"

    external_user_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    wallet_address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
