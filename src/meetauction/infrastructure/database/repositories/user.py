"""User repository."""

from meetauction.infrastructure.database.models.user import User
from meetauction.infrastructure.database.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User rows."""

    model_class = User

    async def get_by_wallet(self, wallet: str) -> User | None:
        query = self._base_query().where(User.wallet_address == wallet)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_external_id(self, external_user_id: str) -> User | None:
        query = self._base_query().where(User.external_user_id == external_user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def upsert_identity(
        self,
        external_user_id: str,
        wallet: str,
        *,
        email: str | None = None,
        display_name: str | None = None,
    ) -> tuple[User, bool]:
        """Create or refresh the row for a signed-in wallet.

        The wallet is the key: when it shows up under a new session user id,
        the existing row is re-pointed and any stale row for that user id is
        removed. Returns the row and whether anything was written.
        """
        holder = await self.get_by_wallet(wallet)
        account = await self.get_by_external_id(external_user_id)

        if holder is None and account is None:
            user = User(
                external_user_id=external_user_id,
                wallet_address=wallet,
                email=email,
                display_name=display_name,
            )
            return await self.create(user), True

        if holder is not None and account is not None and holder.id != account.id:
            await self.delete(account)
        user = holder or account
        assert user is not None

        changed = False
        for field, value in (
            ("external_user_id", external_user_id),
            ("wallet_address", wallet),
            ("email", email or user.email),
            ("display_name", display_name or user.display_name),
        ):
            if getattr(user, field) != value:
                setattr(user, field, value)
                changed = True
        if changed:
            await self.update(user)
        return user, changed
