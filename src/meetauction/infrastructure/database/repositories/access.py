"""Access event and gate pass repositories."""

from datetime import datetime

from sqlalchemy import delete, exists, select, update

from meetauction.infrastructure.database.models.access import AccessEvent
from meetauction.infrastructure.database.models.gate_pass import GatePass
from meetauction.infrastructure.database.repositories.base import BaseRepository


class AccessEventRepository(BaseRepository[AccessEvent]):
    """Repository for the append-only access audit."""

    model_class = AccessEvent

    async def transaction_used(self, tx_hash: str) -> bool:
        query = select(exists().where(AccessEvent.transaction_hash == tx_hash))
        result = await self.session.execute(query)
        return bool(result.scalar())


class GatePassRepository(BaseRepository[GatePass]):
    """Repository for gate passes."""

    model_class = GatePass

    async def mark_used(self, nonce: str, used_at: datetime) -> bool:
        """Flip unused to used. False when another redemption got there first."""
        result = await self.session.execute(
            update(GatePass)
            .where(GatePass.nonce == nonce, GatePass.used.is_(False))
            .values(used=True, used_at=used_at)
        )
        return result.rowcount == 1

    async def delete_expired(self, now: datetime) -> int:
        result = await self.session.execute(
            delete(GatePass).where(GatePass.used.is_(False), GatePass.expires_at < now)
        )
        return result.rowcount or 0
