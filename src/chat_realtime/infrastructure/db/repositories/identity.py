from __future__ import annotations

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.domain.entities.identity import Identity
from chat_realtime.infrastructure.db.mappers import identity as mapper
from chat_realtime.infrastructure.db.models.user import UserModel


class IdentityReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, identity_id: str) -> Identity | None:
        result = await self._session.get(UserModel, identity_id)
        return mapper.model_to_entity(result) if result else None


class IdentityWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, identity: Identity) -> None:
        stmt = (
            pg_insert(UserModel)
            .values(id=identity.id, username=identity.username, avatar=identity.avatar)
            .on_conflict_do_update(
                index_elements=[UserModel.id],
                set_={"username": identity.username, "avatar": identity.avatar},
            )
        )
        await self._session.execute(stmt)
