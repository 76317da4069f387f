from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.infrastructure.db.models.member import MemberModel


class MemberReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def is_member(self, conversation_id: str, identity_id: str) -> bool:
        stmt = (
            select(MemberModel.id)
            .where(
                MemberModel.conversation_id == conversation_id,
                MemberModel.identity_id == identity_id,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_member_ids(self, conversation_id: str) -> list[str]:
        stmt = (
            select(MemberModel.identity_id)
            .where(MemberModel.conversation_id == conversation_id)
            .order_by(MemberModel.joined_at, MemberModel.identity_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class MemberWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self, conversation_id: str, identity_id: str, joined_at: datetime,
    ) -> None:
        stmt = (
            pg_insert(MemberModel)
            .values(
                conversation_id=conversation_id,
                identity_id=identity_id,
                joined_at=joined_at,
            )
            .on_conflict_do_nothing(constraint="uq_member")
        )
        await self._session.execute(stmt)
