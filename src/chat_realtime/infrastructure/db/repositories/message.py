from __future__ import annotations

from sqlalchemy import or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.domain.entities.message import Message, Reaction
from chat_realtime.domain.value_objects.enums import MessageStatus, MessageType
from chat_realtime.domain.value_objects.ids import GLOBAL_CONVERSATION_ID
from chat_realtime.infrastructure.db.mappers import message as mapper
from chat_realtime.infrastructure.db.models.member import MemberModel
from chat_realtime.infrastructure.db.models.message import MessageModel
from chat_realtime.infrastructure.db.repositories._cursor import decode_cursor


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: str) -> Message | None:
        result = await self._session.get(MessageModel, message_id)
        return mapper.model_to_entity(result) if result else None

    async def list_messages(
        self,
        conversation_id: str,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.timestamp.asc(), MessageModel.id.asc())
            .limit(limit)
        )
        if cursor:
            ts, mid = decode_cursor(cursor)
            stmt = stmt.where(
                (MessageModel.timestamp > ts)
                | ((MessageModel.timestamp == ts) & (MessageModel.id > mid))
            )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def list_visible(self, identity_id: str, *, limit: int = 200) -> list[Message]:
        member_of = select(MemberModel.conversation_id).where(
            MemberModel.identity_id == identity_id
        )
        stmt = (
            select(MessageModel)
            .where(
                or_(
                    MessageModel.conversation_id == GLOBAL_CONVERSATION_ID,
                    MessageModel.conversation_id.in_(member_of),
                )
            )
            .order_by(MessageModel.timestamp.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        latest = [mapper.model_to_entity(m) for m in result.scalars().all()]
        latest.reverse()
        return latest


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message idempotently. Returns (message, created_flag)."""
        stmt = (
            pg_insert(MessageModel)
            .values(**mapper.entity_to_values(message))
            .on_conflict_do_nothing(index_elements=[MessageModel.id])
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row), True

        # Already stored: return the existing row
        existing = await self._session.get(MessageModel, message.id)
        assert existing is not None
        return mapper.model_to_entity(existing), False

    async def get_for_update(self, message_id: str) -> Message | None:
        stmt = (
            select(MessageModel)
            .where(MessageModel.id == message_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def advance_status(self, message_id: str, status: MessageStatus) -> bool:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.id == message_id,
                MessageModel.status.in_([str(s) for s in status.below()]),
                MessageModel.type != str(MessageType.DELETED),
            )
            .values(status=str(status))
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def mark_read(self, conversation_id: str, reader_id: str) -> int:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.conversation_id == conversation_id,
                MessageModel.sender_id != reader_id,
                MessageModel.status != str(MessageStatus.READ),
                MessageModel.type != str(MessageType.DELETED),
            )
            .values(status=str(MessageStatus.READ))
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def update_reactions(
        self, message_id: str, reactions: tuple[Reaction, ...],
    ) -> None:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(reactions=mapper.reactions_to_json(reactions))
        )
        await self._session.execute(stmt)

    async def tombstone(self, message_id: str, content: str) -> None:
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id)
            .values(content=content, type=str(MessageType.DELETED))
        )
        await self._session.execute(stmt)
