from __future__ import annotations

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from estate_chat.application.dto.message import NewMessageDTO
from estate_chat.application.exceptions import StoreError
from estate_chat.domain.entities.message import Message
from estate_chat.infrastructure.db.mappers import message as mapper
from estate_chat.infrastructure.db.models.message import MessageModel
from estate_chat.infrastructure.db.repositories._cursor import decode_cursor


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_messages(
        self,
        conversation_id: int,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
            .limit(limit)
        )
        if cursor:
            ts, mid = decode_cursor(cursor)
            stmt = stmt.where(
                (MessageModel.created_at > ts)
                | ((MessageModel.created_at == ts) & (MessageModel.id > mid))
            )
        try:
            result = await self._session.execute(stmt)
            models = result.scalars().all()
        except SQLAlchemyError as exc:
            raise StoreError("Could not load messages") from exc
        return [mapper.model_to_entity(m) for m in models]


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: NewMessageDTO) -> Message:
        """Insert message; id and created_at come back from the database."""
        stmt = (
            insert(MessageModel)
            .values(
                conversation_id=message.conversation_id,
                sender_id=message.sender_id,
                content=message.content,
            )
            .returning(MessageModel)
        )
        try:
            result = await self._session.execute(stmt)
            row = result.scalar_one()
        except SQLAlchemyError as exc:
            raise StoreError("Could not persist message") from exc
        return mapper.model_to_entity(row)
