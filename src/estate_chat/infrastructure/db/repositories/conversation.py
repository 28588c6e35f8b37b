from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from estate_chat.application.exceptions import StoreError
from estate_chat.domain.entities.conversation import Conversation
from estate_chat.infrastructure.db.mappers import conversation as mapper
from estate_chat.infrastructure.db.models.conversation import ConversationModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: int) -> Conversation | None:
        try:
            result = await self._session.get(ConversationModel, conversation_id)
        except SQLAlchemyError as exc:
            raise StoreError("Could not load conversation") from exc
        return mapper.model_to_entity(result) if result else None

    async def find(
        self,
        buyer_id: int,
        seller_id: int,
        property_id: int,
    ) -> Conversation | None:
        stmt = select(ConversationModel).where(
            ConversationModel.buyer_id == buyer_id,
            ConversationModel.seller_id == seller_id,
            ConversationModel.property_id == property_id,
        )
        try:
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError("Could not load conversation") from exc
        return mapper.model_to_entity(model) if model else None

    async def list_for_user(
        self,
        user_id: int,
        *,
        limit: int = 20,
    ) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .where(
                or_(
                    ConversationModel.buyer_id == user_id,
                    ConversationModel.seller_id == user_id,
                )
            )
            .order_by(ConversationModel.created_at.desc(), ConversationModel.id.desc())
            .limit(limit)
        )
        try:
            result = await self._session.execute(stmt)
            models = result.scalars().all()
        except SQLAlchemyError as exc:
            raise StoreError("Could not list conversations") from exc
        return [mapper.model_to_entity(m) for m in models]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(
        self,
        buyer_id: int,
        seller_id: int,
        property_id: int,
    ) -> tuple[Conversation, bool]:
        """Insert conversation idempotently. Returns (conversation, created_flag)."""
        stmt = (
            pg_insert(ConversationModel)
            .values(buyer_id=buyer_id, seller_id=seller_id, property_id=property_id)
            .on_conflict_do_nothing(constraint="uq_conversation_triple")
            .returning(ConversationModel)
        )
        try:
            result = await self._session.execute(stmt)
            row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError("Could not create conversation") from exc

        if row is not None:
            return mapper.model_to_entity(row), True

        # Lost the race to a concurrent request; read back its row
        existing = await ConversationReaderRepo(self._session).find(
            buyer_id, seller_id, property_id,
        )
        assert existing is not None
        return existing, False
