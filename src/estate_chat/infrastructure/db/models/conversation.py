from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Index, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from estate_chat.infrastructure.db.base import Base


class ConversationModel(Base):
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    # users and properties live in the marketplace database, hence no foreign keys
    buyer_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    seller_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    property_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )

    messages = relationship("MessageModel", back_populates="conversation", lazy="noload")

    __table_args__ = (
        UniqueConstraint(
            "buyer_id",
            "seller_id",
            "property_id",
            name="uq_conversation_triple",
        ),
        Index("ix_conversations_buyer", "buyer_id"),
        Index("ix_conversations_seller", "seller_id"),
    )
