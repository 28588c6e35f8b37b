from __future__ import annotations

from datetime import datetime

from pydantic import Field

from estate_chat.api.v1.schemas.common import CamelModel


class CreateConversationRequest(CamelModel):
    seller_id: int = Field(gt=0)
    property_id: int = Field(gt=0)


class ConversationResponse(CamelModel):
    id: int
    buyer_id: int
    seller_id: int
    property_id: int
    created_at: datetime
