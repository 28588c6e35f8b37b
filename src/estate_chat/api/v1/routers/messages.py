from __future__ import annotations

from fastapi import APIRouter, Query

from estate_chat.api.deps import CurrentPrincipal, RelayDep, UoWDep
from estate_chat.api.v1.schemas.common import PaginatedResponse
from estate_chat.api.v1.schemas.message import MessageResponse, SendMessageRequest
from estate_chat.infrastructure.db.repositories._cursor import encode_cursor
from estate_chat.services import message_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["messages"])


@router.get("/{conversation_id}/messages", response_model=PaginatedResponse[MessageResponse])
async def list_messages(
    conversation_id: int,
    principal: CurrentPrincipal,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> PaginatedResponse[MessageResponse]:
    messages = await message_service.list_messages(
        conversation_id, principal.user_id, cursor, limit, uow,
    )
    next_cursor = None
    if len(messages) == limit:
        last = messages[-1]
        next_cursor = encode_cursor(last.created_at, last.id)
    return PaginatedResponse[MessageResponse](
        items=[MessageResponse.model_validate(m) for m in messages],
        next_cursor=next_cursor,
    )


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    conversation_id: int,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    relay: RelayDep,
) -> MessageResponse:
    msg, conversation = await message_service.send_message(
        conversation_id,
        principal.user_id,
        body.content,
        uow,
    )
    await relay.deliver(msg, conversation)
    return MessageResponse.model_validate(msg)
