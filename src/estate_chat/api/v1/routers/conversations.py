from __future__ import annotations

from fastapi import APIRouter, Query, Response, status

from estate_chat.api.deps import CurrentPrincipal, UoWDep
from estate_chat.api.v1.schemas.conversation import (
    ConversationResponse,
    CreateConversationRequest,
)
from estate_chat.services import conversation_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["conversations"])


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    body: CreateConversationRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    response: Response,
) -> ConversationResponse:
    conv, created = await conversation_service.get_or_create_conversation(
        principal, body.seller_id, body.property_id, uow,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return ConversationResponse.model_validate(conv)


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(50, ge=1, le=200),
) -> list[ConversationResponse]:
    convs = await conversation_service.list_user_conversations(principal, limit, uow)
    return [ConversationResponse.model_validate(c) for c in convs]


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: int,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, principal, uow)
    return ConversationResponse.model_validate(conv)
