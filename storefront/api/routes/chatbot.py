"""Customer support chat endpoint."""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.shared.auth import SESSION_CART_KEY, get_optional_user
from storefront.api.shared.helpers import APIError, ErrorCode
from storefront.api.shared.middleware.rate_limit import limiter
from storefront.config import get_config
from storefront.db.models import User
from storefront.db.session import get_db
from storefront.services.chatbot import ChatbotService

router = APIRouter(tags=["chatbot"])

MAX_MESSAGE_LENGTH = 2000


class ChatRequest(BaseModel):
    message: str = Field(default="", max_length=MAX_MESSAGE_LENGTH)
    context: Optional[Dict[str, Any]] = Field(
        default=None,
        description="What the shopper is looking at (page, product, cart summary)",
    )


class ChatResponse(BaseModel):
    response: str
    timestamp: datetime


@router.post("/chatbot", response_model=ChatResponse)
@limiter.limit(lambda: get_config().chatbot.rate_limit)
async def chat(
    request: Request,
    body: ChatRequest,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> ChatResponse:
    """Answer a shopper question; always replies, falling back to canned answers."""
    message = body.message.strip()
    if not message:
        raise APIError(ErrorCode.VAL_INVALID_INPUT, "Message is required")

    reply = await ChatbotService(db).respond(
        message,
        user=user,
        session_id=request.session.get(SESSION_CART_KEY),
        client_context=body.context,
    )
    return ChatResponse(response=reply.response, timestamp=reply.timestamp)
