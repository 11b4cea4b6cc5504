"""
Marketplace Backend: Message Routes
===================================

What:  Project conversations. There is no push channel; the UI polls
       GET every few seconds with `since` set to the newest message it has.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.models import User
from marketplace.routes import RowId
from marketplace.schemas.common import ErrorResponse
from marketplace.schemas.project import MessageCreate, MessageRead, MessageWithSender
from marketplace.security import get_current_user
from marketplace.services.message_service import message_service

router = APIRouter(prefix="/api", tags=["Messages"])


@router.get(
    "/projects/{project_id}/messages",
    response_model=List[MessageWithSender],
    responses={
        401: {"description": "Not authenticated", "model": ErrorResponse},
        404: {"description": "Project not found", "model": ErrorResponse},
    },
    summary="List your messages on a project",
)
async def list_messages(
    project_id: RowId,
    since: Optional[datetime] = Query(
        default=None,
        description="Only messages created after this ISO 8601 timestamp",
    ),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[MessageWithSender]:
    messages = await message_service.list_messages(db, project_id, user.id, since=since)
    return [MessageWithSender.model_validate(m) for m in messages]


@router.post(
    "/projects/{project_id}/messages",
    response_model=MessageRead,
    status_code=201,
    responses={
        400: {"description": "Invalid message", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Conversation does not involve the project owner", "model": ErrorResponse},
        404: {"description": "Project or receiver not found", "model": ErrorResponse},
    },
    summary="Send a message about a project",
)
async def send_message(
    project_id: RowId,
    body: MessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageRead:
    message = await message_service.send_message(db, project_id, user.id, body)
    return MessageRead.model_validate(message)
