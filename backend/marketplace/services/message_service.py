"""
Marketplace Backend: Message Service
====================================

What:  Per-project conversations between a client and developers.
How:   Clients poll GET /api/projects/{id}/messages on a fixed interval,
       passing the newest `createdAt` they have seen as `since` to fetch
       only what is new. A caller only ever sees messages they sent or
       received.

Every conversation goes through the project owner: a message must have
the owner as sender or receiver.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from marketplace.models import Message
from marketplace.schemas.project import MessageCreate
from marketplace.services.errors import database_errors
from marketplace.services.project_service import project_service
from marketplace.services.user_service import user_service

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MessageService:

    async def list_messages(
        self,
        db: AsyncSession,
        project_id: int,
        user_id: uuid.UUID,
        since: Optional[datetime] = None,
    ) -> List[Message]:
        """Newest first; `since` is exclusive."""
        await project_service.get_project(db, project_id)

        query = (
            select(Message)
            .where(
                Message.project_id == project_id,
                or_(Message.sender_id == user_id, Message.receiver_id == user_id),
            )
            .options(selectinload(Message.sender))
            .order_by(Message.created_at.desc(), Message.id.desc())
        )
        if since is not None:
            query = query.where(Message.created_at > _as_utc(since))

        with database_errors("load messages"):
            return list((await db.execute(query)).scalars().all())

    async def send_message(
        self,
        db: AsyncSession,
        project_id: int,
        sender_id: uuid.UUID,
        data: MessageCreate,
    ) -> Message:
        """
        Raises:
            NotFoundError: project or receiver missing
            ValidationError: sender and receiver are the same user
            PermissionDeniedError: neither party owns the project
        """
        project = await project_service.get_project(db, project_id)

        if data.receiver_id == sender_id:
            raise ValidationError(message="You cannot send a message to yourself", field="receiverId")

        receiver = await user_service.find_user(db, data.receiver_id)
        if receiver is None:
            raise NotFoundError(
                resource="receiver",
                resource_id=str(data.receiver_id),
                message="Receiver not found",
            )

        if project.client_id not in (sender_id, data.receiver_id):
            raise PermissionDeniedError(
                message="Messages about a project must be exchanged with its owner"
            )

        message = Message(
            project_id=project_id,
            sender_id=sender_id,
            receiver_id=data.receiver_id,
            content=data.content,
        )
        db.add(message)
        with database_errors("send the message"):
            await db.flush()

        logger.info("Message %d sent on project %d", message.id, project_id)
        return message


message_service = MessageService()
