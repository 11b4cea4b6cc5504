"""
Marketplace Backend: Interest Service
=====================================

What:  Developers' proposals on projects and the owner's decision on them.

Rules for a new interest:
    - the project must exist and still be `open`
    - a client cannot propose on their own project
    - one proposal per developer per project. A pre-check gives the friendly
      409; the unique constraint covers the race between two submissions.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from marketplace.models import InterestStatus, ProjectInterest, ProjectStatus
from marketplace.schemas.project import InterestCreate
from marketplace.services.errors import database_errors
from marketplace.services.project_service import project_service

logger = logging.getLogger(__name__)

DUPLICATE_INTEREST_MESSAGE = "You have already expressed interest in this project"


class InterestService:

    async def list_interests(self, db: AsyncSession, project_id: int) -> List[ProjectInterest]:
        """Oldest first, each with its developer loaded."""
        await project_service.get_project(db, project_id)

        query = (
            select(ProjectInterest)
            .where(ProjectInterest.project_id == project_id)
            .options(selectinload(ProjectInterest.developer))
            .order_by(ProjectInterest.created_at.asc(), ProjectInterest.id.asc())
        )
        with database_errors("list interests"):
            return list((await db.execute(query)).scalars().all())

    async def create_interest(
        self,
        db: AsyncSession,
        project_id: int,
        developer_id: uuid.UUID,
        data: InterestCreate,
    ) -> ProjectInterest:
        """
        Raises:
            NotFoundError: project missing
            ValidationError: project closed, or the caller owns it
            ConflictError: caller already has an interest on the project
        """
        project = await project_service.get_project(db, project_id)

        if project.status != ProjectStatus.OPEN.value:
            raise ValidationError(
                message="This project is no longer accepting proposals",
                field="projectId",
                context={"status": project.status},
            )
        if project.client_id == developer_id:
            raise ValidationError(
                message="You cannot express interest in your own project",
                field="projectId",
            )

        existing = select(ProjectInterest.id).where(
            ProjectInterest.project_id == project_id,
            ProjectInterest.developer_id == developer_id,
        )
        with database_errors("check existing interest"):
            if (await db.execute(existing)).first() is not None:
                raise ConflictError(message=DUPLICATE_INTEREST_MESSAGE)

        interest = ProjectInterest(
            project_id=project_id,
            developer_id=developer_id,
            message=data.message,
            status=InterestStatus.PENDING.value,
        )
        db.add(interest)
        with database_errors("submit the interest", conflict_message=DUPLICATE_INTEREST_MESSAGE):
            await db.flush()

        logger.info("Developer %s expressed interest in project %d", developer_id, project_id)
        return interest

    async def update_status(
        self,
        db: AsyncSession,
        project_id: int,
        interest_id: int,
        user_id: uuid.UUID,
        status: str,
    ) -> ProjectInterest:
        """
        Accepts or rejects a proposal. Only the project owner may decide.

        Raises:
            NotFoundError: project missing, or no such interest on it
            PermissionDeniedError: caller does not own the project
        """
        project = await project_service.get_project(db, project_id)
        if project.client_id != user_id:
            raise PermissionDeniedError(message="Only the project owner can review proposals")

        query = select(ProjectInterest).where(
            ProjectInterest.id == interest_id,
            ProjectInterest.project_id == project_id,
        )
        with database_errors("retrieve the interest"):
            interest = (await db.execute(query)).scalar_one_or_none()
        if interest is None:
            raise NotFoundError(resource="interest", resource_id=str(interest_id))

        interest.status = InterestStatus(status).value
        with database_errors("update the interest"):
            await db.flush()

        logger.info("Interest %d on project %d marked %s", interest_id, project_id, interest.status)
        return interest


interest_service = InterestService()
