"""
Marketplace Backend: Interest Routes
====================================

What:  Developers express interest in a project; the owner reviews them.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.models import User, UserRole
from marketplace.routes import RowId
from marketplace.schemas.common import ErrorResponse
from marketplace.schemas.project import (
    InterestCreate,
    InterestRead,
    InterestStatusUpdate,
    InterestWithDeveloper,
)
from marketplace.security import get_current_user, require_role
from marketplace.services.interest_service import interest_service

router = APIRouter(prefix="/api", tags=["Interests"])


@router.get(
    "/projects/{project_id}/interests",
    response_model=List[InterestWithDeveloper],
    responses={
        401: {"description": "Not authenticated", "model": ErrorResponse},
        404: {"description": "Project not found", "model": ErrorResponse},
    },
    summary="List interests on a project",
)
async def list_interests(
    project_id: RowId,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[InterestWithDeveloper]:
    interests = await interest_service.list_interests(db, project_id)
    return [InterestWithDeveloper.model_validate(i) for i in interests]


@router.post(
    "/projects/{project_id}/interests",
    response_model=InterestRead,
    status_code=201,
    responses={
        400: {"description": "Project closed, own project, or invalid message", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Caller is not a developer", "model": ErrorResponse},
        404: {"description": "Project not found", "model": ErrorResponse},
        409: {"description": "Interest already expressed", "model": ErrorResponse},
    },
    summary="Express interest in a project",
)
async def create_interest(
    project_id: RowId,
    body: InterestCreate,
    user: User = Depends(require_role(UserRole.DEVELOPER)),
    db: AsyncSession = Depends(get_db_session),
) -> InterestRead:
    interest = await interest_service.create_interest(db, project_id, user.id, body)
    return InterestRead.model_validate(interest)


@router.patch(
    "/projects/{project_id}/interests/{interest_id}",
    response_model=InterestRead,
    responses={
        400: {"description": "Invalid status", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Not the project owner", "model": ErrorResponse},
        404: {"description": "Project or interest not found", "model": ErrorResponse},
    },
    summary="Accept or reject an interest",
)
async def update_interest_status(
    project_id: RowId,
    interest_id: RowId,
    body: InterestStatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> InterestRead:
    interest = await interest_service.update_status(
        db, project_id, interest_id, user.id, body.status
    )
    return InterestRead.model_validate(interest)
