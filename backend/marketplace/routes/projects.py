"""
Marketplace Backend: Project Routes
===================================

What:  The public project board and the client's posting/editing endpoints.

Example:
    GET /api/projects?category=Web&minBudget=500&sort=budget_high&limit=20
    → 200, X-Total-Count: 37
    [{"id": 12, "title": "...", "budgetMin": 400, "budgetMax": 900,
      "client": {"id": "...", "firstName": "Ada", ...}}, ...]
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db_session
from marketplace.models import ProjectStatus, User, UserRole
from marketplace.routes import RowId
from marketplace.schemas.common import MAX_INTEGER, ErrorResponse
from marketplace.schemas.project import (
    ProjectCreate,
    ProjectRead,
    ProjectSort,
    ProjectUpdate,
    ProjectWithClient,
)
from marketplace.security import get_current_user, require_role
from marketplace.services.project_service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    project_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Projects"])


@router.get(
    "/projects",
    response_model=List[ProjectWithClient],
    responses={400: {"description": "Invalid filter", "model": ErrorResponse}},
    summary="Browse projects",
    description=(
        "Lists projects with their client. Filters combine with AND. "
        "The total number of matches is returned in the X-Total-Count header."
    ),
)
async def list_projects(
    response: Response,
    category: Optional[str] = Query(default=None, max_length=100),
    min_budget: Optional[int] = Query(
        default=None, alias="minBudget", ge=0, le=MAX_INTEGER,
        description="Only projects that can pay at least this much",
    ),
    max_budget: Optional[int] = Query(
        default=None, alias="maxBudget", ge=0, le=MAX_INTEGER,
        description="Only projects whose budget starts at or below this",
    ),
    search: Optional[str] = Query(
        default=None, max_length=200,
        description="Case-insensitive match on title or description",
    ),
    status: Optional[ProjectStatus] = Query(default=None),
    client_id: Optional[UUID] = Query(default=None, alias="clientId"),
    sort: ProjectSort = Query(default=ProjectSort.NEWEST),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0, le=MAX_INTEGER),
    db: AsyncSession = Depends(get_db_session),
) -> List[ProjectWithClient]:
    projects, total = await project_service.list_projects(
        db,
        category=category,
        min_budget=min_budget,
        max_budget=max_budget,
        search=search,
        status=status,
        client_id=client_id,
        sort=sort,
        limit=limit,
        offset=offset,
    )
    response.headers["X-Total-Count"] = str(total)
    return [ProjectWithClient.model_validate(p) for p in projects]


@router.get(
    "/projects/{project_id}",
    response_model=ProjectWithClient,
    responses={404: {"description": "Project not found", "model": ErrorResponse}},
    summary="Get a project",
)
async def get_project(
    project_id: RowId,
    db: AsyncSession = Depends(get_db_session),
) -> ProjectWithClient:
    project = await project_service.get_project(db, project_id, with_client=True)
    return ProjectWithClient.model_validate(project)


@router.post(
    "/projects",
    response_model=ProjectRead,
    status_code=201,
    responses={
        400: {"description": "Invalid project or profile incomplete", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Caller is not a client", "model": ErrorResponse},
    },
    summary="Post a project",
)
async def create_project(
    body: ProjectCreate,
    user: User = Depends(require_role(UserRole.CLIENT)),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectRead:
    project = await project_service.create_project(db, user.id, body)
    return ProjectRead.model_validate(project)


@router.patch(
    "/projects/{project_id}",
    response_model=ProjectRead,
    responses={
        400: {"description": "Invalid field", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Not the project owner", "model": ErrorResponse},
        404: {"description": "Project not found", "model": ErrorResponse},
    },
    summary="Update a project you own",
)
async def update_project(
    project_id: RowId,
    body: ProjectUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectRead:
    project = await project_service.update_project(db, project_id, user.id, body)
    return ProjectRead.model_validate(project)
