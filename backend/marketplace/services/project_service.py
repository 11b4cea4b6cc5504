"""
Marketplace Backend: Project Service
====================================

What:  Browsing, creating and editing projects on the board.
Who:   /api/projects routes; interest and message services use
       `get_project()` to check that the parent project exists.

Budget filters:
    A project's budget is a range whose ends are both optional. A project
    matches `minBudget=x` when it can pay at least x (its upper end, or its
    lower end when no upper end was given) and `maxBudget=y` when it can
    start at or below y. Projects without any budget never match a budget
    filter.

Pagination:
    Results are paged with limit/offset; the route reports the unpaged total
    in `X-Total-Count`, computed with the same WHERE clause.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from marketplace.models import Project, ProjectStatus
from marketplace.schemas.project import ProjectCreate, ProjectSort, ProjectUpdate
from marketplace.services.errors import database_errors

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100

# Upper and lower end of a project's budget range, each falling back to the other
_BUDGET_CEILING = func.coalesce(Project.budget_max, Project.budget_min)
_BUDGET_FLOOR = func.coalesce(Project.budget_min, Project.budget_max)

_ORDERINGS = {
    ProjectSort.NEWEST: (Project.created_at.desc(), Project.id.desc()),
    ProjectSort.OLDEST: (Project.created_at.asc(), Project.id.asc()),
    ProjectSort.BUDGET_HIGH: (_BUDGET_CEILING.desc().nulls_last(), Project.id.desc()),
    ProjectSort.BUDGET_LOW: (_BUDGET_FLOOR.asc().nulls_last(), Project.id.desc()),
}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def check_budget_range(budget_min: Optional[int], budget_max: Optional[int]) -> None:
    """
    Raises:
        ValidationError: both ends are set and the minimum exceeds the maximum
    """
    if budget_min is not None and budget_max is not None and budget_min > budget_max:
        raise ValidationError(
            message="Minimum budget cannot be greater than maximum budget",
            field="budgetMin",
            context={"budget_min": budget_min, "budget_max": budget_max},
        )


class ProjectService:

    async def list_projects(
        self,
        db: AsyncSession,
        category: Optional[str] = None,
        min_budget: Optional[int] = None,
        max_budget: Optional[int] = None,
        search: Optional[str] = None,
        status: Optional[ProjectStatus] = None,
        client_id: Optional[uuid.UUID] = None,
        sort: ProjectSort = ProjectSort.NEWEST,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Tuple[List[Project], int]:
        """
        Returns one page of projects (client eagerly loaded) and the total
        number of matches.
        """
        conditions = []
        if category:
            conditions.append(Project.category == category)
        if min_budget is not None:
            conditions.append(_BUDGET_CEILING >= min_budget)
        if max_budget is not None:
            conditions.append(_BUDGET_FLOOR <= max_budget)
        if search and search.strip():
            pattern = f"%{_escape_like(search.strip())}%"
            conditions.append(
                or_(
                    Project.title.ilike(pattern, escape="\\"),
                    Project.description.ilike(pattern, escape="\\"),
                )
            )
        if status is not None:
            conditions.append(Project.status == ProjectStatus(status).value)
        if client_id is not None:
            conditions.append(Project.client_id == client_id)

        query = (
            select(Project)
            .where(*conditions)
            .options(selectinload(Project.client))
            .order_by(*_ORDERINGS[ProjectSort(sort)])
            .limit(limit)
            .offset(offset)
        )
        count_query = select(func.count()).select_from(Project).where(*conditions)

        with database_errors("list projects"):
            total = (await db.execute(count_query)).scalar_one()
            projects = list((await db.execute(query)).scalars().all())

        logger.debug(
            "Listed %d of %d projects (sort=%s, offset=%d)",
            len(projects), total, sort, offset,
        )
        return projects, total

    async def get_project(
        self,
        db: AsyncSession,
        project_id: int,
        with_client: bool = False,
    ) -> Project:
        """
        Raises:
            NotFoundError: no project with that id (→ 404 "Project not found")
        """
        query = select(Project).where(Project.id == project_id)
        if with_client:
            query = query.options(selectinload(Project.client))

        with database_errors("retrieve the project"):
            project = (await db.execute(query)).scalar_one_or_none()

        if project is None:
            raise NotFoundError(resource="project", resource_id=str(project_id))
        return project

    async def create_project(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        data: ProjectCreate,
    ) -> Project:
        check_budget_range(data.budget_min, data.budget_max)

        project = Project(
            client_id=client_id,
            status=ProjectStatus.OPEN.value,
            **data.model_dump(),
        )
        db.add(project)
        with database_errors("create the project"):
            await db.flush()

        logger.info("Project %d created by %s", project.id, client_id)
        return project

    async def update_project(
        self,
        db: AsyncSession,
        project_id: int,
        user_id: uuid.UUID,
        updates: ProjectUpdate,
    ) -> Project:
        """
        Applies a partial update on behalf of the project owner.

        The budget ordering is checked against the merged result, so sending
        only `budgetMin` is still compared with the stored `budgetMax`.

        Raises:
            NotFoundError: project missing
            PermissionDeniedError: caller does not own the project
            ValidationError: merged budget range is inverted
        """
        project = await self.get_project(db, project_id)
        if project.client_id != user_id:
            logger.info("User %s attempted to edit project %d", user_id, project_id)
            raise PermissionDeniedError(message="You can only update your own projects")

        changes = updates.model_dump(exclude_unset=True)
        check_budget_range(
            changes.get("budget_min", project.budget_min),
            changes.get("budget_max", project.budget_max),
        )

        for field, value in changes.items():
            setattr(project, field, value)

        with database_errors("update the project"):
            await db.flush()

        logger.info("Project %d updated: %s", project_id, ", ".join(sorted(changes)) or "no changes")
        return project


project_service = ProjectService()
