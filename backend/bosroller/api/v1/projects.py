import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy import select
from typing import List, Optional
from bosroller.core.constants import ProjectStatus
from bosroller.core.database import get_db
from bosroller.core.security import get_current_active_user
from bosroller.models.user import User
from bosroller.models.project import Project, Material, Comment
from bosroller.models.team_member import TeamMember
from bosroller.schemas.project import (
    ProjectCreate, ProjectUpdate, ProjectStatusUpdate, ProjectResponse,
    BoardColumn, CommentCreate, CommentResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

def _project_query():
    return select(Project).options(
        selectinload(Project.team_members),
        selectinload(Project.materials),
    )

async def _get_project_or_404(db: AsyncSession, project_id: int) -> Project:
    result = await db.execute(_project_query().where(Project.id == project_id))
    project = result.scalar_one_or_none()
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    return project

async def _load_members(db: AsyncSession, member_ids: List[int]) -> List[TeamMember]:
    result = await db.execute(select(TeamMember).where(TeamMember.id.in_(member_ids)))
    members = list(result.scalars().all())
    if len(members) != len(set(member_ids)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unknown team member in assignment"
        )
    return members

def _apply_fields(project: Project, data: ProjectCreate) -> None:
    project.title = data.title
    project.description = data.description
    project.status = data.status.value
    project.location = data.location
    project.shoot_date = data.shoot_date
    project.shoot_time = data.shoot_time
    project.notes = data.notes
    project.posted_by_member_id = data.posted_by_member_id
    project.script = [line.model_dump() for line in data.script]

@router.get("/", response_model=List[ProjectResponse], summary="List projects", operation_id="list_projects")
async def get_projects(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status", description="Only projects in this column"),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """All projects on the shared board, newest first.

    Args:
        status_filter (Optional[ProjectStatus]): restrict to one kanban column
        current_user (User): authenticated user
        db (AsyncSession): database session

    Returns:
        List[ProjectResponse]: projects with their team members and materials
    """
    stmt = _project_query().order_by(Project.created_at.desc())
    if status_filter:
        stmt = stmt.where(Project.status == status_filter.value)
    result = await db.execute(stmt)
    return result.scalars().all()

@router.get("/board", response_model=List[BoardColumn], summary="Kanban board", operation_id="get_board")
async def get_board(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Projects grouped into kanban columns, in board order (Ideas to Posted)."""
    result = await db.execute(_project_query().order_by(Project.created_at.desc()))
    projects = result.scalars().all()

    columns = {s.value: [] for s in ProjectStatus}
    for project in projects:
        columns.setdefault(project.status, []).append(project)

    return [{"status": name, "projects": items} for name, items in columns.items()]

@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED, summary="Create project", operation_id="create_project")
async def create_project(
    project_data: ProjectCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a project card.

    At least one team member must be assigned. Blank script lines are dropped.

    Raises:
        HTTPException:
            - 400: an assigned team member does not exist
    """
    members = await _load_members(db, project_data.team_member_ids)

    project = Project(user_id=current_user.id)
    _apply_fields(project, project_data)
    project.team_members = members
    project.materials = [Material(name=m.name, checked=m.checked) for m in project_data.materials]

    db.add(project)
    await db.commit()
    logger.info(f"Project created: {project.id} '{project.title}' by user {current_user.id}")

    return await _get_project_or_404(db, project.id)

@router.get("/{project_id}", response_model=ProjectResponse, summary="Get project", operation_id="get_project")
async def get_project(
    project_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return await _get_project_or_404(db, project_id)

@router.put("/{project_id}", response_model=ProjectResponse, summary="Update project", operation_id="update_project")
async def update_project(
    project_id: int,
    project_data: ProjectUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Replace a project's fields, team assignment, materials and script."""
    project = await _get_project_or_404(db, project_id)
    members = await _load_members(db, project_data.team_member_ids)

    _apply_fields(project, project_data)
    project.team_members = members
    project.materials = [Material(name=m.name, checked=m.checked) for m in project_data.materials]

    await db.commit()
    db.expire(project)
    return await _get_project_or_404(db, project_id)

@router.patch("/{project_id}/status", response_model=ProjectResponse, summary="Move project", operation_id="move_project")
async def move_project(
    project_id: int,
    data: ProjectStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Move a card to another kanban column."""
    project = await _get_project_or_404(db, project_id)
    previous = project.status
    project.status = data.status.value
    await db.commit()
    logger.info(f"Project {project_id} moved: {previous} -> {project.status}")
    db.expire(project)
    return await _get_project_or_404(db, project_id)

@router.delete("/{project_id}", summary="Delete project", operation_id="delete_project")
async def delete_project(
    project_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    project = await _get_project_or_404(db, project_id)
    await db.delete(project)
    await db.commit()
    return {"message": "Project deleted successfully"}

@router.get("/{project_id}/comments", response_model=List[CommentResponse], summary="List comments", operation_id="list_comments")
async def list_comments(
    project_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    await _get_project_or_404(db, project_id)
    result = await db.execute(
        select(Comment).where(Comment.project_id == project_id).order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    return result.scalars().all()

@router.post("/{project_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED, summary="Add comment", operation_id="add_comment")
async def add_comment(
    project_id: int,
    data: CommentCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    await _get_project_or_404(db, project_id)
    comment = Comment(project_id=project_id, user_id=current_user.id, text=data.text)
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    return comment
