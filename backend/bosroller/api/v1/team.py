import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from typing import List
from bosroller.core.database import get_db
from bosroller.core.security import get_current_active_user, get_current_team_member, get_password_hash, require_admin
from bosroller.models.user import User
from bosroller.models.team_member import TeamMember
from bosroller.schemas.team import TeamMemberCreate, TeamMemberResponse

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/", response_model=List[TeamMemberResponse], summary="List team", operation_id="list_team")
async def list_team(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Team roster, newest members first."""
    result = await db.execute(select(TeamMember).order_by(TeamMember.created_at.desc(), TeamMember.id.desc()))
    return result.scalars().all()

@router.get("/me", response_model=TeamMemberResponse, summary="My roster entry", operation_id="get_my_membership")
async def get_my_membership(member=Depends(get_current_team_member)):
    """Roster entry of the current user, which carries their role.

    Raises:
        HTTPException:
            - 404: the current user is not on the roster
    """
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="You are not a member of the team"
        )
    return member

@router.post("/", response_model=TeamMemberResponse, status_code=status.HTTP_201_CREATED, summary="Add team member", operation_id="add_team_member")
async def add_team_member(
    data: TeamMemberCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create a login for a new member and add them to the roster.

    Only admins may add members; the role check reads the roster, never the request.

    Args:
        data (TeamMemberCreate): name, email, initial password and role
        admin (User): the admin performing the action
        db (AsyncSession): database session

    Returns:
        TeamMemberResponse: the new roster entry

    Raises:
        HTTPException:
            - 400: the email is already registered
            - 403: the current user is not an admin
    """
    result = await db.execute(select(User).where(or_(User.email == data.email, User.username == data.email)))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = User(
        email=data.email,
        username=data.email,
        hashed_password=get_password_hash(data.password),
        full_name=data.name
    )
    db.add(user)
    await db.flush()

    member = TeamMember(user_id=user.id, name=data.name, email=data.email, role=data.role.value)
    db.add(member)
    await db.commit()
    await db.refresh(member)

    logger.info(f"Team member {member.id} ({data.email}, {member.role}) added by admin {admin.id}")
    return member

@router.delete("/{member_id}", summary="Remove team member", operation_id="remove_team_member")
async def remove_team_member(
    member_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Remove a member from the roster. Their user account is kept.

    Raises:
        HTTPException:
            - 400: an admin tried to remove their own entry
            - 403: the current user is not an admin
            - 404: no such member
    """
    result = await db.execute(select(TeamMember).where(TeamMember.id == member_id))
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Team member not found"
        )
    if member.user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot remove yourself from the team"
        )

    await db.delete(member)
    await db.commit()
    logger.info(f"Team member {member_id} removed by admin {admin.id}")
    return {"message": "Team member removed successfully"}
