from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime
from bosroller.core.constants import ProjectStatus

class ScriptLine(BaseModel):
    memberId: Optional[int] = None
    memberName: Optional[str] = None
    line: str

class MaterialIn(BaseModel):
    name: str
    checked: bool = False

class MaterialResponse(MaterialIn):
    id: int

    model_config = ConfigDict(from_attributes=True)

class TeamMemberBrief(BaseModel):
    id: int
    name: str
    role: str

    model_config = ConfigDict(from_attributes=True)

class ProjectBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.IDEAS
    location: Optional[str] = None
    shoot_date: Optional[str] = None
    shoot_time: Optional[str] = None
    notes: Optional[str] = None
    posted_by_member_id: Optional[int] = None

class ProjectCreate(ProjectBase):
    team_member_ids: List[int] = Field(..., min_length=1)
    materials: List[MaterialIn] = []
    script: List[ScriptLine] = []

    @field_validator("script")
    @classmethod
    def drop_blank_lines(cls, lines: List[ScriptLine]) -> List[ScriptLine]:
        return [line for line in lines if line.line.strip()]

class ProjectUpdate(ProjectCreate):
    pass

class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus

class ProjectResponse(ProjectBase):
    id: int
    user_id: int
    status: str
    script: Optional[List[ScriptLine]] = None
    team_members: List[TeamMemberBrief] = []
    materials: List[MaterialResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class BoardColumn(BaseModel):
    status: str
    projects: List[ProjectResponse]

class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1)

class CommentResponse(BaseModel):
    id: int
    project_id: int
    user_id: int
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
