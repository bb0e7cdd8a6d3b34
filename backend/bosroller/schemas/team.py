from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime
from bosroller.core.constants import TeamRole, MIN_PASSWORD_LENGTH

class TeamMemberCreate(BaseModel):
    """Adds a member to the roster and creates their login."""
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    role: TeamRole = TeamRole.MEMBER

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Jamie Editor",
                "email": "jamie@example.com",
                "password": "secure_password123",
                "role": "editor"
            }
        }

class TeamMemberResponse(BaseModel):
    id: int
    user_id: int
    name: str
    email: str
    role: str
    avatar: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
