from .user import User
from .team_member import TeamMember
from .project import Project, Material, Comment, project_team_members
from .video_analysis import VideoAnalysis

__all__ = [
    "User",
    "TeamMember",
    "Project",
    "Material",
    "Comment",
    "project_team_members",
    "VideoAnalysis",
]
