from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from bosroller.core.database import Base, utc_now

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255))
    avatar_url = Column(String(1000))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    # Relationships
    team_member = relationship("TeamMember", back_populates="user", uselist=False)
    projects = relationship("Project", back_populates="user", cascade="all, delete-orphan")
    video_analyses = relationship("VideoAnalysis", back_populates="user", cascade="all, delete-orphan")
