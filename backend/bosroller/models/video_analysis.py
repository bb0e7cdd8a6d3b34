import uuid
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Float, JSON, BigInteger
from sqlalchemy.orm import relationship
from bosroller.core.database import Base, utc_now

def _new_id() -> str:
    return str(uuid.uuid4())

class VideoAnalysis(Base):
    __tablename__ = "video_analyses"

    # String ids are shared with the workflow engine and used in storage paths
    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    video_url = Column(String(1000))
    file_name = Column(String(500), nullable=False)
    file_size = Column(BigInteger)  # bytes
    duration = Column(Float)  # seconds
    uploaded_at = Column(DateTime(timezone=True), default=utc_now)
    status = Column(String(20), nullable=False, default="uploading")  # uploading, processing, completed, failed
    analysis_data = Column(JSON)  # produced by the workflow engine, displayed as-is
    chat_history = Column(JSON, default=list)
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
    completed_at = Column(DateTime(timezone=True))

    # Relationships
    user = relationship("User", back_populates="video_analyses")
