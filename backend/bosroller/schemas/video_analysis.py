from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime

class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    message: str
    timestamp: str

class AnalysisData(BaseModel):
    """Result document produced by the analysis workflow.

    Only the keys the results viewer reads are declared; anything else the
    workflow sends is kept untouched.
    """
    videoId: Optional[str] = None
    viralityEvaluation: Optional[Dict[str, Any]] = None
    hookEvaluation: Optional[Dict[str, Any]] = None
    bestPracticeComparison: Optional[List[Dict[str, Any]]] = None
    retentionAnalysis: Optional[Dict[str, Any]] = None
    loopabilityAnalysis: Optional[Dict[str, Any]] = None
    timestampedImprovements: Optional[List[Dict[str, Any]]] = None
    output: Optional[Dict[str, Any]] = None
    safeRewriteSuggestions: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="allow")

class VideoAnalysisCreate(BaseModel):
    file_name: str = Field(..., alias="fileName", min_length=1)
    file_size: int = Field(..., alias="fileSize", ge=0)
    duration: Optional[float] = None

    model_config = ConfigDict(populate_by_name=True)

class VideoAnalysisUrlUpdate(BaseModel):
    video_url: str = Field(..., alias="videoUrl", min_length=1)

    model_config = ConfigDict(populate_by_name=True)

class ChatHistoryUpdate(BaseModel):
    chat_history: List[ChatMessage] = Field(..., alias="chatHistory")

    model_config = ConfigDict(populate_by_name=True)

class VideoAnalysisResponse(BaseModel):
    id: str
    user_id: int
    video_url: Optional[str] = None
    file_name: str
    file_size: Optional[int] = None
    duration: Optional[float] = None
    uploaded_at: Optional[datetime] = None
    status: str
    analysis_data: Optional[Any] = None
    chat_history: List[ChatMessage] = []
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class UploadResponse(BaseModel):
    url: str
    object_name: str
