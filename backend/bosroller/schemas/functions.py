from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict, Any

# Fields are optional so missing values surface as the endpoints' own 400
# bodies instead of FastAPI's validation payload.

class AnalyzeVideoRequest(BaseModel):
    videoId: Optional[str] = None
    fileName: Optional[str] = None
    fileSize: Optional[int] = None

    model_config = ConfigDict(extra="ignore")

class ReceiveAnalysisRequest(BaseModel):
    videoId: Optional[str] = None
    status: Optional[str] = None
    analysisData: Optional[Any] = None
    errorMessage: Optional[Any] = None

    model_config = ConfigDict(extra="ignore")

class AskAboutVideoRequest(BaseModel):
    question: Optional[str] = None
    videoId: Optional[str] = None
    analysisData: Optional[Any] = None
    chatHistory: Optional[List[Dict[str, Any]]] = None

    model_config = ConfigDict(extra="ignore")
