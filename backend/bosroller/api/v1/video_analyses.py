import logging
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from bosroller.core.database import get_db
from bosroller.core.errors import log_service_error, ErrorType
from bosroller.core.security import get_current_active_user
from bosroller.models.user import User
from bosroller.models.video_analysis import VideoAnalysis
from bosroller.schemas.video_analysis import (
    VideoAnalysisCreate, VideoAnalysisUrlUpdate, ChatHistoryUpdate,
    VideoAnalysisResponse, UploadResponse,
)
from bosroller.services import video_analysis_service
from bosroller.services.minio_client import MinioService, ObjectExistsError, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()

# Storage failures surfaced to the caller, by error category
_STORAGE_ERROR_STATUS = {
    ErrorType.AUTHENTICATION_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorType.PERMISSION_ERROR: status.HTTP_403_FORBIDDEN,
    ErrorType.NOT_FOUND_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorType.RATE_LIMIT_ERROR: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorType.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
}

async def _get_owned_or_404(db: AsyncSession, video_id: str, user: User) -> VideoAnalysis:
    record = await video_analysis_service.get(db, video_id, user_id=user.id)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video analysis not found"
        )
    return record

@router.post("/", response_model=VideoAnalysisResponse, status_code=status.HTTP_201_CREATED, summary="Create video analysis", operation_id="create_video_analysis")
async def create_video_analysis(
    data: VideoAnalysisCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Create an analysis record before the video is uploaded.

    Args:
        data (VideoAnalysisCreate): fileName, fileSize and optional duration in seconds
        current_user (User): owner of the record
        db (AsyncSession): database session

    Returns:
        VideoAnalysisResponse: the new record, status `uploading` with an empty chat history
    """
    return await video_analysis_service.create(
        db, current_user.id, data.file_name, data.file_size, data.duration
    )

@router.post("/{video_id}/upload", response_model=UploadResponse, summary="Upload video file", operation_id="upload_video_file")
async def upload_video_file(
    video_id: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: MinioService = Depends(get_storage)
):
    """Store the video binary and return its public URL.

    The object is written to `{prefix}/{video_id}{ext}` and is never overwritten.

    Raises:
        HTTPException:
            - 404: unknown record
            - 409: an object already exists for this record
            - 403/429/400/502/500: storage error, with a readable message
    """
    record = await _get_owned_or_404(db, video_id, current_user)
    object_name = storage.build_object_name(record.id, file.filename or record.file_name)
    content = await file.read()

    try:
        await storage.upload_file_content(content, object_name, file.content_type or "application/octet-stream")
    except ObjectExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A video has already been uploaded for this analysis"
        )
    except Exception as e:
        info = log_service_error(e, context="upload_video_file", service="storage",
                                 video_id=video_id, object_name=object_name, size=len(content))
        raise HTTPException(
            status_code=_STORAGE_ERROR_STATUS.get(info.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR),
            detail=f"{info.user_message}. {info.suggestion}"
        )

    url = storage.get_public_url(object_name)
    logger.info(f"Uploaded {len(content)} bytes for video analysis {video_id} to {object_name}")
    return {"url": url, "object_name": object_name}

@router.put("/{video_id}/url", response_model=VideoAnalysisResponse, summary="Set video URL", operation_id="set_video_url")
async def set_video_url(
    video_id: str,
    data: VideoAnalysisUrlUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Record the stored video's URL and move the record to `processing`.

    Raises:
        HTTPException:
            - 404: unknown record
            - 409: the record has already finished
    """
    record = await _get_owned_or_404(db, video_id, current_user)
    try:
        return await video_analysis_service.set_url(db, record, data.video_url)
    except video_analysis_service.InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

@router.get("/", response_model=List[VideoAnalysisResponse], summary="List video analyses", operation_id="list_video_analyses")
async def list_video_analyses(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """The current user's analyses, newest first."""
    return await video_analysis_service.list_for_user(db, current_user.id)

@router.get("/{video_id}", response_model=VideoAnalysisResponse, summary="Get video analysis", operation_id="get_video_analysis")
async def get_video_analysis(
    video_id: str,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return await _get_owned_or_404(db, video_id, current_user)

@router.put("/{video_id}/chat-history", response_model=VideoAnalysisResponse, summary="Save chat history", operation_id="update_chat_history")
async def update_chat_history(
    video_id: str,
    data: ChatHistoryUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Overwrite the stored chat transcript with the one sent."""
    record = await _get_owned_or_404(db, video_id, current_user)
    history = [message.model_dump() for message in data.chat_history]
    return await video_analysis_service.update_chat_history(db, record, history)

@router.delete("/{video_id}", summary="Delete video analysis", operation_id="delete_video_analysis")
async def delete_video_analysis(
    video_id: str,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete the record. The uploaded video stays in storage."""
    record = await _get_owned_or_404(db, video_id, current_user)
    await video_analysis_service.delete(db, record)
    return {"message": "Video analysis deleted successfully"}
