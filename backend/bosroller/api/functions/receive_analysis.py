import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bosroller.api.functions.common import FunctionError, add_method_guard, json_response
from bosroller.core.constants import CALLBACK_STATUSES
from bosroller.core.database import get_db
from bosroller.schemas.functions import ReceiveAnalysisRequest
from bosroller.services import video_analysis_service

logger = logging.getLogger(__name__)

router = APIRouter()

PATH = "/receive-analysis"


@router.post(PATH, summary="Analysis result callback", operation_id="receive_analysis")
async def receive_analysis(
    data: ReceiveAnalysisRequest,
    db: AsyncSession = Depends(get_db),
):
    """Called by the n8n workflow when an analysis finished.

    Writes the outcome to the record: `analysis_data` on completion, a
    normalized `error_message` on failure. The record is left untouched when
    the payload is invalid.
    """
    logger.info(f"[receive-analysis] Callback for {data.videoId}: {data.status}")

    if not data.videoId or not data.status:
        raise FunctionError(400, "Missing required fields: videoId, status")

    if data.status not in CALLBACK_STATUSES:
        logger.error(f"[receive-analysis] Invalid status: {data.status}")
        raise FunctionError(400, "Invalid status. Must be 'completed' or 'failed'")

    try:
        record = await video_analysis_service.get(db, data.videoId)
        if record is None:
            logger.error(f"[receive-analysis] Video {data.videoId} not found in database")
            raise FunctionError(404, "Video not found", videoId=data.videoId)

        logger.info(f"[receive-analysis] Found existing video with status: {record.status}")
        applied = await video_analysis_service.apply_callback(
            db, record, data.status,
            analysis_data=data.analysisData,
            error_message=data.errorMessage,
        )
    except FunctionError:
        raise
    except Exception as e:
        logger.exception(f"[receive-analysis] Unexpected error: {e}")
        raise FunctionError(500, "Internal server error", message=str(e) or "Unknown error")

    return json_response({
        "success": True,
        "videoId": data.videoId,
        "status": data.status,
        "message": "Analysis callback received and processed" if applied
        else "Duplicate callback ignored",
    })


add_method_guard(router, PATH)
