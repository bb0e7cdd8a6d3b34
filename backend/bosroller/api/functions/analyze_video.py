import asyncio
import logging

import aiohttp
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bosroller.api.functions.common import FunctionError, add_method_guard, iso_now, json_response
from bosroller.core.config import settings
from bosroller.core.database import get_db
from bosroller.schemas.functions import AnalyzeVideoRequest
from bosroller.services import video_analysis_service
from bosroller.services.workflow_client import WorkflowClient, get_workflow_client

logger = logging.getLogger(__name__)

router = APIRouter()

PATH = "/analyze-video"


@router.post(PATH, summary="Queue a video for analysis", operation_id="analyze_video")
async def analyze_video(
    data: AnalyzeVideoRequest,
    db: AsyncSession = Depends(get_db),
    client: WorkflowClient = Depends(get_workflow_client),
):
    """Forward a stored video to the n8n analysis workflow.

    Returns as soon as the workflow accepted the job; the result arrives
    later through /functions/v1/receive-analysis.

    Responses:
        200: `{success, videoId, message, callbackUrl}`
        400: missing videoId/fileName, or the video has no URL yet
        404: `{error: "Video not found", videoId}`
        500: webhook URL not configured
        502: the workflow rejected the job or could not be reached; the record is marked failed
    """
    if not data.videoId or not data.fileName:
        raise FunctionError(400, "Missing required fields: videoId, fileName")

    webhook_url = settings.n8n_webhook_url
    if not webhook_url:
        logger.error("N8N_WEBHOOK_URL not configured")
        raise FunctionError(500, "N8N webhook URL not configured")

    try:
        record = await video_analysis_service.get(db, data.videoId)
        if record is None:
            logger.error(f"[analyze-video] Video {data.videoId} not found")
            raise FunctionError(404, "Video not found", videoId=data.videoId)
        if not record.video_url:
            raise FunctionError(400, "Video URL not set. Upload the video before requesting analysis",
                                videoId=data.videoId)

        callback_url = settings.callback_url
        payload = {
            "videoId": data.videoId,
            "videoUrl": record.video_url,
            "fileName": data.fileName,
            "fileSize": data.fileSize if data.fileSize is not None else record.file_size,
            "callbackUrl": callback_url,
            "timestamp": iso_now(),
        }
        logger.info(f"[analyze-video] Sending to N8N: {webhook_url}")

        try:
            response = await client.post_json(webhook_url, payload, auth_token=settings.n8n_webhook_auth)
            upstream_status, details = response.status, response.text
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            upstream_status, details = 0, str(e) or type(e).__name__
            response = None

        if response is None or not response.ok:
            logger.error(f"[analyze-video] N8N Error ({upstream_status}): {details}")
            await video_analysis_service.mark_failed(
                db, record, f"Failed to send to N8N (status {upstream_status}): {details}"
            )
            raise FunctionError(502, "Failed to send to N8N", status=upstream_status, details=details)

        logger.info(f"[analyze-video] N8N accepted {data.videoId}: {response.text}")
        return json_response({
            "success": True,
            "videoId": data.videoId,
            "message": "Video queued for analysis",
            "callbackUrl": callback_url,
        })
    except FunctionError:
        raise
    except Exception as e:
        logger.exception(f"[analyze-video] Error: {e}")
        raise FunctionError(500, "Internal server error", message=str(e) or "Unknown error")


add_method_guard(router, PATH)
