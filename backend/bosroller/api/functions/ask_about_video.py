import asyncio
import logging

import aiohttp
from fastapi import APIRouter, Depends

from bosroller.api.functions.common import FunctionError, add_method_guard, iso_now, json_response
from bosroller.core.config import settings
from bosroller.schemas.functions import AskAboutVideoRequest
from bosroller.services.workflow_client import WorkflowClient, get_workflow_client

logger = logging.getLogger(__name__)

router = APIRouter()

PATH = "/ask-about-video"


def extract_answer(text: str, parsed):
    """The upstream `response` field, else the whole parsed body, else the raw text."""
    if isinstance(parsed, dict) and parsed.get("response"):
        return parsed["response"]
    if parsed is not None:
        return parsed
    return text


@router.post(PATH, summary="Ask a question about an analyzed video", operation_id="ask_about_video")
async def ask_about_video(
    data: AskAboutVideoRequest,
    client: WorkflowClient = Depends(get_workflow_client),
):
    """Relay a chat question to the n8n chat workflow. Nothing is persisted here."""
    if not data.question or not data.videoId:
        raise FunctionError(400, "Missing required fields: question, videoId")

    webhook_url = settings.n8n_chat_webhook_url
    if not webhook_url:
        logger.error("N8N_CHAT_WEBHOOK_URL not configured")
        raise FunctionError(500, "Chat webhook URL not configured")

    payload = {
        "question": data.question,
        "videoId": data.videoId,
        "analysisData": data.analysisData,
        "chatHistory": data.chatHistory,
        "timestamp": iso_now(),
    }
    logger.info(f"[ask-about-video] Sending to N8N: {webhook_url}")

    try:
        response = await client.post_json(webhook_url, payload, auth_token=settings.n8n_webhook_auth)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise FunctionError(502, "Failed to process question", status=0, details=str(e) or type(e).__name__)
    except Exception as e:
        logger.exception(f"[ask-about-video] Error: {e}")
        raise FunctionError(500, "Internal server error", message=str(e) or "Unknown error")

    if not response.ok:
        logger.error(f"[ask-about-video] N8N Error ({response.status}): {response.text}")
        raise FunctionError(502, "Failed to process question", status=response.status, details=response.text)

    try:
        parsed = response.json()
    except ValueError:
        parsed = None

    return json_response({
        "success": True,
        "videoId": data.videoId,
        "response": extract_answer(response.text, parsed),
    })


add_method_guard(router, PATH)
