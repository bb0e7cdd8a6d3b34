"""
Async client for the video analysis API.

Wraps the REST endpoints under /api/v1/video-analyses and the webhook
endpoints under /functions/v1. Every failure raises `VideoAnalysisError`
with a message suitable for showing to the user.
"""

import json
import logging
import mimetypes
from typing import Any, Dict, List, Optional

import aiohttp

from bosroller.core.errors import ErrorInfo, format_service_error

logger = logging.getLogger(__name__)


class VideoAnalysisError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, info: Optional[ErrorInfo] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.info = info


def extract_error_message(text: str, default: str) -> str:
    """Best-effort message from an error body: JSON `error`/`detail`, else the text itself."""
    try:
        data = json.loads(text)
    except ValueError:
        return text or default
    if isinstance(data, dict):
        message = data.get("error") or data.get("detail")
        if isinstance(message, str) and message:
            return message
        if message:
            return json.dumps(message)
    return default


class VideoAnalysisClient:
    def __init__(self, base_url: str, access_token: Optional[str] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _headers(self) -> Dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    def _require_auth(self) -> None:
        if not self.access_token:
            raise VideoAnalysisError("User not authenticated", status=401)

    async def _request(self, method: str, path: str, default_error: str, *,
                       json_body: Any = None, data: Any = None, allow_404: bool = False) -> Any:
        url = f"{self.base_url}{path}"
        session = await self._get_session()
        try:
            async with session.request(method, url, json=json_body, data=data, headers=self._headers()) as response:
                text = await response.text()
                status = response.status
        except aiohttp.ClientError as e:
            info = format_service_error(e, context=f"{method} {path}", service="Bosroller API")
            logger.error(f"{method} {url} failed: {info.technical_message}")
            raise VideoAnalysisError(info.user_message, info=info) from e

        if allow_404 and status == 404:
            return None
        if not 200 <= status < 300:
            message = extract_error_message(text, default_error)
            logger.error(f"{method} {url} -> {status}: {text}")
            raise VideoAnalysisError(message, status=status)

        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return text

    async def create(self, file_name: str, file_size: int, duration: Optional[float] = None) -> Dict[str, Any]:
        self._require_auth()
        return await self._request(
            "POST", "/api/v1/video-analyses/", "Failed to create video analysis record",
            json_body={"fileName": file_name, "fileSize": file_size, "duration": duration},
        )

    async def upload(self, video_id: str, file_name: str, content: bytes,
                     content_type: Optional[str] = None) -> str:
        """Upload the binary; returns the public URL."""
        self._require_auth()
        form = aiohttp.FormData()
        form.add_field(
            "file", content, filename=file_name,
            content_type=content_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream",
        )
        result = await self._request("POST", f"/api/v1/video-analyses/{video_id}/upload",
                                     "Failed to upload video", data=form)
        return result["url"]

    async def set_url(self, video_id: str, video_url: str) -> Dict[str, Any]:
        return await self._request("PUT", f"/api/v1/video-analyses/{video_id}/url",
                                   "Failed to update video URL", json_body={"videoUrl": video_url})

    async def trigger(self, video_id: str, file_name: str, file_size: int) -> Dict[str, Any]:
        logger.info(f"Triggering analysis for {video_id} ({file_name}, {file_size} bytes)")
        return await self._request("POST", "/functions/v1/analyze-video", "Failed to trigger analysis",
                                   json_body={"videoId": video_id, "fileName": file_name, "fileSize": file_size})

    async def get(self, video_id: str) -> Optional[Dict[str, Any]]:
        """Current record, or None when it does not exist."""
        return await self._request("GET", f"/api/v1/video-analyses/{video_id}",
                                   "Failed to load video analysis", allow_404=True)

    async def send_chat(self, video_id: str, question: str, analysis_data: Any,
                        chat_history: List[Dict[str, Any]]) -> Any:
        """Ask the chat workflow; returns the assistant's answer."""
        result = await self._request(
            "POST", "/functions/v1/ask-about-video", "Failed to send message",
            json_body={"videoId": video_id, "question": question,
                       "analysisData": analysis_data, "chatHistory": chat_history},
        )
        return result.get("response") if isinstance(result, dict) else result

    async def update_chat_history(self, video_id: str, chat_history: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await self._request("PUT", f"/api/v1/video-analyses/{video_id}/chat-history",
                                   "Failed to save chat history", json_body={"chatHistory": chat_history})

    async def list(self) -> List[Dict[str, Any]]:
        self._require_auth()
        return await self._request("GET", "/api/v1/video-analyses/", "Failed to load video analyses") or []

    async def delete(self, video_id: str) -> None:
        await self._request("DELETE", f"/api/v1/video-analyses/{video_id}", "Failed to delete video analysis")
