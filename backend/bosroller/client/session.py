"""
Controller behind the AI video analyzer page.

Keeps the list of the user's analyses and the one being viewed, runs the
upload -> trigger -> poll pipeline and the chat loop. Failures are reported
through the `notify` callable and never raised to the caller; state from
before the failed step is kept.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from bosroller.client.api_client import VideoAnalysisClient, VideoAnalysisError
from bosroller.client.poller import AnalysisPoller, PollResult
from bosroller.core.constants import ChatRole, VideoAnalysisStatus

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


@dataclass
class Notification:
    title: str
    description: str
    variant: str = "default"  # or "destructive"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AnalyzerSession:
    def __init__(self, client: VideoAnalysisClient,
                 notify: Optional[Callable[[Notification], None]] = None,
                 poller: Optional[AnalysisPoller] = None):
        self.client = client
        self.notify = notify or (lambda notification: None)
        self.poller = poller or AnalysisPoller(client)

        self.videos: List[Record] = []
        self.current: Optional[Record] = None
        self.progress = 0
        self.is_uploading = False
        self.is_loading_list = False
        self.is_chat_loading = False

        self._poll_task: Optional[asyncio.Task] = None
        self._polling_id: Optional[str] = None

    def _error(self, title: str, description: str) -> None:
        self.notify(Notification(title, description, "destructive"))

    async def load(self) -> None:
        self.is_loading_list = True
        try:
            self.videos = await self.client.list()
            if self.videos and self.current is None:
                self.current = self.videos[0]
        except VideoAnalysisError as e:
            logger.error(f"Error loading video list: {e}")
            self.videos = []
        finally:
            self.is_loading_list = False

    async def analyze(self, file_name: str, content: bytes, duration: Optional[float] = None) -> Optional[Record]:
        """Create, upload, register and trigger analysis of a video, then poll for the result."""
        self.is_uploading = True
        self.progress = 0
        try:
            try:
                analysis = await self.client.create(file_name, len(content), duration)
            except VideoAnalysisError as e:
                self._error("Error", e.message or "Failed to create video analysis")
                return None
            self.current = analysis
            self.progress = 20

            try:
                url = await self.client.upload(analysis["id"], file_name, content)
            except VideoAnalysisError as e:
                self._error("Upload failed", e.message or "Failed to upload video")
                return None
            self.progress = 60

            try:
                analysis = await self.client.set_url(analysis["id"], url)
            except VideoAnalysisError as e:
                self._error("Error", e.message)
                return None
            self.progress = 80

            try:
                await self.client.trigger(analysis["id"], file_name, len(content))
            except VideoAnalysisError as e:
                self._error("Analysis failed to start", e.message)
                return None
            self.progress = 100
        finally:
            self.is_uploading = False

        self.videos.insert(0, analysis)
        self.current = analysis
        self.notify(Notification("Upload complete", "Your video is being analyzed. This may take a few minutes."))

        self._start_polling(analysis["id"])
        return analysis

    def _start_polling(self, video_id: str) -> None:
        self._polling_id = video_id
        self._poll_task = self.poller.start(video_id, self._apply_update)
        self._poll_task.add_done_callback(self._on_poll_done)

    def _apply_update(self, record: Record) -> None:
        if self.current is not None and self.current.get("id") == record["id"]:
            self.current = record
        self.videos = [record if v.get("id") == record["id"] else v for v in self.videos]

        if record.get("status") == VideoAnalysisStatus.COMPLETED.value:
            self.notify(Notification("Analysis complete", "Your video has been analyzed successfully"))
        elif record.get("status") == VideoAnalysisStatus.FAILED.value:
            self._error("Analysis failed", record.get("error_message") or "An error occurred during analysis")

    def _on_poll_done(self, task: "asyncio.Task[PollResult]") -> None:
        if task.cancelled():
            return
        result = task.result()
        if result.error is not None:
            self._error("Error", f"Could not refresh the analysis status: {result.error}")

    async def wait_for_analysis(self) -> Optional[PollResult]:
        """Result of the running poll loop; None when nothing is being polled or it was cancelled."""
        if self._poll_task is None:
            return None
        try:
            return await self._poll_task
        except asyncio.CancelledError:
            return None

    def select(self, video_id: str) -> Optional[Record]:
        for video in self.videos:
            if video.get("id") == video_id:
                self.current = video
                break
        return self.current

    async def delete(self, video_id: str) -> bool:
        try:
            await self.client.delete(video_id)
        except VideoAnalysisError as e:
            logger.error(f"Failed to delete {video_id}: {e}")
            self._error("Error", "Failed to delete video")
            return False

        if self._polling_id == video_id:
            self.poller.cancel()
            self._polling_id = None

        remaining = [v for v in self.videos if v.get("id") != video_id]
        if self.current is not None and self.current.get("id") == video_id:
            self.current = remaining[0] if remaining else None
        self.videos = remaining
        self.notify(Notification("Video deleted", "The video has been removed"))
        return True

    async def ask(self, question: str) -> Optional[str]:
        """Ask about the current analysis; returns the answer or None on failure."""
        current = self.current
        if not current or not current.get("analysis_data"):
            return None

        self.is_chat_loading = True
        user_message = {"role": ChatRole.USER.value, "message": question, "timestamp": _now()}
        history = list(current.get("chat_history") or []) + [user_message]
        self.current = {**current, "chat_history": history}

        try:
            try:
                answer = await self.client.send_chat(current["id"], question, current["analysis_data"], history)
            except VideoAnalysisError as e:
                self._error("Error", e.message or "Failed to send message")
                return None
            if not answer:
                self._error("Error", "Failed to send message")
                return None

            if not isinstance(answer, str):
                answer = str(answer)
            assistant_message = {"role": ChatRole.ASSISTANT.value, "message": answer, "timestamp": _now()}
            final_history = history + [assistant_message]

            try:
                await self.client.update_chat_history(current["id"], final_history)
            except VideoAnalysisError as e:
                self._error("Error", e.message)

            self.current = {**current, "chat_history": final_history}
            self.videos = [self.current if v.get("id") == current["id"] else v for v in self.videos]
            return answer
        finally:
            self.is_chat_loading = False

    async def close(self) -> None:
        """Stop polling; call when the page goes away."""
        self.poller.cancel()
        self._polling_id = None
