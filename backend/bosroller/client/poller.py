import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from bosroller.core.constants import POLL_INTERVAL_SECONDS, POLL_MAX_ATTEMPTS, TERMINAL_STATUSES

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
UpdateCallback = Callable[[Record], Union[None, Awaitable[None]]]


@dataclass
class PollResult:
    record: Optional[Record]
    attempts: int
    exhausted: bool
    error: Optional[BaseException] = None

    @property
    def finished(self) -> bool:
        return self.record is not None and self.record.get("status") in TERMINAL_STATUSES


class AnalysisPoller:
    """Polls a video analysis until it completes or fails.

    One poll loop at a time; starting a new one cancels the previous. The
    loop gives up silently after `max_attempts` (`PollResult.exhausted`).
    """

    def __init__(self, client, interval: float = POLL_INTERVAL_SECONDS, max_attempts: int = POLL_MAX_ATTEMPTS):
        self.client = client
        self.interval = interval
        self.max_attempts = max_attempts
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, video_id: str, on_update: Optional[UpdateCallback] = None) -> "asyncio.Task[PollResult]":
        self.cancel()
        self._task = asyncio.get_event_loop().create_task(self._run(video_id, on_update))
        return self._task

    def cancel(self) -> None:
        if self.running:
            logger.debug("Cancelling analysis polling")
            self._task.cancel()
        self._task = None

    async def _run(self, video_id: str, on_update: Optional[UpdateCallback]) -> PollResult:
        record: Optional[Record] = None
        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                await asyncio.sleep(self.interval)

            try:
                record = await self.client.get(video_id)
            except Exception as e:
                logger.error(f"Polling {video_id} failed on attempt {attempt}: {e}")
                return PollResult(record, attempt, exhausted=False, error=e)

            if record is None:
                logger.warning(f"Video analysis {video_id} disappeared while polling")
                return PollResult(None, attempt, exhausted=False)

            if on_update is not None:
                result = on_update(record)
                if asyncio.iscoroutine(result):
                    await result

            if record.get("status") in TERMINAL_STATUSES:
                logger.info(f"Video analysis {video_id} finished with {record['status']} after {attempt} polls")
                return PollResult(record, attempt, exhausted=False)

        logger.info(f"Stopped polling {video_id} after {self.max_attempts} attempts")
        return PollResult(record, self.max_attempts, exhausted=True)
