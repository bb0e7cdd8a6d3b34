"""
Persistence operations on video analysis records.

All state transitions of a `VideoAnalysis` go through this module:
create (uploading) -> set_url (processing) -> apply_callback / mark_failed
(completed or failed).
"""

import logging
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bosroller.core.config import settings
from bosroller.core.constants import (
    VideoAnalysisStatus,
    STATUS_RANK,
    TERMINAL_STATUSES,
    DEFAULT_ANALYSIS_ERROR,
)
from bosroller.core.database import utc_now
from bosroller.models.video_analysis import VideoAnalysis

logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """A status change that would move a record backwards."""

    status = 409


def normalize_error_message(value: Any) -> str:
    """Failure reason as stored; blank, None and the literal "NULL" become the default."""
    if value is None:
        return DEFAULT_ANALYSIS_ERROR
    text = str(value).strip()
    if not text or text.upper() == "NULL":
        return DEFAULT_ANALYSIS_ERROR
    return text


async def create(db: AsyncSession, user_id: int, file_name: str, file_size: int,
                 duration: Optional[float] = None) -> VideoAnalysis:
    record = VideoAnalysis(
        user_id=user_id,
        file_name=file_name,
        file_size=file_size,
        duration=duration,
        status=VideoAnalysisStatus.UPLOADING.value,
        chat_history=[],
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    logger.info(f"Created video analysis {record.id} for user {user_id}: {file_name}")
    return record


async def get(db: AsyncSession, video_id: str, user_id: Optional[int] = None) -> Optional[VideoAnalysis]:
    """Record by id; scoped to the owner when `user_id` is given."""
    stmt = select(VideoAnalysis).where(VideoAnalysis.id == video_id)
    if user_id is not None:
        stmt = stmt.where(VideoAnalysis.user_id == user_id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_for_user(db: AsyncSession, user_id: int) -> List[VideoAnalysis]:
    stmt = (
        select(VideoAnalysis)
        .where(VideoAnalysis.user_id == user_id)
        .order_by(VideoAnalysis.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def set_url(db: AsyncSession, record: VideoAnalysis, video_url: str) -> VideoAnalysis:
    current_rank = STATUS_RANK[VideoAnalysisStatus(record.status)]
    if current_rank > STATUS_RANK[VideoAnalysisStatus.PROCESSING]:
        raise InvalidTransitionError(f"Video analysis {record.id} is already {record.status}")

    record.video_url = video_url
    record.status = VideoAnalysisStatus.PROCESSING.value
    record.updated_at = utc_now()
    await db.commit()
    await db.refresh(record)
    logger.info(f"Video analysis {record.id} is processing: {video_url}")
    return record


async def mark_failed(db: AsyncSession, record: VideoAnalysis, error_message: Any) -> VideoAnalysis:
    """Fail a record still in flight. Finished records are left as they are."""
    if record.status in TERMINAL_STATUSES:
        logger.warning(f"Not marking video analysis {record.id} failed: already {record.status}")
        return record

    record.status = VideoAnalysisStatus.FAILED.value
    record.error_message = normalize_error_message(error_message)
    record.updated_at = utc_now()
    await db.commit()
    await db.refresh(record)
    logger.warning(f"Video analysis {record.id} marked failed: {record.error_message}")
    return record


async def apply_callback(db: AsyncSession, record: VideoAnalysis, status: str,
                         analysis_data: Any = None, error_message: Any = None) -> bool:
    """Write the workflow result. Returns False when the callback was ignored as a duplicate."""
    if record.status in TERMINAL_STATUSES:
        if settings.callback_ignore_duplicates:
            logger.warning(f"Ignoring duplicate callback for {record.id}: already {record.status}")
            return False
        logger.warning(f"Overwriting terminal video analysis {record.id}: {record.status} -> {status}")

    now = utc_now()
    record.status = status
    record.updated_at = now
    record.completed_at = now
    if status == VideoAnalysisStatus.COMPLETED.value:
        if analysis_data is not None:
            record.analysis_data = analysis_data
    else:
        record.error_message = normalize_error_message(error_message)

    await db.commit()
    await db.refresh(record)
    logger.info(f"Video analysis {record.id} updated by callback: {status}")
    return True


async def update_chat_history(db: AsyncSession, record: VideoAnalysis, chat_history: List[dict]) -> VideoAnalysis:
    record.chat_history = chat_history
    record.updated_at = utc_now()
    await db.commit()
    await db.refresh(record)
    return record


async def delete(db: AsyncSession, record: VideoAnalysis) -> None:
    # The stored video object is left in the bucket
    await db.delete(record)
    await db.commit()
    logger.info(f"Deleted video analysis {record.id}")
