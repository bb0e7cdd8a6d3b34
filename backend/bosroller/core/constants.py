"""System constants"""

from enum import Enum

class VideoAnalysisStatus(str, Enum):
    """Lifecycle of an uploaded video analysis"""
    UPLOADING = "uploading"          # record created, binary not stored yet
    PROCESSING = "processing"        # stored, waiting for the workflow engine
    COMPLETED = "completed"
    FAILED = "failed"

class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"

class ProjectStatus(str, Enum):
    """Kanban columns, in board order"""
    IDEAS = "Ideas"
    PLANNED = "Planned"
    IN_PRODUCTION = "In Production"
    FINISHED = "Finished"
    POSTED = "Posted"

class TeamRole(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    MEMBER = "member"

# Forward-only ordering of analysis states; both terminal states share a rank
STATUS_RANK = {
    VideoAnalysisStatus.UPLOADING: 0,
    VideoAnalysisStatus.PROCESSING: 1,
    VideoAnalysisStatus.COMPLETED: 2,
    VideoAnalysisStatus.FAILED: 2,
}

TERMINAL_STATUSES = {VideoAnalysisStatus.COMPLETED.value, VideoAnalysisStatus.FAILED.value}
CALLBACK_STATUSES = ("completed", "failed")

DEFAULT_ANALYSIS_ERROR = "Analysis failed"

# Client polling
POLL_INTERVAL_SECONDS = 5.0
POLL_MAX_ATTEMPTS = 60  # five minutes at the default interval

# Settings page
MIN_PASSWORD_LENGTH = 6

# Results viewer score bands
SCORE_HIGH_THRESHOLD = 71
SCORE_MEDIUM_THRESHOLD = 41
