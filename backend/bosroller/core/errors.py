"""
Error formatting for calls against external services (object storage,
the n8n workflow engine, Google Drive).

Maps a raised error to a category, a message the user can read and an
actionable suggestion. Technical detail is only ever written to the log.
"""

import errno
import logging
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp
from minio.error import S3Error

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass
class ErrorInfo:
    context: str
    service: str
    error_type: ErrorType
    user_message: str
    technical_message: str
    suggestion: str
    status_code: Optional[int] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["error_type"] = self.error_type.value
        return data


# S3 error codes that carry no HTTP status on the exception object
_S3_CODE_STATUS = {
    "AccessDenied": 403,
    "AllAccessDisabled": 403,
    "QuotaExceeded": 403,
    "EntityTooLarge": 400,
    "InvalidAccessKeyId": 401,
    "SignatureDoesNotMatch": 401,
    "NoSuchBucket": 404,
    "NoSuchKey": 404,
    "SlowDown": 429,
    "ServiceUnavailable": 503,
    "InternalError": 500,
}

_NETWORK_ERRNOS = {errno.ECONNREFUSED, errno.ECONNRESET, errno.EHOSTUNREACH, errno.ENETUNREACH, errno.ETIMEDOUT}


def _status_of(error: BaseException) -> Optional[int]:
    if isinstance(error, S3Error):
        status = getattr(getattr(error, "response", None), "status", None)
        return status or _S3_CODE_STATUS.get(error.code)
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def _is_network_error(error: BaseException) -> bool:
    if isinstance(error, (aiohttp.ClientConnectionError, ConnectionError)):
        return True
    if isinstance(error, OSError) and error.errno in _NETWORK_ERRNOS:
        return True
    # socket.gaierror is the host-not-found case
    return type(error).__name__ == "gaierror"


def format_service_error(error: BaseException, context: str = "", service: str = "storage") -> ErrorInfo:
    status = _status_of(error)
    technical = str(error) or type(error).__name__

    if status == 401:
        return ErrorInfo(context, service, ErrorType.AUTHENTICATION_ERROR,
                         f"Authentication failed with {service}",
                         "Invalid or expired credentials",
                         f"Check the {service} credentials in the .env file",
                         status)
    if status == 403:
        return ErrorInfo(context, service, ErrorType.PERMISSION_ERROR,
                         f"Access denied by {service}",
                         technical,
                         f"Verify the account used for {service} has write permission and free quota",
                         status)
    if status == 404:
        return ErrorInfo(context, service, ErrorType.NOT_FOUND_ERROR,
                         f"Resource not found in {service}",
                         technical,
                         "Check that the identifier is correct and the resource still exists",
                         status)
    if status == 429:
        return ErrorInfo(context, service, ErrorType.RATE_LIMIT_ERROR,
                         f"Too many requests to {service}",
                         "API rate limit exceeded",
                         "Please wait a few moments and try again",
                         status)
    if status is not None and status >= 500:
        return ErrorInfo(context, service, ErrorType.SERVER_ERROR,
                         f"{service} is temporarily unavailable",
                         technical,
                         "Try again in a few moments",
                         status)
    if status in (400, 409, 422) or isinstance(error, ValueError):
        return ErrorInfo(context, service, ErrorType.VALIDATION_ERROR,
                         "The request was rejected as invalid",
                         technical,
                         "Check the submitted data and try again",
                         status)
    if _is_network_error(error):
        return ErrorInfo(context, service, ErrorType.NETWORK_ERROR,
                         f"Failed to connect to {service}",
                         f"Network error: {technical}",
                         f"Check your connection and verify {service} is reachable",
                         status)
    return ErrorInfo(context, service, ErrorType.UNKNOWN_ERROR,
                     f"An error occurred while accessing {service}",
                     technical,
                     "Check the server logs for more details",
                     status)


def log_service_error(error: BaseException, context: str = "", service: str = "storage", **additional_info) -> ErrorInfo:
    info = format_service_error(error, context, service)

    lines = [
        "=" * 60,
        f"{service} error",
        "=" * 60,
        f"Timestamp: {info.timestamp}",
        f"Context: {info.context}",
        f"Error Type: {info.error_type.value}",
        f"Status Code: {info.status_code or 'N/A'}",
        f"User Message: {info.user_message}",
        f"Technical Message: {info.technical_message}",
        f"Suggestion: {info.suggestion}",
    ]
    if additional_info:
        lines.append(f"Additional Info: {additional_info}")
    lines.append("=" * 60)
    logger.error("\n".join(lines))

    return info
