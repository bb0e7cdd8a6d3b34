"""
Webhook troubleshooting helpers.

Used by the admin system endpoints to check whether the n8n webhooks are
configured and reachable, and by `WorkflowClient` (through `NetworkMonitor`)
to log outbound webhook traffic.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from bosroller.core.config import Settings, settings
from bosroller.services.workflow_client import RequestInterceptor, RequestRecord, WebhookResponse

logger = logging.getLogger(__name__)

MONITORED_URL_MARKERS = ("/functions/", "n8n")
SENSITIVE_HEADERS = {"authorization", "x-n8n-auth", "apikey"}


def _mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    return {k: ("***" if k.lower() in SENSITIVE_HEADERS else v) for k, v in headers.items()}


class NetworkMonitor(RequestInterceptor):
    """Logs calls to the functions endpoints and n8n webhooks and keeps the last few in memory."""

    def __init__(self, markers=MONITORED_URL_MARKERS, max_entries: int = 50):
        self.markers = tuple(markers)
        self.max_entries = max_entries
        self.entries: List[Dict[str, Any]] = []

    def _watched(self, url: str) -> bool:
        return any(marker in url for marker in self.markers)

    def _remember(self, entry: Dict[str, Any]) -> None:
        self.entries.append(entry)
        del self.entries[:-self.max_entries]

    def on_request(self, record: RequestRecord) -> None:
        if not self._watched(record.url):
            return
        logger.info(f"[{record.started_at}] {record.method} {record.url}")
        logger.debug(f"Headers: {_mask_headers(record.headers)}")
        logger.debug(f"Body: {record.body}")

    def on_response(self, record: RequestRecord, response: WebhookResponse) -> None:
        if not self._watched(record.url):
            return
        logger.info(f"{record.method} {record.url} -> {response.status} ({record.elapsed_ms}ms)")
        self._remember({
            "url": record.url,
            "method": record.method,
            "status": response.status,
            "duration": record.elapsed_ms,
            "timestamp": record.started_at,
        })

    def on_error(self, record: RequestRecord, error: BaseException) -> None:
        if not self._watched(record.url):
            return
        logger.warning(f"{record.method} {record.url} -> network error ({record.elapsed_ms}ms): {error}")
        self._remember({
            "url": record.url,
            "method": record.method,
            "status": 0,
            "duration": record.elapsed_ms,
            "timestamp": record.started_at,
            "error": str(error),
        })


@dataclass
class WebhookTestResult:
    url: str
    method: str
    status: int
    status_text: str
    duration: int
    success: bool
    headers: Dict[str, str] = field(default_factory=dict)
    response_body: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["headers"] = _mask_headers(self.headers)
        return data


def analyze_webhook_config(cfg: Settings = settings) -> Dict[str, bool]:
    """Which webhook settings are present; warns about the missing ones."""
    config = {
        "analyze_webhook_url": bool(cfg.n8n_webhook_url),
        "chat_webhook_url": bool(cfg.n8n_chat_webhook_url),
        "webhook_secret": bool(cfg.n8n_webhook_auth),
    }
    logger.info(
        "Webhook configuration: "
        + ", ".join(f"{name}={'set' if present else 'NOT SET'}" for name, present in config.items())
    )
    if not cfg.n8n_webhook_url:
        logger.warning("N8N_WEBHOOK_URL not configured. Update .env file with webhook URL")
    if not cfg.n8n_webhook_auth:
        logger.warning("N8N_WEBHOOK_AUTH not configured. Update .env file with webhook secret")
    return config


def _log_result(result: WebhookTestResult) -> None:
    level = logging.INFO if result.success else logging.WARNING
    logger.log(level, f"Webhook test {result.url}: {result.status} {result.status_text} in {result.duration}ms")
    if result.error:
        logger.error(f"Webhook test error: {result.error}")


async def test_webhook_connectivity(
    webhook_url: str,
    secret: str,
    test_payload: Optional[Dict[str, Any]] = None,
    timeout_seconds: float = 30,
) -> WebhookTestResult:
    """POST a test payload with the `X-N8N-AUTH` header; never raises."""
    payload = {
        "videoId": f"test-{int(time.time() * 1000)}",
        "fileName": "test-video.mp4",
        "fileSize": 1000000,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **(test_payload or {}),
    }
    headers = {"Content-Type": "application/json", "X-N8N-AUTH": secret or ""}

    started = time.monotonic()
    try:
        timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(webhook_url, data=json.dumps(payload), headers=headers) as response:
                body = await response.text()
                result = WebhookTestResult(
                    url=webhook_url,
                    method="POST",
                    status=response.status,
                    status_text=response.reason or "",
                    duration=int((time.monotonic() - started) * 1000),
                    success=200 <= response.status < 300,
                    headers=headers,
                    response_body=body,
                )
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        result = WebhookTestResult(
            url=webhook_url,
            method="POST",
            status=0,
            status_text="Network Error",
            duration=int((time.monotonic() - started) * 1000),
            success=False,
            headers=headers,
            error=str(e) or type(e).__name__,
        )

    _log_result(result)
    return result


async def run_full_diagnostics(analyze_webhook_url: str, chat_webhook_url: str, secret: str) -> Dict[str, Any]:
    config = analyze_webhook_config()
    stamp = int(time.time() * 1000)

    analyze_result = await test_webhook_connectivity(
        analyze_webhook_url, secret,
        {"videoId": f"diagnostic-{stamp}", "fileName": "diagnostic-video.mp4", "fileSize": 5242880},
    )
    chat_result = await test_webhook_connectivity(
        chat_webhook_url, secret,
        {"videoId": f"diagnostic-{stamp}", "question": "Is this a diagnostic test?",
         "analysisData": {}, "chatHistory": []},
    )

    all_ok = analyze_result.success and chat_result.success
    if all_ok:
        logger.info("All webhooks responding correctly")
    else:
        logger.warning("Some webhooks are not responding. Check configuration.")

    return {
        "config": config,
        "analyze": analyze_result.to_dict(),
        "chat": chat_result.to_dict(),
        "all_ok": all_ok,
    }


async def export_diagnostics_json(analyze_webhook_url: str, chat_webhook_url: str, secret: str) -> str:
    analyze_result = await test_webhook_connectivity(analyze_webhook_url, secret)
    chat_result = await test_webhook_connectivity(chat_webhook_url, secret)

    def _summary(result: WebhookTestResult) -> Dict[str, Any]:
        return {
            "url": result.url,
            "status": result.status,
            "success": result.success,
            "duration": result.duration,
            "error": result.error,
        }

    diagnostics = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "webhooks": {
            "analyze": _summary(analyze_result),
            "chat": _summary(chat_result),
        },
    }
    return json.dumps(diagnostics, indent=2)
