"""
HTTP client for the n8n workflow engine.

Outbound webhook calls go through `WorkflowClient.post_json`. Interceptors
passed to the constructor see every request before it is sent and every
response (or error) after, which is how the network monitor in
`webhook_debug` observes traffic.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from bosroller.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class RequestRecord:
    url: str
    method: str
    headers: Dict[str, str]
    body: Any
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    _t0: float = field(default_factory=time.monotonic, repr=False)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._t0) * 1000)


@dataclass
class WebhookResponse:
    status: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Parsed body; raises ValueError when the body is not JSON."""
        return json.loads(self.text)


class RequestInterceptor:
    """Base interceptor; override the hooks you need."""

    def on_request(self, record: RequestRecord) -> None:
        pass

    def on_response(self, record: RequestRecord, response: WebhookResponse) -> None:
        pass

    def on_error(self, record: RequestRecord, error: BaseException) -> None:
        pass


class WorkflowClient:
    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        interceptors: Optional[Sequence[RequestInterceptor]] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.interceptors: List[RequestInterceptor] = list(interceptors or [])

    def _session_kwargs(self) -> Dict[str, Any]:
        if self.timeout_seconds is None:
            return {}
        return {"timeout": aiohttp.ClientTimeout(total=self.timeout_seconds)}

    async def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        auth_token: Optional[str] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> WebhookResponse:
        """POST `payload` as JSON. Network failures raise aiohttp.ClientError or asyncio.TimeoutError."""
        headers = {"Content-Type": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        if extra_headers:
            headers.update(extra_headers)

        record = RequestRecord(url=url, method="POST", headers=headers, body=payload)
        for interceptor in self.interceptors:
            interceptor.on_request(record)

        try:
            async with aiohttp.ClientSession(**self._session_kwargs()) as session:
                async with session.post(url, json=payload, headers=headers) as response:
                    text = await response.text()
                    result = WebhookResponse(
                        status=response.status,
                        text=text,
                        headers=dict(response.headers),
                    )
        except Exception as e:
            logger.error(f"Webhook request to {url} failed: {type(e).__name__}: {e}")
            for interceptor in self.interceptors:
                interceptor.on_error(record, e)
            raise

        logger.info(f"Webhook {url} responded {result.status} in {record.elapsed_ms}ms")
        for interceptor in self.interceptors:
            interceptor.on_response(record, result)
        return result


workflow_client = WorkflowClient(timeout_seconds=settings.n8n_timeout_seconds)


def get_workflow_client() -> WorkflowClient:
    return workflow_client
