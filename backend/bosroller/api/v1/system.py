import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel
from typing import Optional
from bosroller.core.config import settings
from bosroller.core.config_validator import collect_validation_report, log_report
from bosroller.core.security import require_admin
from bosroller.models.user import User
from bosroller.services import webhook_debug
from bosroller.services.minio_client import MinioService, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()

class DiagnosticsRequest(BaseModel):
    """Targets for a diagnostics run; unset fields fall back to the configured values."""
    analyze_webhook_url: Optional[str] = None
    chat_webhook_url: Optional[str] = None
    secret: Optional[str] = None

@router.get("/config-validation", summary="Validate configuration", operation_id="validate_configuration")
async def validate_configuration(admin: User = Depends(require_admin)):
    """Run the startup configuration checks on demand.

    Returns:
        dict: `valid` plus the list of checks with their messages and suggestions
    """
    report = await collect_validation_report(settings)
    log_report(report, title=f"Configuration Validation (requested by user {admin.id})")
    return report.to_dict()

@router.get("/webhooks/config", summary="Webhook configuration", operation_id="get_webhook_config")
async def get_webhook_config(admin: User = Depends(require_admin)):
    """Which webhook settings are present, plus the callback URL handed to the workflow."""
    config = webhook_debug.analyze_webhook_config(settings)
    return {**config, "callback_url": settings.callback_url}

@router.post("/webhooks/diagnostics", summary="Webhook diagnostics", operation_id="run_webhook_diagnostics")
async def run_webhook_diagnostics(
    data: DiagnosticsRequest,
    format: str = Query("report", pattern="^(report|json)$"),
    admin: User = Depends(require_admin)
):
    """Send test payloads to both webhooks and report status and latency.

    `format=json` returns the compact export instead, as a downloadable file.

    Raises:
        HTTPException:
            - 400: a webhook URL is neither given nor configured
    """
    analyze_url = data.analyze_webhook_url or settings.n8n_webhook_url
    chat_url = data.chat_webhook_url or settings.n8n_chat_webhook_url
    if not analyze_url or not chat_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Both webhook URLs must be provided or configured"
        )

    logger.info(f"Webhook diagnostics requested by user {admin.id}")
    secret = data.secret or settings.n8n_webhook_auth or ""
    if format == "json":
        exported = await webhook_debug.export_diagnostics_json(analyze_url, chat_url, secret)
        return Response(
            content=exported,
            media_type="application/json",
            headers={"Content-Disposition": "attachment; filename=webhook-diagnostics.json"}
        )
    return await webhook_debug.run_full_diagnostics(analyze_url, chat_url, secret)

@router.get("/storage", summary="Storage connectivity", operation_id="test_storage")
async def test_storage(
    admin: User = Depends(require_admin),
    storage: MinioService = Depends(get_storage)
):
    return await storage.test_connection()
