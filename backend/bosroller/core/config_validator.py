"""
Startup configuration checks.

Validates presence and shape of the credentials the service needs, and when
the Google Drive integration is enabled, probes the Drive API with the
configured service account (list, get root folder, create/delete a folder).
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from bosroller.core.config import Settings, settings

logger = logging.getLogger(__name__)

DRIVE_API = "https://www.googleapis.com/drive/v3"
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
DRIVE_FOLDER_MIME = "application/vnd.google-apps.folder"

PLACEHOLDER_SECRET = "your-secret-key-here-change-this-in-production"

FOLDER_ID_REGEX = re.compile(r"^[a-zA-Z0-9_-]+$")
SERVICE_ACCOUNT_EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.iam\.gserviceaccount\.com$")

REQUIRED_DRIVE_VARS = {
    "google_service_account_email": "GOOGLE_SERVICE_ACCOUNT_EMAIL",
    "google_private_key": "GOOGLE_PRIVATE_KEY",
    "google_drive_root_folder_id": "GOOGLE_DRIVE_ROOT_FOLDER_ID",
}


class ConfigValidationError(Exception):
    """Raised when strict validation is enabled and a check failed."""


@dataclass
class CheckResult:
    name: str
    ok: bool
    message: str = ""
    suggestion: str = ""


@dataclass
class ValidationReport:
    checks: List[CheckResult] = field(default_factory=list)

    def add(self, result: CheckResult) -> CheckResult:
        self.checks.append(result)
        return result

    def extend(self, other: "ValidationReport") -> None:
        self.checks.extend(other.checks)

    @property
    def has_errors(self) -> bool:
        return any(not check.ok for check in self.checks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": not self.has_errors,
            "checks": [check.__dict__ for check in self.checks],
        }


def validate_url(value: Optional[str], env_name: str) -> CheckResult:
    name = f"{env_name} format"
    if not value:
        return CheckResult(name, False, f"{env_name} is not set", f"Set {env_name} in .env file")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return CheckResult(
            name, False,
            f"{env_name} is not a valid http(s) URL: \"{value}\"",
            "Use a full URL such as https://n8n.example.com/webhook/analyze-video",
        )
    return CheckResult(name, True, f"{env_name} is a valid URL")


def validate_settings(cfg: Settings) -> ValidationReport:
    report = ValidationReport()

    missing = [
        env for attr, env in (
            ("database_url", "DATABASE_URL"),
            ("minio_endpoint", "MINIO_ENDPOINT"),
            ("minio_access_key", "MINIO_ACCESS_KEY"),
            ("minio_secret_key", "MINIO_SECRET_KEY"),
            ("minio_bucket_name", "MINIO_BUCKET_NAME"),
        )
        if not getattr(cfg, attr, None)
    ]
    if missing:
        report.add(CheckResult("required variables", False,
                               f"Missing environment variables: {', '.join(missing)}",
                               "Set the missing variables in .env file"))
    else:
        report.add(CheckResult("required variables", True, "All required environment variables are set"))

    if not cfg.secret_key or cfg.secret_key == PLACEHOLDER_SECRET:
        report.add(CheckResult("SECRET_KEY", False, "SECRET_KEY is unset or still the placeholder",
                               "Generate a random SECRET_KEY for this deployment"))
    else:
        report.add(CheckResult("SECRET_KEY", True, "SECRET_KEY is set"))

    report.add(validate_url(cfg.n8n_webhook_url, "N8N_WEBHOOK_URL"))
    report.add(validate_url(cfg.n8n_chat_webhook_url, "N8N_CHAT_WEBHOOK_URL"))
    report.add(validate_url(cfg.api_base_url, "API_BASE_URL"))

    if not cfg.n8n_webhook_auth:
        # Optional: the workflow engine may accept unauthenticated calls
        logger.warning("N8N_WEBHOOK_AUTH not configured; webhook calls are sent without a bearer token")

    return report


def validate_folder_id(folder_id: Optional[str]) -> CheckResult:
    if not folder_id:
        return CheckResult("folder id", False, "Folder ID is empty",
                           "Set GOOGLE_DRIVE_ROOT_FOLDER_ID in .env file")
    if not FOLDER_ID_REGEX.match(folder_id):
        return CheckResult(
            "folder id", False,
            f"Folder ID contains invalid characters: \"{folder_id}\"",
            "Folder IDs should only contain alphanumeric characters, hyphens, and underscores. "
            "Remove any special characters like \"?hl\".",
        )
    return CheckResult("folder id", True, "Folder ID format is valid")


def validate_service_account_email(email: Optional[str]) -> CheckResult:
    if not email or not SERVICE_ACCOUNT_EMAIL_REGEX.match(email):
        return CheckResult(
            "service account email", False,
            f"Invalid Service Account email format: \"{email}\"",
            "Email should be in format: service-account-name@project-id.iam.gserviceaccount.com",
        )
    return CheckResult("service account email", True, "Service Account email format is valid")


def validate_private_key(private_key: Optional[str]) -> CheckResult:
    if not private_key:
        return CheckResult("private key", False, "Private key is empty",
                           "Set GOOGLE_PRIVATE_KEY in .env file")
    if "BEGIN PRIVATE KEY" not in private_key or "END PRIVATE KEY" not in private_key:
        return CheckResult("private key", False, "Private key format is invalid",
                           "Private key should contain \"BEGIN PRIVATE KEY\" and \"END PRIVATE KEY\" markers")
    return CheckResult("private key", True, "Private Key format is valid")


def build_drive_session(cfg: Settings):
    """AuthorizedSession for the configured service account."""
    from google.auth.transport.requests import AuthorizedSession
    from google.oauth2 import service_account

    info = {
        "type": "service_account",
        "client_email": cfg.google_service_account_email,
        "private_key": (cfg.google_private_key or "").replace("\\n", "\n"),
        "token_uri": "https://oauth2.googleapis.com/token",
    }
    credentials = service_account.Credentials.from_service_account_info(info, scopes=DRIVE_SCOPES)
    return AuthorizedSession(credentials)


class DriveProbe:
    """Live permission probes against the Drive v3 REST API."""

    def __init__(self, session):
        self.session = session

    def test_connection(self) -> CheckResult:
        try:
            response = self.session.get(f"{DRIVE_API}/files", params={"pageSize": 1, "fields": "files(id, name)"})
        except Exception as e:
            return CheckResult("drive connection", False,
                               f"Failed to connect to Google Drive API: {e}",
                               "Check if the Service Account has the necessary permissions and if the private key is correct")
        if response.status_code != 200:
            return CheckResult("drive connection", False,
                               f"Failed to connect to Google Drive API: HTTP {response.status_code}",
                               "Check if the Service Account has the necessary permissions and if the private key is correct")
        return CheckResult("drive connection", True, "Google Drive API connection successful")

    def test_root_folder_access(self, folder_id: str) -> CheckResult:
        try:
            response = self.session.get(f"{DRIVE_API}/files/{folder_id}", params={"fields": "id, name, mimeType"})
        except Exception as e:
            return CheckResult("root folder access", False, f"Failed to access root folder: {e}",
                               "Check the folder ID and Service Account permissions")

        if response.status_code == 404:
            return CheckResult("root folder access", False, f"Folder not found: {folder_id}",
                               "Check if the folder ID is correct and the Service Account has access to it")
        if response.status_code == 403:
            return CheckResult("root folder access", False, f"Access denied to folder: {folder_id}",
                               "The Service Account does not have permission to access this folder. "
                               "Grant \"Editor\" role to the Service Account email in the folder settings.")
        if response.status_code != 200:
            return CheckResult("root folder access", False,
                               f"Failed to access root folder: HTTP {response.status_code}",
                               "Check the folder ID and Service Account permissions")

        data = response.json()
        if data.get("mimeType") != DRIVE_FOLDER_MIME:
            return CheckResult("root folder access", False, f"ID \"{folder_id}\" is not a folder",
                               "Make sure GOOGLE_DRIVE_ROOT_FOLDER_ID points to a valid Google Drive folder")
        return CheckResult("root folder access", True, f"Root folder accessible: \"{data.get('name')}\"")

    def test_folder_creation(self, folder_id: str) -> CheckResult:
        try:
            response = self.session.post(
                f"{DRIVE_API}/files",
                params={"fields": "id"},
                json={
                    "name": f"test-permissions-{int(time.time() * 1000)}",
                    "mimeType": DRIVE_FOLDER_MIME,
                    "parents": [folder_id],
                },
            )
            if response.status_code == 403:
                return CheckResult("folder creation", False, "Permission denied: Cannot create folders",
                                   "Ensure the Service Account has \"Editor\" role in Google Drive settings")
            if response.status_code not in (200, 201):
                return CheckResult("folder creation", False,
                                   f"Failed to verify folder creation permission: HTTP {response.status_code}",
                                   "Check Service Account permissions in Google Drive")
            self.session.delete(f"{DRIVE_API}/files/{response.json()['id']}")
        except Exception as e:
            return CheckResult("folder creation", False,
                               f"Failed to verify folder creation permission: {e}",
                               "Check Service Account permissions in Google Drive")
        return CheckResult("folder creation", True, "Folder creation permission verified")


def validate_google_drive_config(cfg: Settings, session_factory: Optional[Callable[[Settings], Any]] = None) -> ValidationReport:
    report = ValidationReport()

    missing = [env for attr, env in REQUIRED_DRIVE_VARS.items() if not getattr(cfg, attr, None)]
    if missing:
        report.add(CheckResult("drive variables", False,
                               f"Missing environment variables: {', '.join(missing)}",
                               "Set the Google Drive variables in .env file or disable GOOGLE_DRIVE_ENABLED"))
    else:
        report.add(CheckResult("drive variables", True, "All Google Drive variables are set"))

    report.add(validate_folder_id(cfg.google_drive_root_folder_id))
    report.add(validate_service_account_email(cfg.google_service_account_email))
    report.add(validate_private_key(cfg.google_private_key))

    # Live probes only make sense with well-formed credentials
    if report.has_errors:
        return report

    try:
        probe = DriveProbe((session_factory or build_drive_session)(cfg))
    except Exception as e:
        report.add(CheckResult("drive credentials", False, f"Could not load service account credentials: {e}",
                               "Check GOOGLE_SERVICE_ACCOUNT_EMAIL and GOOGLE_PRIVATE_KEY in .env file"))
        return report

    report.add(probe.test_connection())
    report.add(probe.test_root_folder_access(cfg.google_drive_root_folder_id))
    if not report.has_errors:
        report.add(probe.test_folder_creation(cfg.google_drive_root_folder_id))
    return report


def log_report(report: ValidationReport, title: str = "Configuration Validation") -> None:
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)
    for index, check in enumerate(report.checks, start=1):
        if check.ok:
            logger.info(f"{index}. {check.name}: OK: {check.message}")
        else:
            logger.error(f"{index}. {check.name}: ERROR: {check.message}")
            if check.suggestion:
                logger.error(f"   SUGGESTION: {check.suggestion}")
    logger.info("=" * 60)
    if report.has_errors:
        logger.warning("VALIDATION COMPLETED WITH ERRORS")
    else:
        logger.info("VALIDATION COMPLETED SUCCESSFULLY")


async def collect_validation_report(cfg: Settings = settings) -> ValidationReport:
    report = validate_settings(cfg)
    if cfg.google_drive_enabled:
        # google-auth's transport is blocking
        drive_report = await asyncio.get_event_loop().run_in_executor(None, validate_google_drive_config, cfg)
        report.extend(drive_report)
    return report


async def run_startup_validation(cfg: Settings = settings) -> ValidationReport:
    report = await collect_validation_report(cfg)
    log_report(report)
    if report.has_errors and cfg.strict_config_validation:
        raise ConfigValidationError("Configuration validation failed")
    return report
