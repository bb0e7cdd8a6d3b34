"""
Shared plumbing of the webhook endpoints under /functions/v1.

These endpoints answer with `{"error": ...}` bodies (not FastAPI's
`{"detail": ...}`) and always carry permissive CORS headers, since they are
called from the browser and from the workflow engine.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

FUNCTIONS_PREFIX = "/functions/v1"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}


class FunctionError(Exception):
    """Rendered as `{"error": error, **extra}` with the given status."""

    def __init__(self, status_code: int, error: str, **extra):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.extra = extra


def json_response(body: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code, headers=CORS_HEADERS)


def iso_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def add_method_guard(router: APIRouter, path: str) -> None:
    """OPTIONS answers the CORS preflight; any other non-POST method is a 405."""

    @router.api_route(path, methods=["GET", "PUT", "PATCH", "DELETE", "OPTIONS"], include_in_schema=False)
    async def method_guard(request: Request):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        logger.warning(f"{request.method} not allowed on {request.url.path}")
        return json_response({"error": "Method not allowed"}, status_code=405)


async def function_error_handler(request: Request, exc: FunctionError) -> JSONResponse:
    return json_response({"error": exc.error, **exc.extra}, status_code=exc.status_code)


async def function_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    if request.url.path.startswith(FUNCTIONS_PREFIX):
        logger.error(f"Invalid request body on {request.url.path}: {exc.errors()}")
        return json_response({"error": "Invalid request body", "details": str(exc.errors())}, status_code=400)
    # Everywhere else keep FastAPI's usual 422 payload
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})
