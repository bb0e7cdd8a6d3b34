from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from bosroller.core.database import create_tables
from bosroller.api.v1 import api_router
from bosroller.api.functions import functions_router
from bosroller.api.functions.common import (
    FUNCTIONS_PREFIX, FunctionError, function_error_handler, function_validation_handler,
)
import uvicorn
import logging
import asyncio
from bosroller.core.config import settings
from bosroller.core.config_validator import run_startup_validation
from bosroller.services.minio_client import get_storage
from bosroller.services.webhook_debug import NetworkMonitor
from bosroller.services.workflow_client import get_workflow_client

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler()
    ]
)

# Library chatter
logging.getLogger('sqlalchemy.engine').setLevel(logging.ERROR)
logging.getLogger('sqlalchemy.pool').setLevel(logging.ERROR)
logging.getLogger('sqlalchemy.orm').setLevel(logging.ERROR)
logging.getLogger('aiosqlite').setLevel(logging.ERROR)
logging.getLogger('urllib3.connectionpool').setLevel(logging.ERROR)

app = FastAPI(
    title="Bosroller Studio API",
    description="Content planning board, team roster and AI video analysis",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# The webhook endpoints are called from any origin and authenticate with
# bearer tokens, never cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

SENSITIVE_HEADERS = ['authorization', 'cookie', 'x-api-key', 'apikey', 'x-n8n-auth']

@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger = logging.getLogger("http")

    if settings.debug:
        logger.debug(f"Received request: {request.method} {request.url}")

        safe_headers = {}
        for key, value in request.headers.items():
            if key.lower() in SENSITIVE_HEADERS:
                safe_headers[key] = f"[FILTERED - {len(value)} chars]"
            elif len(value) > 200:
                safe_headers[key] = f"{value[:200]}...[TRUNCATED - total {len(value)} chars]"
            else:
                safe_headers[key] = value

        logger.debug(f"Headers: {safe_headers}")
    else:
        client_host = request.client.host if request.client else "-"
        logger.info(f"{request.method} {request.url} - {client_host}")

    response = await call_next(request)

    if settings.debug:
        logger.debug(f"Response status: {response.status_code}")

    return response

app.add_exception_handler(FunctionError, function_error_handler)
app.add_exception_handler(RequestValidationError, function_validation_handler)

# Include routers
app.include_router(api_router, prefix="/api/v1")
app.include_router(functions_router, prefix=FUNCTIONS_PREFIX)

async def wait_for_database(max_retries=30, retry_interval=2):
    """Block until the database accepts connections."""
    from bosroller.core.database import async_engine
    import sqlalchemy

    for attempt in range(max_retries):
        try:
            async with async_engine.connect() as conn:
                await conn.execute(sqlalchemy.text("SELECT 1"))
                logging.info(f"Database connection successful on attempt {attempt + 1}")
                return True
        except Exception as e:
            logging.warning(f"Database connection attempt {attempt + 1} failed: {e}")
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_interval)
            else:
                logging.error("Database connection failed after all retries")
                return False

@app.on_event("startup")
async def startup_event():
    await run_startup_validation(settings)

    logging.info("Waiting for database connection...")
    if not await wait_for_database():
        logging.error("Failed to connect to database. Exiting.")
        return

    await create_tables()

    await get_storage().ensure_bucket_exists()

    if settings.debug:
        get_workflow_client().interceptors.append(NetworkMonitor())
        logging.info("Webhook network monitoring enabled")

    logging.info("Application startup completed successfully")

@app.get("/")
async def root():
    return {
        "message": "Bosroller Studio API",
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    uvicorn.run(
        "bosroller.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        timeout_keep_alive=300,
        http='h11',
        access_log=False,
        log_level="warning"
    )
