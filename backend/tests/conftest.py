import pytest
import os
from unittest.mock import Mock

# Test environment; set before the application modules read their settings.
# The API tests assert on these values, so they are not left to the shell.
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///:memory:'
os.environ['SECRET_KEY'] = 'test-secret-key-for-pytest'
os.environ['API_BASE_URL'] = 'http://api.test'
os.environ['MINIO_ENDPOINT'] = 'localhost:9000'
os.environ['MINIO_PUBLIC_ENDPOINT'] = 'cdn.example.com'
os.environ['MINIO_BUCKET_NAME'] = 'videos'
os.environ['MINIO_SECURE'] = 'false'
os.environ['N8N_WEBHOOK_URL'] = 'http://n8n.test/webhook/analyze-video'
os.environ['N8N_CHAT_WEBHOOK_URL'] = 'http://n8n.test/webhook/ask-about-video'
os.environ['N8N_WEBHOOK_AUTH'] = 'test-webhook-token'
os.environ.setdefault('MINIO_ACCESS_KEY', 'minioadmin')
os.environ.setdefault('MINIO_SECRET_KEY', 'minioadmin')

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bosroller.main import app
from bosroller.core.database import Base, get_db
from bosroller.services import video_analysis_service
from bosroller.services.minio_client import MinioService, get_storage
from bosroller.services.workflow_client import WebhookResponse, get_workflow_client


class FakeStorage(MinioService):
    """MinioService whose bucket lives in a dict instead of a MinIO server."""

    def __init__(self):
        super().__init__()
        self.objects = {}
        self.internal_client = Mock()
        self.internal_client.put_object.side_effect = self._put_object

    def _put_object(self, bucket_name, object_name, data, length, content_type=None, metadata=None):
        self.objects[object_name] = {
            "content": data.read(),
            "content_type": content_type,
            "metadata": metadata,
        }

    async def object_exists(self, object_name: str) -> bool:
        return object_name in self.objects


class FakeWorkflowClient:
    """Stands in for WorkflowClient; records every call and replays `response` or raises `error`."""

    def __init__(self):
        self.calls = []
        self.response = WebhookResponse(status=200, text='{"accepted": true}')
        self.error = None

    async def post_json(self, url, payload, auth_token=None, extra_headers=None):
        self.calls.append({"url": url, "payload": payload, "auth_token": auth_token})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
async def db_engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def workflow():
    return FakeWorkflowClient()


@pytest.fixture
async def client(session_factory, storage, workflow):
    """HTTP client against the app with database, storage and workflow engine replaced"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_workflow_client] = lambda: workflow

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    """Register an account and return bearer headers for it. The first account is the team admin."""
    async def _make_user(email, username, password="secret123", full_name=None):
        response = await client.post("/api/v1/auth/register", json={
            "email": email,
            "username": username,
            "password": password,
            "full_name": full_name,
        })
        assert response.status_code == 200, response.text

        response = await client.post("/api/v1/auth/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _make_user


@pytest.fixture
async def auth_headers(make_user):
    return await make_user("admin@example.com", "admin", full_name="Ada Admin")


@pytest.fixture
def load_analysis(session_factory):
    """Read a video analysis record straight from the database"""
    async def _load(video_id):
        async with session_factory() as session:
            return await video_analysis_service.get(session, video_id)

    return _load


@pytest.fixture
async def processing_video(client, auth_headers):
    """A video analysis that has been uploaded and is waiting for the workflow"""
    response = await client.post("/api/v1/video-analyses/", json={
        "fileName": "clip.mp4",
        "fileSize": 2048,
        "duration": 12.5,
    }, headers=auth_headers)
    assert response.status_code == 201, response.text
    video_id = response.json()["id"]

    response = await client.put(f"/api/v1/video-analyses/{video_id}/url", json={
        "videoUrl": f"http://cdn.example.com/videos/B3CG/{video_id}.mp4",
    }, headers=auth_headers)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def sample_video_content():
    return b"fake video content for testing"


@pytest.fixture
def sample_analysis_data():
    """Result document as produced by the analysis workflow"""
    return {
        "videoId": "abc",
        "viralityEvaluation": {
            "viralityScore": 78,
            "overallVerdict": "Strong hook, weak ending",
            "confidenceLevel": "high",
            "primaryRisk": "Drop-off after 0:20",
        },
        "hookEvaluation": {
            "hookPresentFirst2Seconds": True,
            "hookStrength": "strong",
            "reasoning": "Opens on the punchline",
        },
        "bestPracticeComparison": [
            {"practice": "Captions", "met": True, "notes": "Burned in"},
            {"practice": "Trending audio", "met": False, "notes": "Original audio"},
        ],
        "retentionAnalysis": {
            "earlyDropOffRisk": "low",
            "pacingQuality": "good",
            "structureIssues": ["Slow middle section"],
        },
        "loopabilityAnalysis": {
            "loopPresent": False,
            "loopPotential": "medium",
            "recommendation": "Cut the outro",
        },
        "timestampedImprovements": [
            {
                "timeRange": "0:15-0:22",
                "problem": "Dead air",
                "suggestedChange": "Trim the pause",
                "expectedImpact": "Better retention",
            },
        ],
        "output": {"topThreePriorityActions": ["Trim", "Add CTA", "Loop"]},
        "safeRewriteSuggestions": {
            "hookAlternatives": ["Wait for it..."],
            "ctaSuggestions": ["Follow for part 2"],
        },
    }


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: test talks to a real MinIO or n8n instance"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(pytest.mark.skipif(
                not os.getenv('INTEGRATION_TESTS'),
                reason="set INTEGRATION_TESTS=1 to run integration tests"
            ))
