import pytest

from bosroller.services.minio_client import ObjectExistsError

BASE = "/api/v1/video-analyses"


class QuotaExceeded(Exception):
    status = 403


class TestVideoAnalysesAPI:
    """Owner-scoped video analysis records"""

    @pytest.fixture
    async def created(self, client, auth_headers):
        response = await client.post(f"{BASE}/", json={
            "fileName": "My Clip.MP4",
            "fileSize": 30,
            "duration": 42.0,
        }, headers=auth_headers)
        assert response.status_code == 201, response.text
        return response.json()

    @pytest.mark.asyncio
    async def test_create(self, created):
        assert created["status"] == "uploading"
        assert created["file_name"] == "My Clip.MP4"
        assert created["file_size"] == 30
        assert created["duration"] == 42.0
        assert created["chat_history"] == []
        assert created["video_url"] is None
        assert created["analysis_data"] is None
        assert len(created["id"]) == 36

    @pytest.mark.asyncio
    async def test_create_requires_auth(self, client):
        response = await client.post(f"{BASE}/", json={"fileName": "clip.mp4", "fileSize": 1})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_rejects_negative_size(self, client, auth_headers):
        response = await client.post(f"{BASE}/", json={"fileName": "clip.mp4", "fileSize": -1}, headers=auth_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_upload(self, client, auth_headers, created, storage, sample_video_content):
        video_id = created["id"]

        response = await client.post(
            f"{BASE}/{video_id}/upload",
            files={"file": ("My Clip.MP4", sample_video_content, "video/mp4")},
            headers=auth_headers,
        )

        assert response.status_code == 200
        object_name = f"B3CG/{video_id}.mp4"
        assert response.json() == {
            "url": f"http://cdn.example.com/videos/{object_name}",
            "object_name": object_name,
        }
        stored = storage.objects[object_name]
        assert stored["content"] == sample_video_content
        assert stored["content_type"] == "video/mp4"
        assert stored["metadata"] == {"Cache-Control": "max-age=3600"}

    @pytest.mark.asyncio
    async def test_upload_never_overwrites(self, client, auth_headers, created, storage, sample_video_content):
        video_id = created["id"]
        storage.objects[f"B3CG/{video_id}.mp4"] = {"content": b"original"}

        response = await client.post(
            f"{BASE}/{video_id}/upload",
            files={"file": ("clip.mp4", sample_video_content, "video/mp4")},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "A video has already been uploaded for this analysis"
        assert storage.objects[f"B3CG/{video_id}.mp4"] == {"content": b"original"}

    @pytest.mark.asyncio
    async def test_upload_permission_error(self, client, auth_headers, created, storage, sample_video_content):
        storage.internal_client.put_object.side_effect = QuotaExceeded("quota exceeded")

        response = await client.post(
            f"{BASE}/{created['id']}/upload",
            files={"file": ("clip.mp4", sample_video_content, "video/mp4")},
            headers=auth_headers,
        )

        assert response.status_code == 403
        assert response.json()["detail"].startswith("Access denied by storage.")

    @pytest.mark.asyncio
    async def test_upload_network_error(self, client, auth_headers, created, storage, sample_video_content):
        storage.internal_client.put_object.side_effect = ConnectionRefusedError("connection refused")

        response = await client.post(
            f"{BASE}/{created['id']}/upload",
            files={"file": ("clip.mp4", sample_video_content, "video/mp4")},
            headers=auth_headers,
        )

        assert response.status_code == 500
        assert response.json()["detail"].startswith("Failed to connect to storage.")

    @pytest.mark.asyncio
    async def test_upload_does_not_change_status(self, client, auth_headers, created, sample_video_content):
        await client.post(
            f"{BASE}/{created['id']}/upload",
            files={"file": ("clip.mp4", sample_video_content, "video/mp4")},
            headers=auth_headers,
        )

        response = await client.get(f"{BASE}/{created['id']}", headers=auth_headers)
        assert response.json()["status"] == "uploading"

    @pytest.mark.asyncio
    async def test_set_url(self, client, auth_headers, created):
        response = await client.put(f"{BASE}/{created['id']}/url", json={
            "videoUrl": "http://cdn.example.com/videos/B3CG/x.mp4",
        }, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "processing"
        assert response.json()["video_url"] == "http://cdn.example.com/videos/B3CG/x.mp4"

    @pytest.mark.asyncio
    async def test_set_url_after_completion_conflicts(self, client, auth_headers, processing_video):
        video_id = processing_video["id"]
        await client.post("/functions/v1/receive-analysis", json={
            "videoId": video_id, "status": "completed", "analysisData": {"a": 1},
        })

        response = await client.put(f"{BASE}/{video_id}/url", json={"videoUrl": "http://elsewhere/x.mp4"},
                                    headers=auth_headers)

        assert response.status_code == 409
        record = (await client.get(f"{BASE}/{video_id}", headers=auth_headers)).json()
        assert record["status"] == "completed"
        assert record["video_url"] == processing_video["video_url"]

    @pytest.mark.asyncio
    async def test_list_newest_first(self, client, auth_headers):
        ids = []
        for name in ("first.mp4", "second.mp4", "third.mp4"):
            response = await client.post(f"{BASE}/", json={"fileName": name, "fileSize": 1}, headers=auth_headers)
            ids.append(response.json()["id"])

        response = await client.get(f"{BASE}/", headers=auth_headers)

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == list(reversed(ids))

    @pytest.mark.asyncio
    async def test_records_are_private(self, client, auth_headers, make_user, created):
        other = await make_user("other@example.com", "other")

        assert (await client.get(f"{BASE}/{created['id']}", headers=other)).status_code == 404
        assert (await client.delete(f"{BASE}/{created['id']}", headers=other)).status_code == 404
        assert (await client.get(f"{BASE}/", headers=other)).json() == []

    @pytest.mark.asyncio
    async def test_get_unknown(self, client, auth_headers):
        response = await client.get(f"{BASE}/missing", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Video analysis not found"

    @pytest.mark.asyncio
    async def test_update_chat_history(self, client, auth_headers, created):
        history = [
            {"role": "user", "message": "What should I fix?", "timestamp": "2025-01-01T10:00:00Z"},
            {"role": "assistant", "message": "The hook.", "timestamp": "2025-01-01T10:00:05Z"},
        ]

        response = await client.put(f"{BASE}/{created['id']}/chat-history", json={"chatHistory": history},
                                    headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["chat_history"] == history

    @pytest.mark.asyncio
    async def test_chat_history_rejects_unknown_role(self, client, auth_headers, created):
        response = await client.put(f"{BASE}/{created['id']}/chat-history", json={
            "chatHistory": [{"role": "system", "message": "x", "timestamp": "t"}],
        }, headers=auth_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delete_keeps_stored_video(self, client, auth_headers, created, storage, sample_video_content):
        await client.post(
            f"{BASE}/{created['id']}/upload",
            files={"file": ("clip.mp4", sample_video_content, "video/mp4")},
            headers=auth_headers,
        )

        response = await client.delete(f"{BASE}/{created['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert (await client.get(f"{BASE}/{created['id']}", headers=auth_headers)).status_code == 404
        assert f"B3CG/{created['id']}.mp4" in storage.objects


class TestObjectExistsError:

    def test_carries_conflict_status(self):
        error = ObjectExistsError("B3CG/x.mp4")

        assert error.status == 409
        assert error.object_name == "B3CG/x.mp4"
        assert "B3CG/x.mp4" in str(error)
