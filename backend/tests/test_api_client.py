import pytest
from aiohttp import test_utils, web

from bosroller.client.api_client import VideoAnalysisClient, VideoAnalysisError, extract_error_message
from bosroller.core.errors import ErrorType


class TestExtractErrorMessage:

    def test_error_field(self):
        assert extract_error_message('{"error": "Video not found"}', "fallback") == "Video not found"

    def test_detail_field(self):
        assert extract_error_message('{"detail": "Not authenticated"}', "fallback") == "Not authenticated"

    def test_structured_detail(self):
        assert extract_error_message('{"detail": [{"loc": ["body"]}]}', "fallback") == '[{"loc": ["body"]}]'

    def test_plain_text(self):
        assert extract_error_message("Bad Gateway", "fallback") == "Bad Gateway"

    def test_empty(self):
        assert extract_error_message("", "fallback") == "fallback"
        assert extract_error_message("{}", "fallback") == "fallback"


@pytest.fixture
async def api_server():
    """Minimal fake of the REST and function endpoints the client talks to"""
    calls = []
    records = {}

    async def create(request):
        body = await request.json()
        calls.append(("create", request.headers.get("Authorization"), body))
        record = {"id": "vid-1", "file_name": body["fileName"], "file_size": body["fileSize"],
                  "status": "uploading", "chat_history": []}
        records["vid-1"] = record
        return web.json_response(record, status=201)

    async def upload(request):
        reader = await request.multipart()
        part = await reader.next()
        content = bytes(await part.read())
        calls.append(("upload", part.name, part.filename, content))
        return web.json_response({"url": "http://cdn.example.com/videos/B3CG/vid-1.mp4",
                                  "object_name": "B3CG/vid-1.mp4"})

    async def set_url(request):
        body = await request.json()
        records["vid-1"].update(video_url=body["videoUrl"], status="processing")
        return web.json_response(records["vid-1"])

    async def get(request):
        record = records.get(request.match_info["video_id"])
        if record is None:
            return web.json_response({"detail": "Video analysis not found"}, status=404)
        return web.json_response(record)

    async def list_all(request):
        return web.json_response(list(records.values()))

    async def delete(request):
        if records.pop(request.match_info["video_id"], None) is None:
            return web.json_response({"detail": "Video analysis not found"}, status=404)
        return web.json_response({"message": "Video analysis deleted successfully"})

    async def analyze(request):
        body = await request.json()
        calls.append(("analyze", body))
        if body["videoId"] not in records:
            return web.json_response({"error": "Video not found", "videoId": body["videoId"]}, status=404)
        return web.json_response({"success": True, "videoId": body["videoId"]})

    async def ask(request):
        body = await request.json()
        calls.append(("ask", body))
        return web.json_response({"success": True, "videoId": body["videoId"], "response": "Cut the intro"})

    async def save_history(request):
        body = await request.json()
        records["vid-1"]["chat_history"] = body["chatHistory"]
        return web.json_response(records["vid-1"])

    app = web.Application()
    app.router.add_post("/api/v1/video-analyses/", create)
    app.router.add_get("/api/v1/video-analyses/", list_all)
    app.router.add_post("/api/v1/video-analyses/{video_id}/upload", upload)
    app.router.add_put("/api/v1/video-analyses/{video_id}/url", set_url)
    app.router.add_put("/api/v1/video-analyses/{video_id}/chat-history", save_history)
    app.router.add_get("/api/v1/video-analyses/{video_id}", get)
    app.router.add_delete("/api/v1/video-analyses/{video_id}", delete)
    app.router.add_post("/functions/v1/analyze-video", analyze)
    app.router.add_post("/functions/v1/ask-about-video", ask)

    server = test_utils.TestServer(app)
    await server.start_server()
    server.calls = calls
    server.records = records
    yield server
    await server.close()


class TestVideoAnalysisClient:

    @pytest.fixture
    async def api(self, api_server):
        client = VideoAnalysisClient(str(api_server.make_url("/")), access_token="token-1")
        yield client
        await client.close()

    @pytest.mark.asyncio
    async def test_full_pipeline(self, api, api_server):
        record = await api.create("clip.mp4", 3, 1.5)
        assert record["status"] == "uploading"
        assert api_server.calls[0][1] == "Bearer token-1"

        url = await api.upload(record["id"], "clip.mp4", b"abc")
        assert url == "http://cdn.example.com/videos/B3CG/vid-1.mp4"
        assert api_server.calls[1] == ("upload", "file", "clip.mp4", b"abc")

        updated = await api.set_url(record["id"], url)
        assert updated["status"] == "processing"

        await api.trigger(record["id"], "clip.mp4", 3)
        assert api_server.calls[2] == ("analyze", {"videoId": "vid-1", "fileName": "clip.mp4", "fileSize": 3})

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, api):
        assert await api.get("nope") is None

    @pytest.mark.asyncio
    async def test_function_error_message(self, api):
        with pytest.raises(VideoAnalysisError) as exc_info:
            await api.trigger("nope", "clip.mp4", 3)

        assert exc_info.value.message == "Video not found"
        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_rest_error_message(self, api):
        with pytest.raises(VideoAnalysisError) as exc_info:
            await api.delete("nope")

        assert exc_info.value.message == "Video analysis not found"

    @pytest.mark.asyncio
    async def test_chat(self, api, api_server):
        await api.create("clip.mp4", 3)
        history = [{"role": "user", "message": "Why?", "timestamp": "t"}]

        answer = await api.send_chat("vid-1", "Why?", {"a": 1}, history)
        saved = await api.update_chat_history("vid-1", history)

        assert answer == "Cut the intro"
        assert api_server.calls[-1][1]["analysisData"] == {"a": 1}
        assert saved["chat_history"] == history

    @pytest.mark.asyncio
    async def test_list_and_delete(self, api):
        await api.create("clip.mp4", 3)

        assert [r["id"] for r in await api.list()] == ["vid-1"]
        await api.delete("vid-1")
        assert await api.list() == []

    @pytest.mark.asyncio
    async def test_requires_token(self, api_server):
        async with VideoAnalysisClient(str(api_server.make_url("/"))) as api:
            with pytest.raises(VideoAnalysisError) as exc_info:
                await api.create("clip.mp4", 3)

        assert exc_info.value.message == "User not authenticated"
        assert exc_info.value.status == 401
        assert api_server.calls == []

    @pytest.mark.asyncio
    async def test_unreachable_server(self):
        async with VideoAnalysisClient(f"http://127.0.0.1:{test_utils.unused_port()}", access_token="t") as api:
            with pytest.raises(VideoAnalysisError) as exc_info:
                await api.list()

        assert exc_info.value.info.error_type == ErrorType.NETWORK_ERROR
        assert exc_info.value.message == "Failed to connect to Bosroller API"
