import pytest
from unittest.mock import AsyncMock, Mock

from bosroller.client.api_client import VideoAnalysisError
from bosroller.client.poller import AnalysisPoller
from bosroller.client.session import AnalyzerSession


def _record(video_id="vid-1", status="uploading", **extra):
    return {"id": video_id, "status": status, "file_name": "clip.mp4", "chat_history": [], **extra}


class TestAnalyzerSession:
    """Controller of the video analyzer page, with the API client mocked"""

    @pytest.fixture
    def client(self):
        client = Mock()
        client.list = AsyncMock(return_value=[])
        client.create = AsyncMock(return_value=_record())
        client.upload = AsyncMock(return_value="http://cdn.example.com/videos/B3CG/vid-1.mp4")
        client.set_url = AsyncMock(return_value=_record(status="processing"))
        client.trigger = AsyncMock(return_value={"success": True})
        client.get = AsyncMock(return_value=_record(status="completed", analysis_data={"a": 1}))
        client.delete = AsyncMock(return_value=None)
        client.send_chat = AsyncMock(return_value="Cut the intro")
        client.update_chat_history = AsyncMock(return_value=None)
        return client

    @pytest.fixture
    def notifications(self):
        return []

    @pytest.fixture
    def session(self, client, notifications):
        return AnalyzerSession(client, notify=notifications.append, poller=AnalysisPoller(client, interval=0))

    @pytest.mark.asyncio
    async def test_load(self, session, client):
        client.list.return_value = [_record("vid-2"), _record("vid-1")]

        await session.load()

        assert [v["id"] for v in session.videos] == ["vid-2", "vid-1"]
        assert session.current["id"] == "vid-2"
        assert not session.is_loading_list

    @pytest.mark.asyncio
    async def test_load_failure_clears_list(self, session, client):
        session.videos = [_record()]
        client.list.side_effect = VideoAnalysisError("User not authenticated", status=401)

        await session.load()

        assert session.videos == []

    @pytest.mark.asyncio
    async def test_analyze_pipeline(self, session, client, notifications):
        record = await session.analyze("clip.mp4", b"12345", duration=3.0)

        client.create.assert_awaited_once_with("clip.mp4", 5, 3.0)
        client.upload.assert_awaited_once_with("vid-1", "clip.mp4", b"12345")
        client.set_url.assert_awaited_once_with("vid-1", "http://cdn.example.com/videos/B3CG/vid-1.mp4")
        client.trigger.assert_awaited_once_with("vid-1", "clip.mp4", 5)
        assert record["status"] == "processing"
        assert session.progress == 100
        assert not session.is_uploading
        assert session.videos[0]["id"] == "vid-1"
        assert notifications[0].title == "Upload complete"

        result = await session.wait_for_analysis()

        assert result.finished
        assert session.current["status"] == "completed"
        assert session.videos[0]["status"] == "completed"
        assert notifications[-1].title == "Analysis complete"

    @pytest.mark.asyncio
    async def test_analysis_failure_notifies(self, session, client, notifications):
        client.get.return_value = _record(status="failed", error_message="Video could not be decoded")

        await session.analyze("clip.mp4", b"12345")
        await session.wait_for_analysis()

        assert notifications[-1].title == "Analysis failed"
        assert notifications[-1].description == "Video could not be decoded"
        assert notifications[-1].variant == "destructive"

    @pytest.mark.asyncio
    async def test_create_failure(self, session, client, notifications):
        client.create.side_effect = VideoAnalysisError("User not authenticated", status=401)

        assert await session.analyze("clip.mp4", b"12345") is None

        assert notifications[-1].title == "Error"
        assert notifications[-1].description == "User not authenticated"
        assert session.progress == 0
        assert not session.is_uploading
        client.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upload_failure_keeps_record(self, session, client, notifications):
        client.upload.side_effect = VideoAnalysisError("A video has already been uploaded for this analysis")

        assert await session.analyze("clip.mp4", b"12345") is None

        assert notifications[-1].title == "Upload failed"
        assert session.progress == 20
        assert session.current["status"] == "uploading"
        assert session.videos == []
        client.set_url.assert_not_awaited()
        assert await session.wait_for_analysis() is None

    @pytest.mark.asyncio
    async def test_trigger_failure(self, session, client, notifications):
        client.trigger.side_effect = VideoAnalysisError("Failed to send to N8N", status=502)

        assert await session.analyze("clip.mp4", b"12345") is None

        assert notifications[-1].title == "Analysis failed to start"
        assert notifications[-1].description == "Failed to send to N8N"
        assert session.progress == 80

    @pytest.mark.asyncio
    async def test_polling_error_notifies(self, session, client, notifications):
        client.get.side_effect = VideoAnalysisError("Failed to load video analysis")

        await session.analyze("clip.mp4", b"12345")
        result = await session.wait_for_analysis()

        assert result.error is not None
        assert notifications[-1].title == "Error"

    def test_select(self, session):
        session.videos = [_record("vid-1"), _record("vid-2")]

        assert session.select("vid-2")["id"] == "vid-2"
        assert session.select("missing")["id"] == "vid-2"

    @pytest.mark.asyncio
    async def test_delete_current(self, session, client, notifications):
        session.videos = [_record("vid-1"), _record("vid-2")]
        session.current = session.videos[0]

        assert await session.delete("vid-1") is True

        client.delete.assert_awaited_once_with("vid-1")
        assert [v["id"] for v in session.videos] == ["vid-2"]
        assert session.current["id"] == "vid-2"
        assert notifications[-1].title == "Video deleted"

    @pytest.mark.asyncio
    async def test_delete_last(self, session):
        session.videos = [_record("vid-1")]
        session.current = session.videos[0]

        await session.delete("vid-1")

        assert session.current is None

    @pytest.mark.asyncio
    async def test_delete_failure_keeps_list(self, session, client, notifications):
        session.videos = [_record("vid-1")]
        client.delete.side_effect = VideoAnalysisError("Video analysis not found", status=404)

        assert await session.delete("vid-1") is False

        assert [v["id"] for v in session.videos] == ["vid-1"]
        assert notifications[-1].description == "Failed to delete video"

    @pytest.mark.asyncio
    async def test_delete_stops_polling(self, session, client):
        client.get.return_value = _record(status="processing")
        session.poller.interval = 0.01
        session.poller.max_attempts = 1000

        await session.analyze("clip.mp4", b"12345")
        assert session.poller.running

        await session.delete("vid-1")

        assert not session.poller.running
        assert await session.wait_for_analysis() is None

    @pytest.mark.asyncio
    async def test_ask(self, session, client):
        session.current = _record(status="completed", analysis_data={"a": 1})
        session.videos = [session.current]

        answer = await session.ask("How do I improve the hook?")

        assert answer == "Cut the intro"
        history = session.current["chat_history"]
        assert [m["role"] for m in history] == ["user", "assistant"]
        assert history[0]["message"] == "How do I improve the hook?"
        assert history[1]["message"] == "Cut the intro"

        sent_history = client.send_chat.await_args.args[3]
        assert [m["role"] for m in sent_history] == ["user"]
        client.update_chat_history.assert_awaited_once_with("vid-1", history)
        assert session.videos[0]["chat_history"] == history
        assert not session.is_chat_loading

    @pytest.mark.asyncio
    async def test_ask_without_analysis(self, session, client):
        session.current = _record(status="processing")

        assert await session.ask("Anything?") is None

        client.send_chat.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ask_failure(self, session, client, notifications):
        session.current = _record(status="completed", analysis_data={"a": 1})
        client.send_chat.side_effect = VideoAnalysisError("Failed to process question", status=502)

        assert await session.ask("Why?") is None

        assert notifications[-1].description == "Failed to process question"
        client.update_chat_history.assert_not_awaited()
        assert not session.is_chat_loading

    @pytest.mark.asyncio
    async def test_structured_answer_is_stringified(self, session, client):
        session.current = _record(status="completed", analysis_data={"a": 1})
        client.send_chat.return_value = {"output": "Cut"}

        answer = await session.ask("Why?")

        assert answer == "{'output': 'Cut'}"

    @pytest.mark.asyncio
    async def test_close_stops_polling(self, session, client):
        client.get.return_value = _record(status="processing")
        session.poller.interval = 0.01
        session.poller.max_attempts = 1000

        await session.analyze("clip.mp4", b"12345")
        await session.close()

        assert not session.poller.running
