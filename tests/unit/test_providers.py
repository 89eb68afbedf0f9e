"""Unit tests for provider polling, live provider request handling and mock providers"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from core.config import Settings
from core.errors import AssemblyError, GenerationTimeoutError, ProviderError, QuotaError
from core.providers import (
    MockAudioProvider,
    MockLipSyncProvider,
    MockRenderProvider,
    MockTextClient,
    MockVideoProvider,
    create_providers,
    get_all_providers,
)
from core.providers.audio.elevenlabs import ElevenLabsProvider, is_quota_error
from core.providers.base import (
    JobState,
    JobStatus,
    ProviderConfig,
    ProviderType,
    StorageProviderConfig,
    VideoProviderConfig,
    poll_until_complete,
    read_json_object,
)
from core.providers.image.fal import FalImageProvider
from core.providers.lipsync.sync_so import SyncLabsProvider
from core.providers.render.assembly_server import AssemblyServerProvider
from core.providers.storage.local import LocalStorageProvider
from core.providers.video.runway import DEFAULT_API_BASE, RunwayProvider, canonicalize_base_url


# ============================================================
# Helpers
# ============================================================

def mock_response(status=200, json_data=None, text=""):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_data or {})
    response.text = AsyncMock(return_value=text)
    response.read = AsyncMock(return_value=b"ID3audio")
    return response


def mock_session(response):
    """Session whose post() and get() both yield the given response"""
    session = MagicMock()
    session.post.return_value.__aenter__.return_value = response
    session.get.return_value.__aenter__.return_value = response
    return session


def patched_client_session(module: str, response):
    """Patch aiohttp.ClientSession as used by `async with aiohttp.ClientSession() as session`"""
    session = mock_session(response)
    client_session = MagicMock()
    client_session.return_value.__aenter__.return_value = session
    return patch(f"{module}.aiohttp.ClientSession", client_session), session


def json_body_response(body):
    """200 response whose json() yields body, or raises it when body is an exception"""
    response = mock_response()
    if isinstance(body, Exception):
        response.json = AsyncMock(side_effect=body)
    else:
        response.json = AsyncMock(return_value=body)
    return response


# ============================================================
# Response decoding
# ============================================================

class TestReadJsonObject:

    @pytest.mark.asyncio
    async def test_returns_object(self):
        assert await read_json_object(json_body_response({"id": "x"})) == {"id": "x"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [None, [], "done", 3])
    async def test_rejects_other_json_values(self, body):
        with pytest.raises(ValueError, match="expected a JSON object"):
            await read_json_object(json_body_response(body))

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        error = json.JSONDecodeError("Expecting value", "{oops", 1)
        with pytest.raises(ValueError, match="malformed JSON"):
            await read_json_object(json_body_response(error))


# ============================================================
# Polling
# ============================================================

class TestPollUntilComplete:

    @pytest.mark.asyncio
    async def test_times_out_after_exactly_max_attempts(self):
        check = AsyncMock(return_value=JobState(status=JobStatus.PENDING))

        with pytest.raises(GenerationTimeoutError) as exc_info:
            await poll_until_complete(check, "t1", poll_interval=0, max_attempts=4, provider="test")

        assert check.await_count == 4
        assert exc_info.value.attempts == 4
        assert isinstance(exc_info.value, ProviderError)

    @pytest.mark.asyncio
    async def test_returns_on_success(self):
        check = AsyncMock(side_effect=[
            JobState(status=JobStatus.PENDING),
            JobState(status=JobStatus.PENDING),
            JobState(status=JobStatus.SUCCEEDED, output_url="https://cdn/v.mp4"),
        ])
        state = await poll_until_complete(check, "t1", poll_interval=0, max_attempts=10, provider="test")
        assert state.output_url == "https://cdn/v.mp4"
        assert check.await_count == 3

    @pytest.mark.asyncio
    async def test_failed_job_raises_provider_error(self):
        check = AsyncMock(return_value=JobState(status=JobStatus.FAILED, error="content moderation"))
        with pytest.raises(ProviderError, match="content moderation"):
            await poll_until_complete(check, "t1", poll_interval=0, max_attempts=10, provider="test")

    @pytest.mark.asyncio
    async def test_sleeps_between_checks_only(self):
        check = AsyncMock(return_value=JobState(status=JobStatus.PENDING))
        with patch("core.providers.base.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(GenerationTimeoutError):
                await poll_until_complete(check, "t1", poll_interval=5, max_attempts=3, provider="test")
        assert sleep.await_count == 2


# ============================================================
# Runway
# ============================================================

class TestRunwayBaseUrl:

    @pytest.mark.parametrize("base_url,expected", [
        (None, DEFAULT_API_BASE),
        ("", DEFAULT_API_BASE),
        ("https://api.runwayml.com/v1", "https://api.dev.runwayml.com/v1"),
        ("https://api.dev.runwayml.com/v1/", "https://api.dev.runwayml.com/v1"),
        ("http://api.dev.runwayml.com/v1", DEFAULT_API_BASE),
        ("https://attacker.example.com/v1", DEFAULT_API_BASE),
        ("https://api.dev.runwayml.com", DEFAULT_API_BASE),
    ])
    def test_canonicalize(self, base_url, expected):
        assert canonicalize_base_url(base_url) == expected


class TestRunwayProvider:

    @pytest.fixture
    def provider(self):
        return RunwayProvider(VideoProviderConfig(
            provider_type=ProviderType.RUNWAY,
            api_key="rw-test-key-123456",
            base_url="https://api.runwayml.com/v1",
            poll_interval=0,
            max_attempts=3,
        ))

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            RunwayProvider(VideoProviderConfig(api_key=None))

    def test_repr_masks_key(self, provider):
        assert "rw-test-key-123456" not in repr(provider.config)

    def test_api_base_is_canonical(self, provider):
        assert provider.api_base == "https://api.dev.runwayml.com/v1"

    @pytest.mark.asyncio
    async def test_submit_payload(self, provider):
        session = mock_session(mock_response(json_data={"id": "task-1"}))
        provider._get_session = AsyncMock(return_value=session)

        task_id = await provider.submit("x" * 1500, "https://img/ref.jpg", duration=10, aspect_ratio="16:9")

        assert task_id == "task-1"
        url = session.post.call_args.args[0]
        payload = session.post.call_args.kwargs["json"]
        assert url == "https://api.dev.runwayml.com/v1/image_to_video"
        assert payload["model"] == "gen3a_turbo"
        assert payload["promptImage"] == "https://img/ref.jpg"
        assert payload["ratio"] == "1280:768"
        assert payload["duration"] == 10
        assert len(payload["promptText"]) == 1000

    @pytest.mark.asyncio
    async def test_short_scenes_use_five_seconds(self, provider):
        session = mock_session(mock_response(json_data={"id": "task-1"}))
        provider._get_session = AsyncMock(return_value=session)
        await provider.submit("prompt", "https://img/ref.jpg", duration=6)
        assert session.post.call_args.kwargs["json"]["duration"] == 5

    @pytest.mark.asyncio
    async def test_submit_requires_reference(self, provider):
        with pytest.raises(ProviderError):
            await provider.submit("prompt", None, duration=10)

    @pytest.mark.asyncio
    async def test_submit_error_status(self, provider):
        provider._get_session = AsyncMock(return_value=mock_session(mock_response(status=400, text="bad ratio")))
        with pytest.raises(ProviderError) as exc_info:
            await provider.submit("prompt", "https://img/ref.jpg", duration=10)
        assert exc_info.value.status == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [
        (429, JobStatus.PENDING),
        (503, JobStatus.PENDING),
        (404, JobStatus.FAILED),
    ])
    async def test_status_check_errors(self, provider, status, expected):
        provider._get_session = AsyncMock(return_value=mock_session(mock_response(status=status, text="err")))
        state = await provider.check_status("task-1")
        assert state.status == expected

    @pytest.mark.asyncio
    async def test_submit_non_object_body(self, provider):
        provider._get_session = AsyncMock(return_value=mock_session(json_body_response(None)))
        with pytest.raises(ProviderError, match="unusable response"):
            await provider.submit("prompt", "https://img/ref.jpg", duration=10)

    @pytest.mark.asyncio
    async def test_malformed_status_body_counts_as_pending(self, provider):
        provider._get_session = AsyncMock(return_value=mock_session(json_body_response(ValueError("bad json"))))
        state = await provider.check_status("task-1")
        assert state.status == JobStatus.PENDING

    @pytest.mark.parametrize("data,status,url", [
        ({"status": "SUCCEEDED", "output": ["https://cdn/a.mp4"]}, JobStatus.SUCCEEDED, "https://cdn/a.mp4"),
        ({"status": "succeeded", "output": {"url": "https://cdn/b.mp4"}}, JobStatus.SUCCEEDED, "https://cdn/b.mp4"),
        ({"status": "RUNNING"}, JobStatus.PENDING, None),
        ({"status": "THROTTLED"}, JobStatus.PENDING, None),
        ({"status": "FAILED", "failure": "moderation"}, JobStatus.FAILED, None),
    ])
    def test_parse_status(self, provider, data, status, url):
        state = provider.parse_status(data)
        assert state.status == status
        assert state.output_url == url

    def test_failure_reason_kept(self, provider):
        assert provider.parse_status({"status": "FAILED", "failure": "moderation"}).error == "moderation"

    @pytest.mark.asyncio
    async def test_generate_video_times_out(self, provider):
        provider.submit = AsyncMock(return_value="task-1")
        provider.check_status = AsyncMock(return_value=JobState(status=JobStatus.PENDING))

        with pytest.raises(GenerationTimeoutError):
            await provider.generate_video("prompt", "https://img/ref.jpg", duration=10)
        assert provider.check_status.await_count == 3

    def test_estimate_cost(self, provider):
        assert provider.estimate_cost(10) == pytest.approx(0.5)


# ============================================================
# ElevenLabs
# ============================================================

class TestElevenLabs:

    @pytest.mark.parametrize("body,expected", [
        ('{"detail": {"status": "quota_exceeded", "message": "out of credits"}}', True),
        ('{"detail": {"status": "invalid_api_key"}}', False),
        ('{"detail": "Not found"}', False),
        ("quota_exceeded", True),
        ("internal error", False),
    ])
    def test_is_quota_error(self, body, expected):
        assert is_quota_error(401, body) is expected

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            ElevenLabsProvider(ProviderConfig())

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self):
        provider = ElevenLabsProvider(ProviderConfig(api_key="el-key"))
        with pytest.raises(ValueError):
            await provider.generate_speech("  ", "voice")

    @pytest.mark.asyncio
    async def test_quota_response_raises_quota_error(self):
        provider = ElevenLabsProvider(ProviderConfig(api_key="el-key"))
        body = '{"detail": {"status": "quota_exceeded"}}'
        patcher, _ = patched_client_session("core.providers.audio.elevenlabs", mock_response(status=401, text=body))

        with patcher:
            with pytest.raises(QuotaError):
                await provider.generate_speech("Nobody saw a thing.", "voice")

    @pytest.mark.asyncio
    async def test_other_error_raises_provider_error(self):
        provider = ElevenLabsProvider(ProviderConfig(api_key="el-key"))
        patcher, _ = patched_client_session("core.providers.audio.elevenlabs", mock_response(status=500, text="boom"))

        with patcher:
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate_speech("Nobody saw a thing.", "voice")
        assert not isinstance(exc_info.value, QuotaError)

    @pytest.mark.asyncio
    async def test_voice_settings_are_clamped(self):
        provider = ElevenLabsProvider(ProviderConfig(api_key="el-key"))
        patcher, session = patched_client_session("core.providers.audio.elevenlabs", mock_response())

        with patcher:
            result = await provider.generate_speech("Hi.", "voice-1", stability=1.7, style=-0.2)

        settings = session.post.call_args.kwargs["json"]["voice_settings"]
        assert settings["stability"] == 1.0
        assert settings["style"] == 0.0
        assert result.audio_data == b"ID3audio"
        assert "/v1/text-to-speech/voice-1" in session.post.call_args.args[0]


# ============================================================
# fal.ai, sync.so, assembly server
# ============================================================

class TestFalImageProvider:

    @pytest.mark.asyncio
    async def test_returns_image_urls(self):
        provider = FalImageProvider(ProviderConfig(api_key="fal-key"))
        patcher, session = patched_client_session(
            "core.providers.image.fal",
            mock_response(json_data={"images": [{"url": "https://fal/1.jpg"}], "seed": 7})
        )
        with patcher:
            result = await provider.generate_image("empty street", width=1280, height=768)

        assert result.image_url == "https://fal/1.jpg"
        assert session.post.call_args.kwargs["json"]["image_size"] == {"width": 1280, "height": 768}

    @pytest.mark.asyncio
    async def test_empty_image_list_is_an_error(self):
        provider = FalImageProvider(ProviderConfig(api_key="fal-key"))
        patcher, _ = patched_client_session("core.providers.image.fal", mock_response(json_data={"images": []}))
        with patcher:
            with pytest.raises(ProviderError):
                await provider.generate_image("empty street")

    @pytest.mark.asyncio
    async def test_malformed_body_is_a_provider_error(self):
        provider = FalImageProvider(ProviderConfig(api_key="fal-key"))
        error = json.JSONDecodeError("Expecting value", "<html>", 0)
        patcher, _ = patched_client_session("core.providers.image.fal", json_body_response(error))
        with patcher:
            with pytest.raises(ProviderError, match="unusable response"):
                await provider.generate_image("empty street")


class TestSyncLabsProvider:

    @pytest.mark.asyncio
    async def test_payment_required_is_quota(self):
        provider = SyncLabsProvider(ProviderConfig(api_key="sync-key"))
        patcher, _ = patched_client_session("core.providers.lipsync.sync_so", mock_response(status=402, text="no credits"))
        with patcher:
            with pytest.raises(QuotaError):
                await provider.submit("https://v.mp4", "https://a.mp3")

    @pytest.mark.asyncio
    async def test_submit_without_object_body(self):
        provider = SyncLabsProvider(ProviderConfig(api_key="sync-key"))
        patcher, _ = patched_client_session("core.providers.lipsync.sync_so", json_body_response(["job-1"]))
        with patcher:
            with pytest.raises(ProviderError, match="unusable response"):
                await provider.submit("https://v.mp4", "https://a.mp3")

    @pytest.mark.asyncio
    async def test_status_mapping(self):
        provider = SyncLabsProvider(ProviderConfig(api_key="sync-key"))
        patcher, _ = patched_client_session(
            "core.providers.lipsync.sync_so",
            mock_response(json_data={"status": "COMPLETED", "outputUrl": "https://sync/out.mp4"})
        )
        with patcher:
            state = await provider.check_status("job-1")
        assert state.status == JobStatus.SUCCEEDED
        assert state.output_url == "https://sync/out.mp4"


class TestAssemblyServerProvider:

    @pytest.mark.asyncio
    async def test_success(self):
        provider = AssemblyServerProvider(ProviderConfig(base_url="http://render:3001/", timeout=5))
        patcher, session = patched_client_session(
            "core.providers.render.assembly_server",
            mock_response(json_data={"success": True, "video_url": "https://cdn/movie.mp4", "duration_seconds": 20})
        )
        with patcher:
            result = await provider.assemble("m1", [{"scene_number": 1, "video_url": "https://v/1.mp4"}])

        assert result.video_url == "https://cdn/movie.mp4"
        assert session.post.call_args.args[0] == "http://render:3001/assemble"
        assert session.post.call_args.kwargs["json"]["videos"][0]["scene_number"] == 1

    @pytest.mark.asyncio
    async def test_unsuccessful_body_raises(self):
        provider = AssemblyServerProvider(ProviderConfig(base_url="http://render:3001"))
        patcher, _ = patched_client_session(
            "core.providers.render.assembly_server",
            mock_response(json_data={"success": False, "error": "ffmpeg exited 1"})
        )
        with patcher:
            with pytest.raises(AssemblyError, match="ffmpeg exited 1"):
                await provider.assemble("m1", [])

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        provider = AssemblyServerProvider(ProviderConfig(base_url="http://render:3001"))
        patcher, _ = patched_client_session("core.providers.render.assembly_server", mock_response(status=500, text="down"))
        with patcher:
            with pytest.raises(AssemblyError):
                await provider.assemble("m1", [])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [json.JSONDecodeError("Expecting property name", "{not json", 1), None])
    async def test_unusable_body_raises_assembly_error(self, body):
        provider = AssemblyServerProvider(ProviderConfig(base_url="http://render:3001"))
        patcher, _ = patched_client_session("core.providers.render.assembly_server", json_body_response(body))
        with patcher:
            with pytest.raises(AssemblyError, match="unusable response"):
                await provider.assemble("m1", [])

    def test_requires_url(self):
        with pytest.raises(ValueError):
            AssemblyServerProvider(ProviderConfig())


# ============================================================
# Local storage
# ============================================================

class TestLocalStorage:

    @pytest.mark.asyncio
    async def test_put_writes_file_and_returns_file_url(self, storage):
        result = await storage.put(b"abc", "audio/m1/1_0.mp3", "audio/mpeg")
        assert result.size_bytes == 3
        assert result.file_url.startswith("file://")
        assert result.file_url.endswith("audio/m1/1_0.mp3")

    @pytest.mark.asyncio
    async def test_public_base_url(self, tmp_path):
        storage = LocalStorageProvider(StorageProviderConfig(
            base_path=str(tmp_path), public_base_url="https://static.example.com/"
        ))
        result = await storage.put(b"abc", "/frames/end.jpg", "image/jpeg")
        assert result.file_url == "https://static.example.com/frames/end.jpg"

    @pytest.mark.asyncio
    async def test_path_escape_rejected(self, storage):
        with pytest.raises(ValueError):
            await storage.put(b"abc", "../outside.txt", "text/plain")


# ============================================================
# Mock providers
# ============================================================

class TestMockProviders:

    @pytest.mark.asyncio
    async def test_mock_video_succeeds_after_pending_checks(self):
        provider = MockVideoProvider(pending_checks=2)
        result = await provider.generate_video("rainy street", "https://img/ref.jpg", duration=10)
        assert result.success
        assert result.video_url.endswith("mock_job_1.mp4")
        assert provider.submissions[0]["reference_image"] == "https://img/ref.jpg"

    @pytest.mark.asyncio
    async def test_mock_video_failure(self):
        provider = MockVideoProvider(fail_on_substrings=["explosion"])
        with pytest.raises(ProviderError):
            await provider.generate_video("a huge explosion", "https://img/ref.jpg", duration=10)

    @pytest.mark.asyncio
    async def test_mock_video_timeout(self):
        provider = MockVideoProvider(
            VideoProviderConfig(provider_type=ProviderType.MOCK, poll_interval=0, max_attempts=2),
            pending_checks=5
        )
        with pytest.raises(GenerationTimeoutError):
            await provider.generate_video("rainy street", "https://img/ref.jpg", duration=10)

    @pytest.mark.asyncio
    async def test_mock_audio_quota(self):
        provider = MockAudioProvider(quota_after=1)
        await provider.generate_speech("one", "v")
        with pytest.raises(QuotaError):
            await provider.generate_speech("two", "v")

    @pytest.mark.asyncio
    async def test_mock_lipsync(self):
        url = await MockLipSyncProvider().sync("https://v.mp4", "https://a.mp3")
        assert url.endswith("mock_sync_1.mp4")

    @pytest.mark.asyncio
    async def test_mock_render_failure(self):
        with pytest.raises(AssemblyError):
            await MockRenderProvider(fail=True).assemble("m1", [])

    @pytest.mark.asyncio
    async def test_mock_text_client_batches(self):
        client = MockTextClient()
        data = await client.query_json("Write scenes 3 to 4 of a 6-scene movie.")
        numbers = [s["scene_number"] for s in data["scenes"]]
        assert numbers == [3, 4]
        assert data["scenes"][1]["is_continuation"] is True
        assert await client.query("anything else") == "{}"


# ============================================================
# Provider set and registry
# ============================================================

class TestCreateProviders:

    def test_mock_mode(self, tmp_path):
        settings = Settings(_env_file=None, provider_mode="mock", artifact_dir=str(tmp_path))
        providers = create_providers(settings)
        assert isinstance(providers.video, MockVideoProvider)
        assert isinstance(providers.text, MockTextClient)
        assert providers.lipsync is None

    def test_mock_mode_with_lipsync(self, tmp_path):
        settings = Settings(_env_file=None, artifact_dir=str(tmp_path), enable_lipsync=True)
        providers = create_providers(settings, mock=True)
        assert isinstance(providers.lipsync, MockLipSyncProvider)

    def test_registry_lists_implemented_providers(self):
        providers = get_all_providers()
        assert {p["category"] for p in providers} == {"video", "image", "voice", "lipsync", "render", "storage"}
        assert all(p["status"] == "implemented" for p in providers)
