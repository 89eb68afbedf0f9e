"""Unit tests for MovieOrchestrator, run end to end on mock providers"""

import inspect

import pytest
from unittest.mock import AsyncMock, MagicMock

from strands import Agent

from core.config import Settings
from core.errors import ProviderError
from core.models.generation import ReferenceSource
from core.providers import MockAudioProvider, MockRenderProvider, MockVideoProvider, create_providers
from workflows.orchestrator import MovieOrchestrator

BRIEF = "A detective investigates a murder in a rainy city"


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, artifact_dir=str(tmp_path), provider_mode="mock")


@pytest.fixture
def providers(settings):
    return create_providers(settings)


async def produce(orchestrator, minutes=2.0):
    return await orchestrator.produce("Wet Streets", BRIEF, "noir", minutes, movie_id="movie_test")


class TestConstruction:

    def test_agents_leave_strands_properties_alone(self, settings, providers):
        orchestrator = MovieOrchestrator(providers, settings=settings)
        properties = {name for name, value in inspect.getmembers(Agent) if isinstance(value, property)}

        for agent in (
            orchestrator.planner,
            orchestrator.screenwriter,
            orchestrator.video_generator,
            orchestrator.audio_generator,
            orchestrator.assembler,
        ):
            assert not properties & set(vars(agent)), type(agent).__name__
        assert orchestrator.audio_generator.artifact_store is providers.storage


class TestHappyPath:

    @pytest.mark.asyncio
    async def test_two_minute_movie(self, settings, providers):
        orchestrator = MovieOrchestrator(providers, settings=settings)

        result = await produce(orchestrator)

        assert result.status == "completed"
        assert result.error is None
        assert len(result.screenplay.scenes) == 12
        assert len(result.completed_scenes) == 12
        assert result.failed_scenes == []
        assert result.assembly_status == "completed"
        assert result.final_video_url == "https://mock-cdn.example.com/movies/movie_test.mp4"

    @pytest.mark.asyncio
    async def test_reference_frames_follow_continuity(self, settings, providers):
        result = await produce(MovieOrchestrator(providers, settings=settings))
        videos = result.videos

        sources = {v.scene_number: v.reference_source for v in videos}
        assert [sources[n] for n in (1, 3, 5)] == [ReferenceSource.GENERATED] * 3
        assert [sources[n] for n in (7, 9, 11)] == [ReferenceSource.LIBRARY] * 3
        for n in (2, 4, 6, 8, 10, 12):
            assert sources[n] == ReferenceSource.PREVIOUS_FRAME
            assert videos[n - 1].reference_frame_url == videos[n - 2].end_frame_url

        # scene 7 reuses scene 1's location image
        assert videos[6].reference_frame_url == videos[0].reference_frame_url

    @pytest.mark.asyncio
    async def test_ledger_record(self, settings, providers):
        orchestrator = MovieOrchestrator(providers, settings=settings)
        result = await produce(orchestrator)

        record = orchestrator.ledger.get("movie_test")
        assert record["status"] == "completed"
        assert record["progress"] == 100
        assert record["final_video_url"] == result.final_video_url
        assert record["metadata"]["completed_scenes"] == 12
        assert record["metadata"]["cover_url"] == result.videos[0].reference_frame_url
        assert all(step["status"] == "completed" for step in record["steps"].values())
        assert record["scenes"]["2"]["reference_source"] == "previous_frame"
        assert len(record["metadata"]["continuity_plan"]) == 12

    @pytest.mark.asyncio
    async def test_dialogue_is_voiced(self, settings, providers):
        result = await produce(MovieOrchestrator(providers, settings=settings))

        assert len(result.audio) == 12
        assert all(not a.skipped for a in result.audio)
        assert len(providers.render.requests[0]["audio"]) == 12

    @pytest.mark.asyncio
    async def test_cover_uses_first_reference_frame(self, settings, providers):
        result = await produce(MovieOrchestrator(providers, settings=settings))
        assert result.cover_url == result.videos[0].reference_frame_url

    @pytest.mark.asyncio
    async def test_location_cache_shared_between_movies(self, settings, providers):
        orchestrator = MovieOrchestrator(providers, settings=settings)
        await orchestrator.produce("First", BRIEF, "noir", 0.5, movie_id="first")
        second = await orchestrator.produce("Second", BRIEF, "noir", 0.5, movie_id="second")

        assert second.videos[0].reference_source == ReferenceSource.LIBRARY


class TestPartialSuccess:

    @pytest.mark.asyncio
    async def test_failed_scenes_do_not_stop_the_movie(self, settings, providers):
        providers.video = MockVideoProvider(fail_on_substrings=["Jazz club back room"])
        orchestrator = MovieOrchestrator(providers, settings=settings)

        result = await produce(orchestrator)

        assert result.status == "completed"
        assert result.failed_scenes == [5, 6, 11, 12]
        assert len(result.completed_scenes) == 8
        assert [s["scene_number"] for s in providers.render.requests[0]["scenes"]] == [1, 2, 3, 4, 7, 8, 9, 10]

        record = orchestrator.ledger.get("movie_test")
        assert record["scenes"]["5"]["status"] == "failed"
        assert record["metadata"]["failed_scenes"] == [5, 6, 11, 12]

    @pytest.mark.asyncio
    async def test_failed_scenes_are_not_voiced(self, settings, providers):
        providers.video = MockVideoProvider(fail_on_substrings=["Jazz club back room"])

        result = await produce(MovieOrchestrator(providers, settings=settings))

        assert len(providers.audio.calls) == 8
        assert sorted({a.scene_number for a in result.audio}) == [1, 2, 3, 4, 7, 8, 9, 10]
        assert len(providers.render.requests[0]["audio"]) == 8

    @pytest.mark.asyncio
    async def test_min_success_ratio(self, tmp_path, providers):
        settings = Settings(_env_file=None, artifact_dir=str(tmp_path), provider_mode="mock", min_success_ratio=0.9)
        providers.video = MockVideoProvider(fail_on_substrings=["Jazz club back room"])

        result = await produce(MovieOrchestrator(providers, settings=settings))

        assert result.status == "failed"
        assert result.final_video_url is not None

    @pytest.mark.asyncio
    async def test_no_completed_scene_fails_movie(self, settings, providers):
        providers.video = MockVideoProvider(fail_on_substrings=["Cinematic scene"])
        orchestrator = MovieOrchestrator(providers, settings=settings)

        result = await produce(orchestrator)

        assert result.status == "failed"
        assert result.completed_scenes == []
        assert result.audio == []
        assert result.final_video_url is None
        assert providers.render.requests == []

        steps = orchestrator.ledger.get("movie_test")["steps"]
        assert steps["generate_videos"]["status"] == "failed"
        assert steps["generate_audio"]["status"] == "skipped"
        assert steps["assemble_movie"]["status"] == "skipped"

    @pytest.mark.asyncio
    async def test_render_failure_degrades_to_first_scene(self, settings, providers):
        providers.render = MockRenderProvider(fail=True)
        orchestrator = MovieOrchestrator(providers, settings=settings)

        result = await produce(orchestrator)

        assert result.status == "completed"
        assert result.assembly_status == "failed_real_assembly"
        assert result.final_video_url == result.videos[0].video_url
        record = orchestrator.ledger.get("movie_test")
        assert record["steps"]["assemble_movie"]["status"] == "failed"
        assert record["metadata"]["assembly_status"] == "failed_real_assembly"

    @pytest.mark.asyncio
    async def test_voice_quota_does_not_fail_movie(self, settings, providers):
        providers.audio = MockAudioProvider(quota_after=0)

        result = await produce(MovieOrchestrator(providers, settings=settings))

        assert result.status == "completed"
        assert all(a.skip_reason == "quota_exceeded" for a in result.audio)
        assert providers.render.requests[0]["audio"] == []


class TestCreativeFailures:

    @pytest.mark.asyncio
    async def test_unusable_creative_responses_use_defaults(self, settings, providers):
        text = MagicMock()
        text.query = AsyncMock(return_value="Sorry, I cannot help with that.")
        orchestrator = MovieOrchestrator(providers, settings=settings, claude_client=text)

        result = await produce(orchestrator, minutes=1.0)

        assert result.visual_bible.is_fallback
        assert len(result.screenplay.scenes) == 6
        assert result.status == "completed"

    @pytest.mark.asyncio
    async def test_text_service_error_fails_movie(self, settings, providers):
        text = MagicMock()
        text.query = AsyncMock(side_effect=ProviderError("service unavailable", provider="anthropic", status=503))
        orchestrator = MovieOrchestrator(providers, settings=settings, claude_client=text)

        result = await produce(orchestrator)

        assert result.status == "failed"
        assert "service unavailable" in result.error
        assert orchestrator.ledger.get("movie_test")["status"] == "failed"
