"""Unit tests for PlannerAgent"""

import json

import pytest

from agents.planner import PlannerAgent
from core.config import Settings
from core.models.production import ReferenceFramePolicy
from tests.mocks import MockClaudeClient
from tests.mocks.fixtures import bible_json, make_bible


PLAN_RESPONSE = json.dumps({
    "locations": ["Jazz club", {"name": "Pier", "type": "exterior"}, {"name": "  "}],
    "characters": [{"name": "Sam Rivera", "role": "detective"}, {"name": "Vera Lane"}],
    "scenes": [
        {"scene_number": 1, "location": "Jazz club"},
        {"scene_number": 2, "location": "Jazz club", "continues_previous": True},
        {"scene_number": 3, "location": "Pier"},
    ],
})


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, artifact_dir=str(tmp_path))


@pytest.fixture
def planner(mock_claude_client, asset_library, settings):
    return PlannerAgent(claude_client=mock_claude_client, library=asset_library, settings=settings)


class TestPlannerAgent:

    def test_is_stub_attribute(self):
        assert PlannerAgent._is_stub is False

    def test_initialization(self, planner, mock_claude_client):
        assert planner.claude is mock_claude_client


class TestCreateVisualBible:

    @pytest.mark.asyncio
    async def test_valid_response(self, planner, mock_claude_client):
        mock_claude_client.add_response(f"```json\n{bible_json()}\n```")

        bible = await planner.create_visual_bible("Wet Streets", "A detective in the rain", "noir", 2)

        assert not bible.is_fallback
        assert bible.movie_identity.genre == "noir"
        assert [c.name for c in bible.characters] == ["Sam Rivera", "Vera Lane", "Joe Costa"]
        call = mock_claude_client.calls[0]
        assert "TITLE: Wet Streets" in call["prompt"]
        assert call["temperature"] == 0.3
        assert "VISUAL BIBLE" in call["system_prompt"]

    @pytest.mark.asyncio
    async def test_truncated_response_is_repaired(self, planner, mock_claude_client):
        truncated = bible_json()[:-40]
        mock_claude_client.add_response(truncated)

        bible = await planner.create_visual_bible("Wet Streets", "brief", "noir", 2)

        assert not bible.is_fallback
        assert bible.movie_identity.title == "Wet Streets"

    @pytest.mark.asyncio
    async def test_unusable_response_falls_back(self, planner, mock_claude_client):
        mock_claude_client.add_response("I'm sorry, I can't help with that.")

        bible = await planner.create_visual_bible("Wet Streets", "brief", "noir", 2)

        assert bible.is_fallback
        assert bible.movie_identity.title == "Wet Streets"
        assert bible.movie_identity.genre == "noir"
        assert bible.characters == []

    def test_missing_identity_salvages_fields(self, planner):
        bible = planner.parse_visual_bible('{"title": "Rescued", "tone": "bleak"}', title="Given", genre="drama")
        assert bible.is_fallback
        assert bible.movie_identity.title == "Rescued"
        assert bible.movie_identity.tone == "bleak"
        assert bible.movie_identity.genre == "drama"

    def test_invalid_character_falls_back(self, planner):
        response = json.dumps({"movie_identity": {"title": "X"}, "characters": [{"role": "no name"}]})
        assert planner.parse_visual_bible(response).is_fallback


class TestPlanProduction:

    @pytest.mark.asyncio
    async def test_library_matches(self, planner, mock_claude_client, asset_library):
        club = await asset_library.add("location", "Jazz Club", times_used=2)
        sam = await asset_library.add("character", "Sam Rivera", has_lora=True)
        mock_claude_client.add_response(PLAN_RESPONSE)

        plan = await planner.plan_production("A detective in the rain", make_bible())

        assert [m.name for m in plan.locations] == ["Jazz club", "Pier"]
        jazz, pier = plan.locations
        assert jazz.found_in_library and jazz.library_id == club.id
        assert jazz.times_used == 3
        assert not jazz.needs_generation
        assert pier.needs_generation and pier.needs_web_search

        sam_match, vera = plan.characters
        assert sam_match.library_id == sam.id
        assert sam_match.has_lora
        assert vera.needs_generation and not vera.needs_web_search

        assert plan.summary()["locations_from_library"] == 1
        assert plan.summary()["characters_with_lora"] == 1

    @pytest.mark.asyncio
    async def test_continuity_chain(self, planner, mock_claude_client, asset_library):
        club = await asset_library.add("location", "Jazz club")
        mock_claude_client.add_response(PLAN_RESPONSE)

        plan = await planner.plan_production("brief")

        first, second, third = plan.continuity.entries
        assert first.reference_frame_source == ReferenceFramePolicy.LOCATION_LIBRARY
        assert first.location_id == club.id
        assert second.reference_frame_source == ReferenceFramePolicy.PREVIOUS_SCENE
        assert second.continues_from == 1
        assert third.reference_frame_source == ReferenceFramePolicy.GENERATE

    @pytest.mark.asyncio
    async def test_bible_names_are_passed_as_hint(self, planner, mock_claude_client):
        mock_claude_client.add_response(PLAN_RESPONSE)
        await planner.plan_production("brief", make_bible())
        mock_claude_client.assert_called_with_prompt_containing("KNOWN FROM THE VISUAL BIBLE")

    @pytest.mark.asyncio
    async def test_unusable_response_plans_from_bible(self, planner, mock_claude_client):
        mock_claude_client.add_response("no plan today")

        plan = await planner.plan_production("brief", make_bible())

        assert [m.name for m in plan.locations] == ["Rain-soaked downtown street"]
        assert len(plan.characters) == 3
        assert plan.scene_outline == []
        assert len(plan.continuity) == 0
