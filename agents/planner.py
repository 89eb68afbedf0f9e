"""Planner Agent - Builds the Visual Bible and the production plan for a movie"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from strands import tool

from core.asset_library import AssetLibrary
from core.claude_client import ClaudeClient
from core.config import Settings
from core.errors import ParseError
from core.models.production import ContinuityChain, LibraryMatch, ProductionPlan
from core.models.visual_bible import VisualBible
from core.tolerant_json import parse_json_object
from .base import StudioAgent

logger = logging.getLogger(__name__)


VISUAL_BIBLE_SYSTEM_PROMPT = """You are the creative director of a film production. You write the VISUAL BIBLE:
the style and continuity contract that every shot of the movie must follow. Each scene
will be generated by a separate AI model with no memory of the others, so this document
is the only thing keeping the film consistent.

Respond with ONE JSON object and nothing else, using exactly this structure:

{
  "movie_identity": {"title": "", "logline": "", "genre": "", "tone": "", "era": "", "visual_style": ""},
  "color_palette": {
    "primary":    {"name": "", "hex": "#XXXXXX", "usage": ""},
    "secondary":  {"name": "", "hex": "#XXXXXX", "usage": ""},
    "accent":     {"name": "", "hex": "#XXXXXX", "usage": ""},
    "shadows":    {"name": "", "hex": "#XXXXXX", "usage": ""},
    "highlights": {"name": "", "hex": "#XXXXXX", "usage": ""}
  },
  "lighting_rules": {
    "day_exterior":   {"type": "", "direction": "", "intensity": "", "shadows": "", "color_temperature": ""},
    "day_interior":   {}, "night_exterior": {}, "night_interior": {}, "golden_hour": {}, "blue_hour": {}
  },
  "camera_style": {"default_lens": "", "aspect_ratio": "", "movement_style": "", "depth_of_field": "", "typical_shots": []},
  "cinematic_references": [{"movie": "", "director": "", "what_to_take": ""}],
  "characters": [{
    "name": "", "role": "", "age": 0, "gender": "",
    "physical_appearance": {"height": "", "build": "", "skin_tone": "", "hair": {}, "eyes": {}, "face": {}},
    "wardrobe": {"default_outfit": {"top": "", "bottom": "", "footwear": "", "accessories": []}, "color_scheme": "", "style": ""},
    "voice_profile": {"tone": "", "pace": "", "accent": "", "emotional_range": "", "speech_patterns": []},
    "mannerisms": [],
    "character_prompt": "complete prompt to render this character"
  }],
  "locations": [{
    "name": "", "type": "interior|exterior", "description": "", "key_elements": [],
    "color_dominant": "", "lighting_default": "", "atmosphere": "",
    "location_prompt": "complete prompt to render this place"
  }],
  "continuity_rules": {"absolute_rules": [], "visual_consistency": [], "audio_consistency": []},
  "sound_design": {"music_style": "", "ambient_sounds": {}, "emotional_cues": {}},
  "forbidden_elements": [],
  "mandatory_elements": []
}

Rules:
- Describe characters so precisely that two artists would draw the same person.
- Characters never change clothes without an explicit, justified change.
- Use double quotes, no trailing commas, no comments."""


PRODUCTION_PLAN_PROMPT = """Extract the production resources for this movie brief.

BRIEF: {brief}
{bible_hint}
Respond with ONE JSON object:
{{
  "locations": [{{"name": "", "type": "interior|exterior", "description": ""}}],
  "characters": [{{"name": "", "role": "", "gender": "", "description": ""}}],
  "scenes": [{{"scene_number": 1, "location": "", "summary": "", "continues_previous": false}}]
}}

"continues_previous" is true only when the scene picks up the exact moment and place
where the previous scene ended (same location, no time jump)."""


class PlannerAgent(StudioAgent):
    """
    Creates the per-movie style contract and resource plan.

    A malformed creative response never aborts the movie: the Visual Bible
    falls back to conservative defaults and the plan falls back to the
    Bible's own characters and locations.
    """

    _is_stub = False

    def __init__(
        self,
        claude_client: Optional[ClaudeClient] = None,
        library: Optional[AssetLibrary] = None,
        settings: Optional[Settings] = None
    ):
        super().__init__(claude_client=claude_client, settings=settings)
        self.library = library or AssetLibrary()

    @tool
    async def create_visual_bible(
        self,
        title: str,
        brief: str,
        genre: str,
        duration_minutes: float
    ) -> VisualBible:
        """
        Create the Visual Bible for a movie.

        Args:
            title: Movie title
            brief: Natural-language movie brief
            genre: Genre (noir, comedy, ...)
            duration_minutes: Target runtime in minutes

        Returns:
            VisualBible (is_fallback=True when the response was unusable)
        """
        prompt = f"""Create the Visual Bible for this movie:

TITLE: {title}
GENRE: {genre}
DURATION: {duration_minutes} minutes
BRIEF: {brief}

Analyse the brief, extract every character and location (explicit or implied) and
define one coherent cinematic style. Respond ONLY with the JSON object."""

        response = await self.claude.query(
            prompt,
            system_prompt=VISUAL_BIBLE_SYSTEM_PROMPT,
            temperature=0.3
        )
        return self.parse_visual_bible(response, title=title, genre=genre)

    def parse_visual_bible(self, response: str, title: str = "Untitled", genre: str = "drama") -> VisualBible:
        """
        Turn a creative response into a VisualBible.

        Falls back to VisualBible.default() when the JSON cannot be repaired,
        lacks movie_identity, or fails validation.
        """
        try:
            data = parse_json_object(response)
        except ParseError as e:
            logger.warning(f"Visual Bible response unusable, using defaults: {e}")
            return self._fallback_bible(response, title, genre)

        if not isinstance(data.get("movie_identity"), dict):
            logger.warning("Visual Bible response has no movie_identity, using defaults")
            return self._fallback_bible(response, title, genre)

        try:
            bible = VisualBible.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Visual Bible failed validation, using defaults: {e.error_count()} errors")
            return self._fallback_bible(response, title, genre)

        logger.info(
            f"Visual Bible: {len(bible.characters)} characters, {len(bible.locations)} locations, "
            f"{len(bible.continuity_rules.absolute_rules)} absolute rules"
        )
        return bible

    def _fallback_bible(self, response: str, title: str, genre: str) -> VisualBible:
        """Default Bible, salvaging title/genre/tone from the raw text when present"""
        def grab(key: str) -> Optional[str]:
            match = re.search(rf'"{key}"\s*:\s*"([^"]+)"', response or "", re.IGNORECASE)
            return match.group(1) if match else None

        return VisualBible.default(
            title=grab("title") or title,
            genre=grab("genre") or genre,
            tone=grab("tone") or "neutral",
        )

    @tool
    async def plan_production(self, brief: str, bible: Optional[VisualBible] = None) -> ProductionPlan:
        """
        Work out which locations and characters can be reused from the library.

        Args:
            brief: Natural-language movie brief
            bible: Visual Bible, used as a hint and as the fallback source

        Returns:
            ProductionPlan with library matches and the continuity chain
        """
        bible_hint = ""
        if bible is not None and not bible.is_fallback:
            names = {
                "characters": [c.name for c in bible.characters],
                "locations": [l.name for l in bible.locations],
            }
            bible_hint = f"KNOWN FROM THE VISUAL BIBLE: {json.dumps(names, ensure_ascii=False)}\n"

        response = await self.claude.query(
            PRODUCTION_PLAN_PROMPT.format(brief=brief, bible_hint=bible_hint),
            temperature=0.3
        )

        try:
            data = parse_json_object(response)
        except ParseError as e:
            logger.warning(f"Production plan response unusable, planning from the Bible: {e}")
            data = self._outline_from_bible(bible)

        locations = [
            await self._resolve("location", item)
            for item in self._named_items(data.get("locations"))
        ]
        characters = [
            await self._resolve("character", item)
            for item in self._named_items(data.get("characters"))
        ]
        scene_outline = [s for s in (data.get("scenes") or []) if isinstance(s, dict)]

        library_locations = {
            m.name.strip().lower(): m.library_id
            for m in locations if m.found_in_library and m.library_id
        }
        continuity = ContinuityChain.build(
            (
                (self._scene_number(s, i), bool(s.get("continues_previous")), s.get("location"))
                for i, s in enumerate(scene_outline)
            ),
            library_locations=library_locations
        )

        plan = ProductionPlan(
            locations=locations,
            characters=characters,
            scene_outline=scene_outline,
            continuity=continuity,
        )
        logger.info(f"Production plan: {plan.summary()}")
        return plan

    @staticmethod
    def _named_items(items: Any) -> List[Dict[str, Any]]:
        if not isinstance(items, list):
            return []
        result = []
        for item in items:
            if isinstance(item, str):
                item = {"name": item}
            if isinstance(item, dict) and str(item.get("name", "")).strip():
                result.append(item)
        return result

    @staticmethod
    def _scene_number(scene: Dict[str, Any], index: int) -> int:
        try:
            return int(scene.get("scene_number", index + 1))
        except (TypeError, ValueError):
            return index + 1

    @staticmethod
    def _outline_from_bible(bible: Optional[VisualBible]) -> Dict[str, Any]:
        if bible is None:
            return {}
        return {
            "locations": [{"name": l.name, "description": l.description} for l in bible.locations],
            "characters": [{"name": c.name, "description": c.character_prompt} for c in bible.characters],
            "scenes": [],
        }

    async def _resolve(self, kind: str, item: Dict[str, Any]) -> LibraryMatch:
        """Look one candidate up in the library (exact name, then substring)"""
        name = str(item["name"]).strip()
        match = LibraryMatch(name=name, kind=kind, description=str(item.get("description", "")))

        asset = await self.library.find(kind, name)
        if asset is not None:
            updated = await self.library.record_use(asset.id) or asset
            match.found_in_library = True
            match.library_id = asset.id
            match.times_used = updated.times_used
            match.needs_generation = False
            match.has_lora = asset.has_lora
            logger.debug(f"{kind} '{name}' found in library as '{asset.name}'")
        else:
            match.needs_generation = True
            match.needs_web_search = kind == "location"

        return match
