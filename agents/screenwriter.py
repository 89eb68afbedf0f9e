"""Screenwriter Agent - Expands the Visual Bible into a fully specified screenplay"""

import json
import logging
import math
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from strands import tool

from core.claude_client import ClaudeClient
from core.config import Settings
from core.errors import ParseError
from core.models.production import ContinuityChain
from core.models.screenplay import Scene, Screenplay
from core.models.visual_bible import VisualBible
from core.tolerant_json import parse_json_object
from .base import StudioAgent

logger = logging.getLogger(__name__)


SCREENWRITER_SYSTEM_PROMPT = """You are a professional screenwriter writing for AI video generation.
Every scene is rendered by a separate model that has never seen the other scenes, so each
scene must be specified exhaustively: camera, lighting, who is in frame and what they wear,
timed dialogue, sound design, transition and continuity links.

Respond with ONE JSON object and nothing else:
{
  "title": "",
  "logline": "",
  "scenes": [{
    "scene_number": 1,
    "is_continuation": false,
    "header": {"type": "INT|EXT", "location": "", "time": "DAY|NIGHT|SUNSET|SUNRISE", "time_specific": ""},
    "duration": {"screen_time_seconds": 10, "story_time": ""},
    "visual_direction": {"establishing_shot": "", "lighting": {}, "color_grading": "", "depth_of_field": "", "camera_movement": "", "shot_list": []},
    "characters_in_scene": [{"character_name": "", "entrance": "", "wardrobe": {}, "physical_state": "", "emotional_state": "", "blocking": []}],
    "action_description": {"summary": "", "beat_by_beat": [{"timestamp": "0:00", "action": "", "visual_focus": ""}]},
    "dialogue": [{"character": "", "line": "", "parenthetical": "", "emotion": "", "subtext": "",
                  "timing": {"start_second": 0, "duration_seconds": 3},
                  "delivery": {"pace": "slow|normal|fast", "volume": "", "tone": "", "pauses": []}}],
    "sound_design": {"ambient": "", "sound_effects": [], "music": {}},
    "continuity": {"previous_scene_connection": {}, "next_scene_setup": "", "persistent_elements": [], "changes_from_previous": []},
    "transition": {"type": "CUT|FADE|DISSOLVE|WIPE", "duration_frames": 12, "description": ""},
    "technical_notes": "",
    "ai_generation_prompts": {"video_prompt": "", "audio_prompt": "", "negative_prompt": ""}
  }]
}

Rules:
- "is_continuation" is true only when the scene starts exactly where the previous one ended
  (same place, no time jump). The first scene is never a continuation.
- Wardrobe is copied word for word from the Visual Bible. If a character changes clothes,
  name the character and the reason in "changes_from_previous".
- A continuation scene always describes "previous_scene_connection".
- Dialogue lives only in "dialogue"; never put spoken lines in "video_prompt".
- Use double quotes, no trailing commas, no comments."""


class ScreenwriterAgent(StudioAgent):
    """
    Writes the screenplay in batches and audits its continuity.

    The audit never raises: problems are logged and kept on the screenplay
    as audit_warnings.
    """

    _is_stub = False

    def __init__(
        self,
        claude_client: Optional[ClaudeClient] = None,
        settings: Optional[Settings] = None,
        batch_size: int = 6
    ):
        super().__init__(claude_client=claude_client, settings=settings)
        self.batch_size = max(1, batch_size)

    def scene_count(self, target_duration_minutes: float) -> int:
        return max(1, math.ceil(target_duration_minutes * self.settings.scenes_per_minute))

    @tool
    async def write_screenplay(
        self,
        brief: str,
        target_duration_minutes: float,
        visual_bible: VisualBible
    ) -> Screenplay:
        """
        Write the full screenplay for a movie.

        Args:
            brief: Natural-language movie brief
            target_duration_minutes: Target runtime in minutes
            visual_bible: Style and continuity contract

        Returns:
            Screenplay with scenes numbered 1..N and audit warnings
        """
        total = self.scene_count(target_duration_minutes)
        scene_seconds = self.settings.scene_duration_seconds
        logger.info(f"Writing {total} scenes of ~{scene_seconds}s for '{visual_bible.movie_identity.title}'")

        scenes: List[Scene] = []
        title = visual_bible.movie_identity.title
        logline = visual_bible.movie_identity.logline

        for start in range(1, total + 1, self.batch_size):
            end = min(total, start + self.batch_size - 1)
            prompt = self._build_prompt(brief, visual_bible, start, end, total, scenes)
            response = await self.claude.query(prompt, system_prompt=SCREENWRITER_SYSTEM_PROMPT)

            try:
                data = parse_json_object(response)
            except ParseError as e:
                logger.warning(f"Scenes {start}-{end} unusable ({e}), using outline scenes")
                data = {}

            wanted = end - start + 1
            batch = self._parse_scenes(data.get("scenes"), start)[:wanted]
            if len(batch) < wanted:
                logger.warning(f"Scenes {start}-{end}: got {len(batch)} of {wanted}, filling from the brief")
                batch.extend(
                    self._placeholder_scene(n, brief, visual_bible)
                    for n in range(start + len(batch), end + 1)
                )
            scenes.extend(batch)

            if start == 1:
                title = str(data.get("title") or title)
                logline = str(data.get("logline") or logline)

        screenplay = Screenplay(title=title, logline=logline, scenes=self.normalize_scenes(scenes))
        self.audit_continuity(screenplay)
        logger.info(
            f"Screenplay ready: {len(screenplay.scenes)} scenes, "
            f"{self._format_duration(screenplay.total_duration)}, "
            f"{len(screenplay.audit_warnings)} continuity warnings"
        )
        return screenplay

    def _build_prompt(
        self,
        brief: str,
        bible: VisualBible,
        start: int,
        end: int,
        total: int,
        written: List[Scene]
    ) -> str:
        bible_json = bible.model_dump_json(
            include={"movie_identity", "color_palette", "camera_style", "characters", "locations",
                     "continuity_rules", "forbidden_elements", "mandatory_elements"}
        )
        so_far = ""
        if written:
            last = written[-1]
            so_far = (
                f"\nSCENES WRITTEN SO FAR: {len(written)}\n"
                f"LAST SCENE ({last.scene_number}): {last.header.type}. {last.location} - {last.header.time}\n"
                f"  {self._truncate_text(last.action_description.summary, 300)}\n"
                f"  Wardrobe: {json.dumps({c.character_name: c.wardrobe for c in last.characters_in_scene}, ensure_ascii=False)}\n"
            )

        return f"""Write scenes {start} to {end} of a {total}-scene movie.

BRIEF: {brief}

VISUAL BIBLE:
{bible_json}
{so_far}
Each scene lasts about {self.settings.scene_duration_seconds} seconds of screen time.
Number the scenes {start} to {end}. Respond ONLY with the JSON object."""

    @staticmethod
    def _parse_scenes(raw: Any, first_number: int) -> List[Scene]:
        """Validate scenes one by one, dropping the ones that cannot be used"""
        if not isinstance(raw, list):
            return []
        scenes = []
        for offset, item in enumerate(raw):
            if not isinstance(item, dict):
                continue
            item.setdefault("scene_number", first_number + offset)
            try:
                scenes.append(Scene.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Dropping invalid scene {item.get('scene_number')}: {e.error_count()} errors")
        return scenes

    def _placeholder_scene(self, number: int, brief: str, bible: VisualBible) -> Scene:
        location = bible.locations[(number - 1) % len(bible.locations)].name if bible.locations else "city street"
        return Scene(
            scene_number=number,
            header={"type": "EXT", "location": location, "time": "DAY"},
            duration={"screen_time_seconds": float(self.settings.scene_duration_seconds)},
            action_description={"summary": self._truncate_text(brief, 200)},
        )

    @staticmethod
    def normalize_scenes(scenes: List[Scene]) -> List[Scene]:
        """Renumber 1..N in order, assign SC### ids, first scene never continues"""
        for index, scene in enumerate(scenes, start=1):
            scene.scene_number = index
            scene.scene_id = f"SC{index:03d}"
            if index == 1:
                scene.is_continuation = False
        return scenes

    def audit_continuity(self, screenplay: Screenplay) -> List[str]:
        """
        Check wardrobe continuity and continuation links.

        A character's wardrobe may only differ from their last appearance
        when the scene's changes_from_previous mentions that character.
        """
        warnings: List[str] = []
        last_wardrobe: Dict[str, str] = {}

        for scene in screenplay.scenes:
            changes = scene.continuity.changes_text()

            if scene.is_continuation and not scene.continuity.has_previous_connection():
                warnings.append(
                    f"Scene {scene.scene_number}: continuation without previous_scene_connection"
                )

            for character in scene.characters_in_scene:
                key = character.character_name.strip().lower()
                signature = character.wardrobe_signature()
                if not key or not signature:
                    continue

                previous = last_wardrobe.get(key)
                if previous is not None and previous != signature and key not in changes:
                    warnings.append(
                        f"Scene {scene.scene_number}: {character.character_name}'s wardrobe changed "
                        f"without a justified change"
                    )
                last_wardrobe[key] = signature

        for warning in warnings:
            logger.warning(warning)
        screenplay.audit_warnings = warnings
        return warnings

    @staticmethod
    def build_continuity(
        screenplay: Screenplay,
        library_locations: Optional[Dict[str, str]] = None
    ) -> ContinuityChain:
        """Continuity chain from the screenplay's declared continuation flags"""
        return ContinuityChain.build(
            ((s.scene_number, s.is_continuation, s.location) for s in screenplay.scenes),
            library_locations=library_locations
        )
