"""Scene Video Generator Agent - Turns one screenplay scene into a video clip"""

import logging
import re
from typing import Optional

from strands import tool

from core.claude_client import ClaudeClient
from core.config import Settings
from core.errors import ProviderError, ResolutionError
from core.frames import EndFrameExtractor
from core.models.generation import GeneratedVideo
from core.models.screenplay import Scene
from core.models.visual_bible import VisualBible
from core.providers.base import VideoProvider
from .base import StudioAgent
from .reference_resolver import ReferenceResolver

logger = logging.getLogger(__name__)

BASE_STYLE = "Cinematic scene, natural movement, 4K quality"

_QUOTED = re.compile(r'"[^"]*"|“[^”]*”|«[^»]*»|(?<!\w)\'[^\']+\'(?!\w)')
_SPEECH_VERBS = re.compile(r"\b(says|said|asks|asked|whispers|shouts|replies|exclaims)\s*:", re.IGNORECASE)
_LINE_PUNCTUATION = ".,!?;:…"


def _line_pattern(line: str):
    """Whole-word, case-insensitive match for a line, trailing punctuation optional"""
    core = (line or "").strip().strip(_LINE_PUNCTUATION + " ")
    if not core:
        return None
    words = r"\s+".join(re.escape(word) for word in core.split())
    return re.compile(rf"(?<!\w){words}(?!\w)[{re.escape(_LINE_PUNCTUATION)}]*", re.IGNORECASE)


def strip_dialogue(text: str, lines) -> str:
    """Remove quoted text, speech markers and every given dialogue line"""
    text = _QUOTED.sub("", text or "")
    text = _SPEECH_VERBS.sub("", text)
    patterns = [p for p in (_line_pattern(line) for line in lines) if p is not None]
    changed = True
    while changed:
        changed = False
        for pattern in patterns:
            text, count = pattern.subn("", text)
            changed = changed or count > 0
    return re.sub(r"\s{2,}", " ", text).strip(" ,.")


def build_visual_prompt(scene: Scene, bible: Optional[VisualBible] = None, max_chars: int = 950) -> str:
    """
    Visual-only prompt for image-to-video generation.

    Dialogue is voiced separately, so no line of the scene's dialogue may
    appear in the prompt. The result never exceeds max_chars.
    """
    lines = scene.quoted_lines()
    parts = [BASE_STYLE]

    if bible is not None and bible.movie_identity.visual_style:
        parts.append(f"Style: {bible.movie_identity.visual_style}")
    if scene.location:
        parts.append(f"Location: {scene.location}")
    time = scene.header.time_specific or scene.header.time
    if time:
        parts.append(f"Time: {time}")

    action = scene.action_description.summary
    if not action and scene.action_description.beat_by_beat:
        action = ". ".join(b.action for b in scene.action_description.beat_by_beat if b.action)
    if not action:
        action = scene.ai_generation_prompts.video_prompt
    action = strip_dialogue(action, lines)[:400]
    if action:
        parts.append(action)

    characters = []
    for character in scene.characters_in_scene:
        detail = character.physical_state or character.emotional_state
        characters.append(f"{character.character_name} {detail}".strip())
    character_text = ", ".join(c for c in characters if c)
    if character_text and len(character_text) < 200:
        parts.append(f"Characters: {character_text}")

    if scene.visual_direction.camera_movement:
        parts.append(f"Camera: {scene.visual_direction.camera_movement}")

    prompt = strip_dialogue(". ".join(parts), lines)
    if len(prompt) > max_chars:
        prompt = prompt[:max_chars - 3] + "..."
    return prompt


class SceneVideoGeneratorAgent(StudioAgent):
    """
    Generates the clip for one scene: reference frame, prompt, submit/poll,
    then the end frame the next scene continues from.

    A failed scene is reported as a failed GeneratedVideo; it never raises,
    so one bad scene cannot stop the movie.
    """

    _is_stub = False

    def __init__(
        self,
        provider: VideoProvider,
        resolver: ReferenceResolver,
        frame_extractor: Optional[EndFrameExtractor] = None,
        bible: Optional[VisualBible] = None,
        claude_client: Optional[ClaudeClient] = None,
        settings: Optional[Settings] = None
    ):
        super().__init__(claude_client=claude_client, settings=settings)
        self.provider = provider
        self.resolver = resolver
        self.frame_extractor = frame_extractor
        self.bible = bible

    @tool
    async def generate_scene_video(
        self,
        scene: Scene,
        is_continuation: bool,
        previous_end_frame: Optional[str] = None,
        movie_id: str = "adhoc"
    ) -> GeneratedVideo:
        """
        Generate the video for one scene.

        Args:
            scene: Screenplay scene
            is_continuation: Whether the scene continues the previous one
            previous_end_frame: End frame of the previous scene, if any
            movie_id: Movie the scene belongs to

        Returns:
            GeneratedVideo with status "completed" or "failed"
        """
        duration = scene.screen_time or float(self.settings.scene_duration_seconds)

        try:
            reference = await self.resolver.resolve(
                scene, is_continuation, previous_end_frame, movie_id=movie_id
            )
        except ResolutionError as e:
            logger.error(f"Scene {scene.scene_number}: {e}")
            return GeneratedVideo(
                scene_number=scene.scene_number,
                status="failed",
                is_continuation=is_continuation,
                duration=duration,
                error=str(e),
            )

        prompt = build_visual_prompt(scene, self.bible, max_chars=self.settings.visual_prompt_max_chars)
        logger.info(f"Scene {scene.scene_number}: video prompt ({len(prompt)} chars) from {reference.source.value} frame")
        logger.debug(f"Scene {scene.scene_number}: {prompt}")

        try:
            result = await self.provider.generate_video(
                prompt,
                reference.url,
                duration=duration,
                aspect_ratio=self.settings.aspect_ratio,
            )
        except ProviderError as e:
            logger.error(f"Scene {scene.scene_number}: video generation failed: {e}")
            return GeneratedVideo(
                scene_number=scene.scene_number,
                status="failed",
                reference_frame_url=reference.url,
                reference_source=reference.source,
                is_continuation=is_continuation,
                duration=duration,
                prompt=prompt,
                error=str(e),
            )

        end_frame_url = None
        if self.frame_extractor is not None:
            end_frame_url = await self.frame_extractor.extract(result.video_url, scene, movie_id)

        logger.info(f"Scene {scene.scene_number}: completed ({self._format_duration(duration)})")
        return GeneratedVideo(
            scene_number=scene.scene_number,
            status="completed",
            video_url=result.video_url,
            end_frame_url=end_frame_url,
            reference_frame_url=reference.url,
            reference_source=reference.source,
            is_continuation=is_continuation,
            duration=result.duration or duration,
            prompt=prompt,
            task_id=result.provider_metadata.get("task_id"),
            metadata={"provider": self.provider.name, "cost": result.cost},
        )
