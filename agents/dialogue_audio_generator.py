"""Dialogue Audio Generator Agent - Voices every dialogue line and optionally lip-syncs it"""

import logging
from typing import Dict, List, Optional, Tuple

from strands import tool

from core.claude_client import ClaudeClient
from core.config import Settings
from core.errors import ProviderError, QuotaError
from core.models.generation import GeneratedAudio, GeneratedVideo
from core.models.screenplay import DialogueLine, Screenplay
from core.models.visual_bible import VisualBible
from core.providers.base import AudioProvider, LipSyncProvider, StorageProvider
from .base import StudioAgent

logger = logging.getLogger(__name__)

# ElevenLabs premade voices
MALE_VOICES = [
    "pNInz6obpgDQGcFmaJgB",  # Adam
    "VR6AewLTigWG4xSOukaG",  # Arnold
    "ErXwobaYiN019PkySvjV",  # Antoni
]
FEMALE_VOICES = [
    "EXAVITQu4vr4xnSDxMaL",  # Rachel
    "MF3mGyEYCl7XYWbV9V6O",  # Domi
    "21m00Tcm4TlvDq8ikWAM",  # Bella
]
DEFAULT_VOICE = "EXAVITQu4vr4xnSDxMaL"

MALE_GENDERS = {"male", "masculino", "m"}


def assign_voices(bible: VisualBible) -> Dict[str, str]:
    """
    Stable voice per character, keyed by lowercase name.

    An explicit voice_id in the character's voice profile wins; otherwise
    voices are dealt round-robin from the male or female pool.
    """
    voices: Dict[str, str] = {}
    male_index = 0
    female_index = 0

    for character in bible.characters:
        key = character.name.strip().lower()
        if not key or key in voices:
            continue

        profile = character.voice_profile if isinstance(character.voice_profile, dict) else {}
        explicit = profile.get("voice_id")
        if explicit:
            voices[key] = str(explicit)
        elif character.gender.strip().lower() in MALE_GENDERS:
            voices[key] = MALE_VOICES[male_index % len(MALE_VOICES)]
            male_index += 1
        else:
            voices[key] = FEMALE_VOICES[female_index % len(FEMALE_VOICES)]
            female_index += 1

    return voices


def delivery_settings(line: DialogueLine) -> Tuple[float, float, float]:
    """(stability, similarity_boost, style) for one line"""
    pace = (line.delivery.pace or "").lower()
    if pace == "slow":
        stability = 0.7
    elif pace == "fast":
        stability = 0.3
    else:
        stability = 0.5

    tone = f"{line.delivery.tone} {line.emotion}".lower()
    style = 0.7 if "emotion" in tone else 0.5
    return stability, 0.75, style


def lipsynced_videos(audio: List[GeneratedAudio]) -> Dict[int, str]:
    """Last lip-synced clip per scene, to replace the plain scene video"""
    result: Dict[int, str] = {}
    for track in sorted(audio, key=lambda a: (a.scene_number, a.line_index)):
        if track.lipsync_video_url:
            result[track.scene_number] = track.lipsync_video_url
    return result


class DialogueAudioGeneratorAgent(StudioAgent):
    """
    Synthesises speech for every dialogue line of the screenplay.

    Quota exhaustion is a soft failure: the line is skipped and the movie
    goes on with some silent dialogue.
    """

    _is_stub = False

    def __init__(
        self,
        audio_provider: AudioProvider,
        storage: StorageProvider,
        lipsync_provider: Optional[LipSyncProvider] = None,
        claude_client: Optional[ClaudeClient] = None,
        settings: Optional[Settings] = None
    ):
        super().__init__(claude_client=claude_client, settings=settings)
        self.audio_provider = audio_provider
        self.artifact_store = storage
        self.lipsync_provider = lipsync_provider

    @tool
    async def generate_dialogue_audio(
        self,
        screenplay: Screenplay,
        visual_bible: VisualBible,
        videos: Optional[List[GeneratedVideo]] = None,
        movie_id: str = "adhoc"
    ) -> List[GeneratedAudio]:
        """
        Voice all dialogue lines, scene by scene.

        Args:
            screenplay: Screenplay whose dialogue is voiced
            visual_bible: Source of character genders and explicit voices
            videos: Generated scene videos, used for lip-sync
            movie_id: Movie the audio belongs to

        Returns:
            One GeneratedAudio per non-empty line (skipped lines included)
        """
        voices = assign_voices(visual_bible)
        logger.info(f"Voice assignment: {len(voices)} characters")

        scene_videos = {v.scene_number: v.video_url for v in (videos or []) if v.succeeded}
        lipsync_enabled = self.lipsync_provider is not None
        results: List[GeneratedAudio] = []

        for scene in screenplay.scenes:
            current_video = scene_videos.get(scene.scene_number)

            for index, line in enumerate(scene.dialogue):
                text = line.line.strip()
                if not text:
                    continue

                voice_id = voices.get(line.character.strip().lower(), DEFAULT_VOICE)
                stability, similarity, style = delivery_settings(line)
                track = GeneratedAudio(
                    scene_number=scene.scene_number,
                    line_index=index,
                    character=line.character,
                    text=text,
                    voice_id=voice_id,
                    start_second=line.timing.start_second,
                    duration_seconds=line.timing.duration_seconds,
                    stability=stability,
                    similarity_boost=similarity,
                    style=style,
                )
                results.append(track)

                try:
                    speech = await self.audio_provider.generate_speech(
                        text,
                        voice_id,
                        stability=stability,
                        similarity_boost=similarity,
                        style=style,
                    )
                except QuotaError as e:
                    logger.warning(f"Scene {scene.scene_number} line {index}: voice quota exceeded, skipping ({e})")
                    track.skipped = True
                    track.skip_reason = "quota_exceeded"
                    continue
                except ProviderError as e:
                    logger.error(f"Scene {scene.scene_number} line {index}: speech failed: {e}")
                    track.skipped = True
                    track.skip_reason = f"error: {e}"
                    continue

                track.audio_url = speech.audio_url
                if speech.audio_data:
                    stored = await self.artifact_store.put(
                        speech.audio_data,
                        f"audio/{movie_id}/{scene.scene_number}_{index}.mp3",
                        "audio/mpeg"
                    )
                    track.audio_url = stored.file_url
                if speech.duration:
                    track.duration_seconds = speech.duration

                if lipsync_enabled and current_video and track.audio_url:
                    try:
                        current_video = await self.lipsync_provider.sync(current_video, track.audio_url)
                        track.lipsync_video_url = current_video
                    except QuotaError as e:
                        logger.warning(f"Lip-sync quota exceeded, disabling lip-sync for this movie ({e})")
                        lipsync_enabled = False
                    except ProviderError as e:
                        logger.warning(f"Scene {scene.scene_number} line {index}: lip-sync failed, keeping plain video ({e})")

        voiced = sum(1 for t in results if not t.skipped)
        logger.info(f"Dialogue audio: {voiced}/{len(results)} lines voiced")
        return results
