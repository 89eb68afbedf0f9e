"""Assembler Agent - Joins the completed scenes into the final movie"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from strands import tool

from core.claude_client import ClaudeClient
from core.config import Settings
from core.errors import AssemblyError, ProviderError
from core.ledger import MovieLedger
from core.models.generation import AssemblyResult, GeneratedAudio, GeneratedVideo, TransitionPlan
from core.models.screenplay import Screenplay
from core.providers.base import RenderProvider
from .base import StudioAgent

logger = logging.getLogger(__name__)

TRANSITION_DURATIONS_MS = {
    "CUT": 0,
    "CORTE": 0,
    "FADE": 1000,
    "FUNDIDO": 1000,
    "DISSOLVE": 500,
    "ENCADENADO": 500,
    "CROSSFADE": 500,
    "WIPE": 750,
    "BARRIDO": 750,
}
DEFAULT_TRANSITION = "DISSOLVE"


def transition_duration_ms(transition_type: str) -> int:
    """Blend length for a declared transition; unknown types dissolve"""
    key = (transition_type or "").strip().upper().replace(" ", "_")
    for name, duration in TRANSITION_DURATIONS_MS.items():
        if key == name or key.startswith(name):
            return duration
    return TRANSITION_DURATIONS_MS[DEFAULT_TRANSITION]


def plan_transitions(scenes: Sequence[Tuple[int, float, str]]) -> List[TransitionPlan]:
    """
    Transition plan for ordered (scene_number, duration_seconds, transition_type).

    The outgoing scene's transition type is used. Offsets are positions on
    the output timeline, accumulated from each scene's actual duration minus
    the overlap already consumed by earlier blends.
    """
    plans: List[TransitionPlan] = []
    elapsed = 0.0
    overlap = 0.0

    for (scene_number, duration, transition_type), (next_number, _, _) in zip(scenes, scenes[1:]):
        duration_ms = transition_duration_ms(transition_type)
        elapsed += duration
        overlap += duration_ms / 1000
        plans.append(TransitionPlan(
            from_scene=scene_number,
            to_scene=next_number,
            type=(transition_type or DEFAULT_TRANSITION).upper(),
            duration_ms=duration_ms,
            offset_seconds=round(max(0.0, elapsed - overlap), 3),
        ))

    return plans


def baked_audio_tracks(audio_tracks: Sequence[GeneratedAudio], overrides: Dict[int, str]) -> Set[Tuple[int, int]]:
    """
    (scene_number, line_index) of lines already heard in an override clip.

    Lip-sync chains each synced line onto the previous clip, so the override
    carries every synced line of its scene and no other. An override with no
    synced line behind it replaces the scene sound entirely.
    """
    synced: Dict[int, Set[int]] = {}
    for track in audio_tracks:
        if track.lipsync_video_url:
            synced.setdefault(track.scene_number, set()).add(track.line_index)

    baked: Set[Tuple[int, int]] = set()
    for track in audio_tracks:
        if track.scene_number not in overrides:
            continue
        lines = synced.get(track.scene_number)
        if lines is None or track.line_index in lines:
            baked.add((track.scene_number, track.line_index))
    return baked


class AssemblerAgent(StudioAgent):
    """
    Delegates the final cut to the render service.

    When rendering fails the movie degrades to its first scene instead of
    failing, and the degraded status is recorded for operators.
    """

    _is_stub = False

    def __init__(
        self,
        render_provider: RenderProvider,
        ledger: Optional[MovieLedger] = None,
        claude_client: Optional[ClaudeClient] = None,
        settings: Optional[Settings] = None
    ):
        super().__init__(claude_client=claude_client, settings=settings)
        self.render_provider = render_provider
        self.ledger = ledger

    @tool
    async def assemble(
        self,
        movie_id: str,
        videos: List[GeneratedVideo],
        audio_tracks: List[GeneratedAudio],
        screenplay: Screenplay,
        music_url: Optional[str] = None,
        video_overrides: Optional[Dict[int, str]] = None
    ) -> AssemblyResult:
        """
        Assemble the movie from its completed scenes.

        Args:
            movie_id: Movie being assembled
            videos: Generated scene videos (failed ones are dropped)
            audio_tracks: Voiced dialogue lines
            screenplay: Source of the declared transitions
            music_url: Optional background music
            video_overrides: Replacement clip per scene (lip-synced versions)

        Returns:
            AssemblyResult; video_url is set whenever at least one scene completed
        """
        overrides = video_overrides or {}
        ordered = sorted((v for v in videos if v.succeeded), key=lambda v: v.scene_number)

        dropped = sorted(v.scene_number for v in videos if not v.succeeded)
        if dropped:
            logger.warning(f"[{movie_id}] Dropping scenes that did not complete: {dropped}")

        if not ordered:
            logger.error(f"[{movie_id}] No completed scenes to assemble")
            await self._record(movie_id, {"assembly_status": "no_scenes"})
            return AssemblyResult(video_url=None, status="no_scenes")

        timeline = []
        for video in ordered:
            scene = screenplay.get_scene(video.scene_number)
            transition_type = scene.transition.type if scene is not None else DEFAULT_TRANSITION
            timeline.append((video.scene_number, video.duration, transition_type))
        transitions = plan_transitions(timeline)

        scene_start = {ordered[0].scene_number: 0.0}
        for plan in transitions:
            scene_start[plan.to_scene] = plan.offset_seconds

        scene_payload = [
            {
                "scene_number": v.scene_number,
                "video_url": overrides.get(v.scene_number, v.video_url),
                "is_continuation": v.is_continuation,
                "duration": v.duration,
            }
            for v in ordered
        ]
        transition_payload = [
            {
                "from_scene": t.from_scene,
                "to_scene": t.to_scene,
                "type": t.type,
                "duration_ms": t.duration_ms,
                "offset": t.offset_seconds,
            }
            for t in transitions
        ]
        baked = baked_audio_tracks(audio_tracks, overrides)
        audio_payload = [
            {
                "scene_number": a.scene_number,
                "audio_url": a.audio_url,
                "start": round(scene_start[a.scene_number] + a.start_second, 3),
                "duration": a.duration_seconds,
            }
            for a in audio_tracks
            if not a.skipped and a.audio_url and a.scene_number in scene_start
            and (a.scene_number, a.line_index) not in baked
        ]

        fallback_url = scene_payload[0]["video_url"]
        logger.info(f"[{movie_id}] Assembling {len(scene_payload)} scenes, {len(audio_payload)} audio tracks")

        try:
            result = await self.render_provider.assemble(
                movie_id,
                scene_payload,
                transitions=transition_payload,
                audio=audio_payload,
                music_url=music_url,
            )
            if not result.success or not result.video_url:
                raise AssemblyError(result.error_message or "render service returned no video")
        except (AssemblyError, ProviderError) as e:
            logger.error(f"[{movie_id}] Assembly failed, falling back to the first scene: {e}")
            await self._record(movie_id, {
                "assembly_status": "failed_real_assembly",
                "assembly_error": str(e),
                "scene_videos": [s["video_url"] for s in scene_payload],
                "note": "Final video is the first scene only; the render service failed",
            })
            return AssemblyResult(
                video_url=fallback_url,
                status="failed_real_assembly",
                scene_count=len(scene_payload),
                transitions=transitions,
                error=str(e),
            )

        await self._record(movie_id, {
            "assembly_status": "completed",
            "duration_seconds": result.duration_seconds,
            "file_size_bytes": result.file_size_bytes,
        })
        logger.info(
            f"[{movie_id}] Movie assembled: {result.video_url} "
            f"({self._format_duration(result.duration_seconds or 0.0)})"
        )
        return AssemblyResult(
            video_url=result.video_url,
            status="completed",
            scene_count=len(scene_payload),
            duration_seconds=result.duration_seconds,
            file_size_bytes=result.file_size_bytes,
            elapsed_seconds=result.elapsed_seconds,
            transitions=transitions,
        )

    async def _record(self, movie_id: str, metadata: Dict) -> None:
        """Merge assembly metadata into the ledger; a ledger failure never changes the result"""
        if self.ledger is None:
            return
        try:
            await self.ledger.update(movie_id, metadata=metadata)
        except (KeyError, OSError) as e:
            logger.warning(f"[{movie_id}] Could not record assembly metadata: {e}")
