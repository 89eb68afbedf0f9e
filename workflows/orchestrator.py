"""
Movie Orchestrator - Runs one movie through the production pipeline

planning -> screenwriting -> scene_generation -> audio_generation -> assembling -> completed | failed

Scenes are generated strictly in order: a continuation scene starts from
the end frame of the scene before it. A failed scene does not stop the
movie; later stages work with whatever scenes completed. Progress is written
to the movie ledger after every step and every scene.
"""

import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from agents.assembler import AssemblerAgent
from agents.dialogue_audio_generator import DialogueAudioGeneratorAgent, lipsynced_videos
from agents.planner import PlannerAgent
from agents.reference_resolver import ReferenceResolver
from agents.scene_video_generator import SceneVideoGeneratorAgent
from agents.screenwriter import ScreenwriterAgent
from core.asset_library import AssetLibrary
from core.config import Settings, get_settings
from core.errors import ProviderError, StudioError
from core.frames import EndFrameExtractor
from core.ledger import MovieLedger, MovieState, StepStatus
from core.location_cache import LocationImageCache
from core.models.generation import AssemblyResult, GeneratedAudio, GeneratedVideo
from core.models.production import ContinuityChain, ProductionPlan
from core.models.screenplay import SceneStatus, Screenplay
from core.models.visual_bible import VisualBible
from core.providers import MockVideoProvider, ProviderSet

logger = logging.getLogger(__name__)


@dataclass
class ProductionResult:
    """Result of one pipeline run"""
    movie_id: str
    status: str  # "completed" or "failed"
    final_video_url: Optional[str] = None
    assembly_status: Optional[str] = None
    visual_bible: Optional[VisualBible] = None
    plan: Optional[ProductionPlan] = None
    screenplay: Optional[Screenplay] = None
    continuity: Optional[ContinuityChain] = None
    videos: List[GeneratedVideo] = field(default_factory=list)
    audio: List[GeneratedAudio] = field(default_factory=list)
    assembly: Optional[AssemblyResult] = None
    cover_url: Optional[str] = None
    failed_scenes: List[int] = field(default_factory=list)
    error: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def completed_scenes(self) -> List[GeneratedVideo]:
        return [v for v in self.videos if v.succeeded]


class MovieOrchestrator:
    """
    Coordinates the pipeline agents for one movie at a time.

    Independent movies may run concurrently in separate orchestrators; they
    share only the location image cache and the asset library.
    """

    def __init__(
        self,
        providers: ProviderSet,
        settings: Optional[Settings] = None,
        ledger: Optional[MovieLedger] = None,
        location_cache: Optional[LocationImageCache] = None,
        library: Optional[AssetLibrary] = None,
        claude_client=None,
        frame_extractor: Optional[EndFrameExtractor] = None
    ):
        """
        Args:
            providers: External services for this run
            settings: Pipeline settings (process-wide settings if not provided)
            ledger: Progress sink (defaults to the artifact directory)
            location_cache: Shared location image cache
            library: Shared character/location library
            claude_client: Text client (defaults to providers.text)
            frame_extractor: End-frame extractor (FFmpeg unless providers are mocks)
        """
        self.settings = settings or get_settings()
        self.providers = providers
        base = self.settings.artifact_dir
        self.ledger = ledger or MovieLedger(os.path.join(base, "ledger", "movies.json"))
        self.location_cache = location_cache or LocationImageCache(os.path.join(base, "cache", "location_images.json"))
        self.library = library or AssetLibrary(os.path.join(base, "library", "assets.json"))
        text = claude_client or providers.text

        if frame_extractor is None:
            frame_extractor = EndFrameExtractor(
                providers.storage,
                image_provider=providers.image,
                use_ffmpeg=not isinstance(providers.video, MockVideoProvider),
            )

        self.planner = PlannerAgent(claude_client=text, library=self.library, settings=self.settings)
        self.screenwriter = ScreenwriterAgent(claude_client=text, settings=self.settings)
        self.resolver = ReferenceResolver(providers.image, cache=self.location_cache)
        self.video_generator = SceneVideoGeneratorAgent(
            providers.video,
            self.resolver,
            frame_extractor=frame_extractor,
            claude_client=text,
            settings=self.settings,
        )
        self.audio_generator = DialogueAudioGeneratorAgent(
            providers.audio,
            providers.storage,
            lipsync_provider=providers.lipsync,
            claude_client=text,
            settings=self.settings,
        )
        self.assembler = AssemblerAgent(
            providers.render,
            ledger=self.ledger,
            claude_client=text,
            settings=self.settings,
        )

    async def produce(
        self,
        title: str,
        brief: str,
        genre: str,
        duration_minutes: float,
        movie_id: Optional[str] = None,
        music_url: Optional[str] = None
    ) -> ProductionResult:
        """
        Produce one movie end to end.

        Returns:
            ProductionResult; status is "failed" when no scene completed, the
            completed share is below min_success_ratio, or a stage aborted
        """
        movie_id = movie_id or f"movie_{uuid.uuid4().hex[:12]}"
        started = time.time()
        result = ProductionResult(movie_id=movie_id, status=MovieState.PLANNING.value)

        await self.ledger.create(
            movie_id,
            title=title,
            brief=brief,
            genre=genre,
            duration_minutes=duration_minutes,
        )
        logger.info(f"[{movie_id}] Producing '{title}' ({genre}, {duration_minutes} min)")

        try:
            await self._run(result, title, brief, genre, duration_minutes, music_url)
        except (StudioError, ValueError, OSError) as e:
            logger.exception(f"[{movie_id}] Production aborted: {e}")
            result.status = MovieState.FAILED.value
            result.error = str(e)
            await self.ledger.update(movie_id, status=MovieState.FAILED, error=str(e))

        result.elapsed_seconds = time.time() - started
        logger.info(f"[{movie_id}] Finished with status {result.status} in {result.elapsed_seconds:.1f}s")
        return result

    async def _set_state(self, result: ProductionResult, state: MovieState) -> None:
        result.status = state.value
        await self.ledger.update(result.movie_id, status=state)

    async def _run(
        self,
        result: ProductionResult,
        title: str,
        brief: str,
        genre: str,
        duration_minutes: float,
        music_url: Optional[str]
    ) -> None:
        movie_id = result.movie_id

        # Planning
        await self.ledger.update_step(movie_id, "create_visual_bible", StepStatus.RUNNING)
        bible = await self.planner.create_visual_bible(title, brief, genre, duration_minutes)
        result.visual_bible = bible
        self.resolver.bible = bible
        self.video_generator.bible = bible
        await self.ledger.update_step(
            movie_id, "create_visual_bible", StepStatus.COMPLETED, 100,
            detail="fallback defaults" if bible.is_fallback else ""
        )
        await self.ledger.update(movie_id, visual_bible=bible.model_dump(mode="json"))

        await self.ledger.update_step(movie_id, "plan_production", StepStatus.RUNNING)
        plan = await self.planner.plan_production(brief, bible)
        result.plan = plan
        await self.ledger.update_step(movie_id, "plan_production", StepStatus.COMPLETED, 100)
        await self.ledger.update(movie_id, metadata={"production_plan": plan.summary()})

        # Screenwriting
        await self._set_state(result, MovieState.SCREENWRITING)
        await self.ledger.update_step(movie_id, "generate_screenplay", StepStatus.RUNNING)
        screenplay = await self.screenwriter.write_screenplay(brief, duration_minutes, bible)
        result.screenplay = screenplay

        library_locations = {
            m.name.strip().lower(): m.library_id
            for m in plan.locations if m.found_in_library and m.library_id
        }
        continuity = self.screenwriter.build_continuity(screenplay, library_locations)
        result.continuity = continuity
        await self.ledger.update_step(
            movie_id, "generate_screenplay", StepStatus.COMPLETED, 100,
            detail=f"{len(screenplay.scenes)} scenes"
        )
        await self.ledger.update(
            movie_id,
            screenplay=screenplay.model_dump(mode="json"),
            metadata={
                "continuity_plan": continuity.to_list(),
                "continuity_warnings": screenplay.audit_warnings,
            },
        )

        # Scene generation
        await self._set_state(result, MovieState.SCENE_GENERATION)
        await self._generate_scenes(result, screenplay, continuity)

        if not result.completed_scenes:
            for step in ("generate_audio", "assemble_movie", "generate_cover"):
                await self.ledger.update_step(movie_id, step, StepStatus.SKIPPED, detail="no completed scenes")
            await self._finish(result, screenplay)
            return

        # Audio
        await self._set_state(result, MovieState.AUDIO_GENERATION)
        await self.ledger.update_step(movie_id, "generate_audio", StepStatus.RUNNING)
        # Dialogue of dropped scenes would never be heard, so it is not voiced
        on_screen = {v.scene_number for v in result.completed_scenes}
        voiced_screenplay = screenplay.model_copy(
            update={"scenes": [s for s in screenplay.scenes if s.scene_number in on_screen]}
        )
        result.audio = await self.audio_generator.generate_dialogue_audio(
            voiced_screenplay, bible, videos=result.videos, movie_id=movie_id
        )
        skipped = sum(1 for a in result.audio if a.skipped)
        await self.ledger.update_step(
            movie_id, "generate_audio", StepStatus.COMPLETED, 100,
            detail=f"{len(result.audio) - skipped} voiced, {skipped} skipped"
        )

        # Assembly
        await self._set_state(result, MovieState.ASSEMBLING)
        await self.ledger.update_step(movie_id, "assemble_movie", StepStatus.RUNNING)
        assembly = await self.assembler.assemble(
            movie_id,
            result.videos,
            result.audio,
            screenplay,
            music_url=music_url,
            video_overrides=lipsynced_videos(result.audio),
        )
        result.assembly = assembly
        result.final_video_url = assembly.video_url
        result.assembly_status = assembly.status
        await self.ledger.update_step(
            movie_id, "assemble_movie",
            StepStatus.FAILED if assembly.degraded else StepStatus.COMPLETED, 100,
            detail=assembly.error or ""
        )

        # Cover
        await self.ledger.update_step(movie_id, "generate_cover", StepStatus.RUNNING)
        result.cover_url = await self._cover(result, bible)
        await self.ledger.update_step(
            movie_id, "generate_cover",
            StepStatus.COMPLETED if result.cover_url else StepStatus.FAILED, 100
        )

        await self._finish(result, screenplay)

    async def _generate_scenes(
        self,
        result: ProductionResult,
        screenplay: Screenplay,
        continuity: ContinuityChain
    ) -> None:
        movie_id = result.movie_id
        total = len(screenplay.scenes)
        end_frames: Dict[int, Optional[str]] = {}

        await self.ledger.update_step(movie_id, "generate_videos", StepStatus.RUNNING, 0, detail=f"0/{total}")

        for done, scene in enumerate(screenplay.scenes, start=1):
            entry = continuity.entry_for(scene.scene_number)
            is_continuation = bool(entry and entry.is_continuation)
            previous_end_frame = end_frames.get(entry.continues_from) if entry and entry.continues_from else None

            scene.status = SceneStatus.GENERATING
            await self.ledger.update_scene(movie_id, scene.scene_number, status=scene.status.value)

            video = await self.video_generator.generate_scene_video(
                scene, is_continuation, previous_end_frame, movie_id=movie_id
            )
            result.videos.append(video)
            end_frames[scene.scene_number] = video.end_frame_url if video.succeeded else None

            if video.succeeded:
                scene.status = SceneStatus.COMPLETED
                scene.video_url = video.video_url
            else:
                scene.status = SceneStatus.FAILED
                result.failed_scenes.append(scene.scene_number)

            await self.ledger.update_scene(
                movie_id,
                scene.scene_number,
                status=scene.status.value,
                video_url=video.video_url,
                end_frame_url=video.end_frame_url,
                reference_source=video.reference_source.value if video.reference_source else None,
                is_continuation=is_continuation,
                error=video.error,
            )
            await self.ledger.update_step(
                movie_id, "generate_videos", StepStatus.RUNNING, done / total * 100,
                detail=f"{done}/{total}"
            )

        completed = total - len(result.failed_scenes)
        await self.ledger.update_step(
            movie_id, "generate_videos",
            StepStatus.COMPLETED if completed else StepStatus.FAILED, 100,
            detail=f"{completed}/{total} scenes completed"
        )

    async def _cover(self, result: ProductionResult, bible: VisualBible) -> Optional[str]:
        """First scene's reference frame, or a generated poster still"""
        for video in result.completed_scenes:
            if video.reference_frame_url:
                return video.reference_frame_url

        identity = bible.movie_identity
        prompt = (
            f"Movie poster still for '{identity.title}', {identity.genre}, {identity.visual_style}, "
            f"cinematic composition, no text"
        )
        try:
            image = await self.providers.image.generate_image(prompt, width=1280, height=768, count=1)
        except ProviderError as e:
            logger.warning(f"[{result.movie_id}] Cover generation failed: {e}")
            return None
        return image.image_url

    async def _finish(self, result: ProductionResult, screenplay: Screenplay) -> None:
        """Apply the partial-success policy and write the final record"""
        total = len(screenplay.scenes)
        completed = len(result.completed_scenes)
        ratio = completed / total if total else 0.0

        if completed == 0 or ratio < self.settings.min_success_ratio:
            final = MovieState.FAILED
            logger.error(
                f"[{result.movie_id}] {completed}/{total} scenes completed "
                f"(minimum ratio {self.settings.min_success_ratio:.0%})"
            )
        else:
            final = MovieState.DONE
            if result.failed_scenes:
                logger.warning(f"[{result.movie_id}] Completed with failed scenes {result.failed_scenes}")

        result.status = final.value
        await self.ledger.update(
            result.movie_id,
            status=final,
            final_video_url=result.final_video_url,
            metadata={
                "completed_scenes": completed,
                "total_scenes": total,
                "failed_scenes": result.failed_scenes,
                "cover_url": result.cover_url,
            },
        )
