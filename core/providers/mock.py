"""Mock providers for running the pipeline without API keys"""

import asyncio
import json
import re
from typing import Any, Dict, List, Optional

from core.errors import AssemblyError, ProviderError, QuotaError
from .base import (
    AudioGenerationResult,
    AudioProvider,
    ImageGenerationResult,
    ImageProvider,
    JobState,
    JobStatus,
    LipSyncProvider,
    ProviderConfig,
    ProviderType,
    RenderProvider,
    RenderResult,
    VideoProvider,
    VideoProviderConfig,
)

MOCK_CDN = "https://mock-cdn.example.com"


class MockVideoProvider(VideoProvider):
    """
    Mock video provider that simulates submit/poll without hitting real APIs.

    Each job reports "pending" for pending_checks status checks before it
    succeeds. Prompts listed in fail_on_substrings make the job fail.

    Used for:
    - Testing without API keys
    - Development without incurring costs
    """

    _is_stub = False

    def __init__(
        self,
        config: Optional[VideoProviderConfig] = None,
        pending_checks: int = 1,
        fail_on_substrings: Optional[List[str]] = None
    ):
        if config is None:
            config = VideoProviderConfig(provider_type=ProviderType.MOCK, poll_interval=0.0, max_attempts=10)
        super().__init__(config)
        self.pending_checks = pending_checks
        self.fail_on_substrings = fail_on_substrings or []
        self.generation_count = 0
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.submissions: List[Dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "mock"

    async def submit(
        self,
        prompt: str,
        reference_image: Optional[str],
        duration: float,
        aspect_ratio: str = "16:9",
        **kwargs
    ) -> str:
        if not reference_image:
            raise ProviderError("Mock image_to_video requires a reference image", provider=self.name)

        await asyncio.sleep(0)
        self.generation_count += 1
        job_id = f"mock_job_{self.generation_count}"
        failing = any(s in prompt for s in self.fail_on_substrings)

        self.submissions.append({
            "prompt": prompt,
            "reference_image": reference_image,
            "duration": duration,
            "aspect_ratio": aspect_ratio,
        })
        self.jobs[job_id] = {"checks": 0, "failing": failing}
        return job_id

    async def check_status(self, task_id: str) -> JobState:
        job = self.jobs.get(task_id)
        if job is None:
            return JobState(status=JobStatus.FAILED, error=f"Job {task_id} not found")

        job["checks"] += 1
        if job["checks"] <= self.pending_checks:
            return JobState(status=JobStatus.PENDING)
        if job["failing"]:
            return JobState(status=JobStatus.FAILED, error="mock failure")
        return JobState(status=JobStatus.SUCCEEDED, output_url=f"{MOCK_CDN}/videos/{task_id}.mp4")

    def estimate_cost(self, duration: float, **kwargs) -> float:
        return 0.0

    def reset(self):
        """Reset mock state (useful for testing)"""
        self.generation_count = 0
        self.jobs.clear()
        self.submissions.clear()


class MockImageProvider(ImageProvider):
    """Returns deterministic image URLs and records every prompt"""

    _is_stub = False

    def __init__(self, config: Optional[ProviderConfig] = None):
        super().__init__(config or ProviderConfig())
        self.prompts: List[str] = []

    @property
    def name(self) -> str:
        return "mock"

    async def generate_image(
        self,
        prompt: str,
        width: int = 1280,
        height: int = 768,
        count: int = 1,
        **kwargs
    ) -> ImageGenerationResult:
        self.prompts.append(prompt)
        index = len(self.prompts)
        return ImageGenerationResult(
            success=True,
            image_urls=[f"{MOCK_CDN}/images/image_{index}_{i}.jpg" for i in range(count)],
            width=width,
            height=height,
            provider_metadata={"provider": self.name},
        )


class MockAudioProvider(AudioProvider):
    """
    Returns a few bytes of fake mp3 per line.

    quota_after makes every call after that many successful ones raise
    QuotaError, to exercise the soft-skip path.
    """

    _is_stub = False

    def __init__(self, config: Optional[ProviderConfig] = None, quota_after: Optional[int] = None):
        super().__init__(config or ProviderConfig())
        self.quota_after = quota_after
        self.calls: List[Dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "mock"

    async def generate_speech(
        self,
        text: str,
        voice_id: str,
        stability: float = 0.5,
        similarity_boost: float = 0.75,
        style: float = 0.5,
        **kwargs
    ) -> AudioGenerationResult:
        if self.quota_after is not None and len(self.calls) >= self.quota_after:
            raise QuotaError("mock quota exceeded", provider=self.name, status=401)

        self.calls.append({
            "text": text,
            "voice_id": voice_id,
            "stability": stability,
            "similarity_boost": similarity_boost,
            "style": style,
        })
        return AudioGenerationResult(
            success=True,
            audio_data=b"ID3mock" + text.encode("utf-8")[:32],
            provider_metadata={"provider": self.name, "voice_id": voice_id},
        )


class MockLipSyncProvider(LipSyncProvider):
    """Completes every job on the first status check"""

    _is_stub = False

    def __init__(self, config: Optional[ProviderConfig] = None):
        super().__init__(config or ProviderConfig(poll_interval=0.0, max_attempts=5))
        self.jobs: Dict[str, Dict[str, str]] = {}

    @property
    def name(self) -> str:
        return "mock"

    async def submit(self, video_url: str, audio_url: str, **kwargs) -> str:
        job_id = f"mock_sync_{len(self.jobs) + 1}"
        self.jobs[job_id] = {"video_url": video_url, "audio_url": audio_url}
        return job_id

    async def check_status(self, task_id: str) -> JobState:
        if task_id not in self.jobs:
            return JobState(status=JobStatus.FAILED, error="unknown job")
        return JobState(status=JobStatus.SUCCEEDED, output_url=f"{MOCK_CDN}/lipsync/{task_id}.mp4")


class MockRenderProvider(RenderProvider):
    """Concatenates nothing; returns a fake movie URL or fails on demand"""

    _is_stub = False

    def __init__(self, config: Optional[ProviderConfig] = None, fail: bool = False):
        super().__init__(config or ProviderConfig())
        self.fail = fail
        self.requests: List[Dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "mock"

    async def health(self) -> bool:
        return not self.fail

    async def assemble(
        self,
        movie_id: str,
        scenes: List[Dict[str, Any]],
        transitions: Optional[List[Dict[str, Any]]] = None,
        audio: Optional[List[Dict[str, Any]]] = None,
        music_url: Optional[str] = None
    ) -> RenderResult:
        self.requests.append({
            "movie_id": movie_id,
            "scenes": scenes,
            "transitions": transitions or [],
            "audio": audio or [],
            "music_url": music_url,
        })
        if self.fail:
            raise AssemblyError("mock render failure")

        return RenderResult(
            success=True,
            video_url=f"{MOCK_CDN}/movies/{movie_id}.mp4",
            duration_seconds=10.0 * len(scenes),
            file_size_bytes=1_000_000 * len(scenes),
            elapsed_seconds=0.0,
        )


class MockTextClient:
    """
    Deterministic stand-in for ClaudeClient used by --mock runs.

    Produces a small noir Visual Bible, a production plan and screenplay
    batches in which odd scenes open on a new location and even scenes
    continue the previous one.
    """

    _is_stub = False

    LOCATIONS = ["Rain-soaked downtown street", "Detective's office", "Jazz club back room"]

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []

    async def query(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ) -> str:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt})
        await asyncio.sleep(0)

        if "Visual Bible for this movie" in prompt:
            return json.dumps(self._visual_bible(prompt))
        if "production resources" in prompt:
            return json.dumps(self._production_plan())
        batch = re.search(r"Write scenes (\d+) to (\d+)", prompt)
        if batch:
            start, end = int(batch.group(1)), int(batch.group(2))
            return json.dumps({
                "title": self._field(prompt, "title") or "Untitled",
                "scenes": [self._scene(n) for n in range(start, end + 1)],
            })
        return "{}"

    async def query_json(self, prompt: str, system_prompt: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        return json.loads(await self.query(prompt, system_prompt=system_prompt))

    @staticmethod
    def _field(prompt: str, name: str) -> Optional[str]:
        match = re.search(rf"^{name.upper()}:\s*(.+)$", prompt, re.MULTILINE)
        if match:
            return match.group(1).strip()
        match = re.search(rf'"{name}"\s*:\s*"([^"]+)"', prompt)
        return match.group(1) if match else None

    def _visual_bible(self, prompt: str) -> Dict[str, Any]:
        title = self._field(prompt, "title") or "Untitled"
        genre = self._field(prompt, "genre") or "drama"
        return {
            "movie_identity": {
                "title": title,
                "logline": "A tired detective follows a trail of rain and lies.",
                "genre": genre,
                "tone": "brooding",
                "era": "1940s",
                "visual_style": "high-contrast noir, wet reflections, hard shadows",
            },
            "color_palette": {
                "primary": {"name": "Ink black", "hex": "#0B0B0F", "usage": "Shadows and night"},
                "secondary": {"name": "Sodium amber", "hex": "#E0A040", "usage": "Street lamps"},
                "accent": {"name": "Neon red", "hex": "#C0392B", "usage": "Signs"},
            },
            "camera_style": {"default_lens": "35mm", "movement_style": "slow dolly", "typical_shots": ["low angle"]},
            "characters": [
                {
                    "name": "Sam Rivera",
                    "role": "protagonist",
                    "age": 45,
                    "gender": "male",
                    "wardrobe": {"default_outfit": {"top": "grey trench coat", "bottom": "dark trousers"}},
                    "character_prompt": "weathered detective in a grey trench coat and fedora",
                },
                {
                    "name": "Vera Lane",
                    "role": "witness",
                    "age": 32,
                    "gender": "female",
                    "wardrobe": {"default_outfit": {"top": "emerald dress"}},
                    "character_prompt": "singer in an emerald dress, red lipstick",
                },
            ],
            "locations": [
                {"name": name, "type": "interior" if i else "exterior", "description": name}
                for i, name in enumerate(self.LOCATIONS)
            ],
            "continuity_rules": {"absolute_rules": ["Sam always wears the grey trench coat"]},
        }

    def _production_plan(self) -> Dict[str, Any]:
        return {
            "locations": [{"name": name, "description": name} for name in self.LOCATIONS],
            "characters": [
                {"name": "Sam Rivera", "role": "protagonist", "gender": "male"},
                {"name": "Vera Lane", "role": "witness", "gender": "female"},
            ],
            "scenes": [
                {"scene_number": n, "location": self.LOCATIONS[((n - 1) // 2) % 3], "continues_previous": n % 2 == 0}
                for n in range(1, 7)
            ],
        }

    def _scene(self, number: int) -> Dict[str, Any]:
        continuation = number % 2 == 0
        location = self.LOCATIONS[((number - 1) // 2) % len(self.LOCATIONS)]
        speaker = "Sam Rivera" if number % 3 else "Vera Lane"
        return {
            "scene_number": number,
            "is_continuation": continuation,
            "header": {"type": "EXT" if location.startswith("Rain") else "INT", "location": location, "time": "NIGHT"},
            "duration": {"screen_time_seconds": 10},
            "visual_direction": {"camera_movement": "slow push in", "establishing_shot": f"{location} in the rain"},
            "characters_in_scene": [
                {"character_name": "Sam Rivera", "wardrobe": "grey trench coat, fedora", "emotional_state": "wary"},
            ],
            "action_description": {
                "summary": f"Sam studies the clues in the {location.lower()} as rain streaks the glass.",
                "beat_by_beat": [{"timestamp": "0:08", "action": "Sam turns toward the door"}],
            },
            "dialogue": [{
                "character": speaker,
                "line": f"Scene {number}: nobody in this town tells the truth.",
                "emotion": "weary",
                "timing": {"start_second": 2, "duration_seconds": 3},
                "delivery": {"pace": "slow", "tone": "low"},
            }],
            "continuity": {
                "previous_scene_connection": {"action": "Sam is still mid-stride"} if continuation else {},
            },
            "transition": {"type": "DISSOLVE" if continuation else "CUT"},
        }
