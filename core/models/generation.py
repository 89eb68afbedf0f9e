"""
Generation artifacts - per-scene video, per-line audio and the final cut.

Records are created during generation and not mutated after they reach a
terminal status.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ReferenceSource(str, Enum):
    """Where a scene's reference frame actually came from"""
    PREVIOUS_FRAME = "previous_frame"
    LIBRARY = "library"
    GENERATED = "generated"


@dataclass
class ResolvedReference:
    """Reference frame chosen for a scene"""
    url: str
    source: ReferenceSource
    cache_entry_id: Optional[str] = None
    location_slug: Optional[str] = None
    time_of_day: Optional[str] = None
    weather: Optional[str] = None


@dataclass
class GeneratedVideo:
    """Video artifact for one scene"""
    scene_number: int
    status: str  # "completed" or "failed"
    video_url: Optional[str] = None
    end_frame_url: Optional[str] = None
    reference_frame_url: Optional[str] = None
    reference_source: Optional[ReferenceSource] = None
    is_continuation: bool = False
    duration: float = 0.0
    prompt: str = ""
    task_id: Optional[str] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "completed" and bool(self.video_url)


@dataclass
class GeneratedAudio:
    """Speech artifact for one dialogue line"""
    scene_number: int
    line_index: int
    character: str
    text: str
    voice_id: str
    audio_url: Optional[str] = None
    start_second: float = 0.0
    duration_seconds: float = 0.0
    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.5
    skipped: bool = False
    skip_reason: Optional[str] = None
    lipsync_video_url: Optional[str] = None


@dataclass
class TransitionPlan:
    """Blend between two adjacent scenes"""
    from_scene: int
    to_scene: int
    type: str
    duration_ms: int
    offset_seconds: float  # where the blend starts on the output timeline


@dataclass
class AssemblyResult:
    """Outcome of the assembly stage"""
    video_url: Optional[str]
    status: str  # "completed", "failed_real_assembly" or "no_scenes"
    scene_count: int = 0
    duration_seconds: Optional[float] = None
    file_size_bytes: Optional[int] = None
    elapsed_seconds: Optional[float] = None
    transitions: List[TransitionPlan] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.status != "completed"
