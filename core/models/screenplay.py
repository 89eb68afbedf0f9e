"""
Screenplay models - ordered, fully detailed scene records.

Scenes are validated once when the screenwriter's response is parsed.
Everything except the scene number is optional; the runtime fields
(status, video_url) are mutated by the orchestrator while generating.
"""

import json
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, Field, field_validator

from .base import LenientModel


class SceneStatus(str, Enum):
    """Per-scene generation status"""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class SceneHeader(LenientModel):
    type: str = "EXT"
    location: str = ""
    time: str = "DAY"
    time_specific: str = ""


class SceneDuration(LenientModel):
    screen_time_seconds: float = 10.0
    story_time: str = ""


class VisualDirection(LenientModel):
    establishing_shot: str = ""
    lighting: Union[Dict[str, Any], str] = ""
    color_grading: str = ""
    depth_of_field: str = ""
    camera_movement: str = ""
    shot_list: List[Any] = Field(default_factory=list)


class CharacterInScene(LenientModel):
    character_name: str = Field(validation_alias=AliasChoices("character_name", "name", "character"))
    entrance: str = ""
    position: Union[Dict[str, Any], str] = Field(default_factory=dict)
    wardrobe: Union[Dict[str, Any], str] = ""
    physical_state: str = ""
    emotional_state: str = ""
    blocking: List[Any] = Field(default_factory=list)

    def wardrobe_signature(self) -> str:
        """Normalised wardrobe text used to detect costume changes"""
        if isinstance(self.wardrobe, dict):
            text = json.dumps(self.wardrobe, sort_keys=True, ensure_ascii=False)
        else:
            text = self.wardrobe
        return re.sub(r"\s+", " ", text).strip().lower()


class Beat(LenientModel):
    timestamp: Union[str, float] = ""
    action: str = ""
    visual_focus: str = ""


class ActionDescription(LenientModel):
    summary: str = ""
    beat_by_beat: List[Beat] = Field(default_factory=list)


class DialogueTiming(LenientModel):
    start_second: float = 0.0
    duration_seconds: float = 3.0


class DialogueDelivery(LenientModel):
    pace: str = "normal"
    volume: str = ""
    tone: str = ""
    pauses: Any = None


class DialogueLine(LenientModel):
    character: str = ""
    line: str = Field(default="", validation_alias=AliasChoices("line", "text"))
    parenthetical: str = ""
    emotion: str = ""
    subtext: str = ""
    timing: DialogueTiming = Field(default_factory=DialogueTiming)
    delivery: DialogueDelivery = Field(default_factory=DialogueDelivery)


class SceneSound(LenientModel):
    ambient: Union[str, List[Any]] = ""
    sound_effects: List[Any] = Field(default_factory=list)
    music: Union[Dict[str, Any], str] = ""


class SceneContinuity(LenientModel):
    previous_scene_connection: Union[Dict[str, Any], str] = Field(default_factory=dict)
    next_scene_setup: Union[Dict[str, Any], str] = ""
    persistent_elements: List[Any] = Field(default_factory=list)
    changes_from_previous: List[Any] = Field(default_factory=list)

    @field_validator("changes_from_previous", "persistent_elements", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if isinstance(value, (str, dict)):
            return [value] if value else []
        return value

    def has_previous_connection(self) -> bool:
        if isinstance(self.previous_scene_connection, dict):
            return any(self.previous_scene_connection.values())
        return bool(self.previous_scene_connection.strip())

    def changes_text(self) -> str:
        """All justified changes flattened to one lowercase string"""
        parts = []
        for change in self.changes_from_previous:
            if isinstance(change, dict):
                parts.append(json.dumps(change, ensure_ascii=False))
            else:
                parts.append(str(change))
        return " ".join(parts).lower()


class TransitionSpec(LenientModel):
    type: str = "CUT"
    duration_frames: int = 12
    description: str = ""


class GenerationPrompts(LenientModel):
    video_prompt: str = ""
    audio_prompt: str = ""
    negative_prompt: str = ""


class Scene(LenientModel):
    """One scene of the screenplay"""

    scene_number: int
    scene_id: str = ""
    is_continuation: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_continuation", "continues_previous")
    )
    header: SceneHeader = Field(default_factory=SceneHeader)
    duration: SceneDuration = Field(default_factory=SceneDuration)
    visual_direction: VisualDirection = Field(default_factory=VisualDirection)
    characters_in_scene: List[CharacterInScene] = Field(default_factory=list)
    action_description: ActionDescription = Field(default_factory=ActionDescription)
    dialogue: List[DialogueLine] = Field(default_factory=list)
    sound_design: SceneSound = Field(default_factory=SceneSound)
    continuity: SceneContinuity = Field(default_factory=SceneContinuity)
    transition: TransitionSpec = Field(default_factory=TransitionSpec)
    technical_notes: Union[Dict[str, Any], List[Any], str] = ""
    ai_generation_prompts: GenerationPrompts = Field(default_factory=GenerationPrompts)

    # Runtime state
    status: SceneStatus = SceneStatus.PENDING
    video_url: Optional[str] = None

    @field_validator("transition", mode="before")
    @classmethod
    def _transition_from_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"type": value}
        return value

    @property
    def screen_time(self) -> float:
        return self.duration.screen_time_seconds

    @property
    def location(self) -> str:
        return self.header.location

    def quoted_lines(self) -> List[str]:
        """Non-empty dialogue text of this scene"""
        return [d.line.strip() for d in self.dialogue if d.line.strip()]


class Screenplay(LenientModel):
    """Ordered scene script for one movie"""

    title: str = ""
    logline: str = ""
    scenes: List[Scene] = Field(default_factory=list)
    audit_warnings: List[str] = Field(default_factory=list)

    @property
    def total_duration(self) -> float:
        return sum(scene.screen_time for scene in self.scenes)

    def get_scene(self, scene_number: int) -> Optional[Scene]:
        for scene in self.scenes:
            if scene.scene_number == scene_number:
                return scene
        return None

    def completed_scenes(self) -> List[Scene]:
        return [s for s in self.scenes if s.status == SceneStatus.COMPLETED]
