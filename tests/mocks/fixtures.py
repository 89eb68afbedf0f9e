"""Test data factories for consistent test setup"""

import json
from typing import Any, Dict, List, Optional

from core.models.screenplay import Scene, Screenplay
from core.models.visual_bible import VisualBible


def make_scene(
    scene_number: int = 1,
    location: str = "Rain-soaked downtown street",
    time: str = "NIGHT",
    is_continuation: bool = False,
    dialogue: Optional[List[Dict[str, Any]]] = None,
    **kwargs
) -> Scene:
    """Factory for Scene objects"""
    data = {
        "scene_number": scene_number,
        "scene_id": f"SC{scene_number:03d}",
        "is_continuation": is_continuation,
        "header": {"type": "EXT", "location": location, "time": time},
        "duration": {"screen_time_seconds": 10},
        "visual_direction": {"camera_movement": "slow dolly in"},
        "characters_in_scene": [
            {"character_name": "Sam Rivera", "wardrobe": "grey trench coat", "emotional_state": "tense"},
        ],
        "action_description": {"summary": "Sam crouches beside the body under a flickering lamp."},
        "dialogue": dialogue if dialogue is not None else [
            {"character": "Sam Rivera", "line": "Nobody saw a thing. They never do.",
             "timing": {"start_second": 2, "duration_seconds": 3}},
        ],
        "transition": {"type": "CUT"},
    }
    data.update(kwargs)
    return Scene.model_validate(data)


def make_screenplay(count: int = 3, continuations: Optional[List[int]] = None, **kwargs) -> Screenplay:
    """Factory for a screenplay; scene numbers in continuations continue the previous scene"""
    continuations = continuations or []
    scenes = [
        make_scene(scene_number=n, is_continuation=n in continuations, **kwargs)
        for n in range(1, count + 1)
    ]
    return Screenplay(title="Wet Streets", scenes=scenes)


def make_bible(**kwargs) -> VisualBible:
    """Factory for a small, valid Visual Bible"""
    data = {
        "movie_identity": {
            "title": "Wet Streets",
            "genre": "noir",
            "tone": "brooding",
            "visual_style": "high-contrast noir",
        },
        "characters": [
            {"name": "Sam Rivera", "gender": "male", "wardrobe": {"top": "grey trench coat"}},
            {"name": "Vera Lane", "gender": "female"},
            {"name": "Joe Costa", "gender": "masculino"},
        ],
        "locations": [
            {"name": "Rain-soaked downtown street", "description": "Neon reflections on wet asphalt"},
        ],
    }
    data.update(kwargs)
    return VisualBible.model_validate(data)


def bible_json(**kwargs) -> str:
    """Visual Bible as a creative response would return it"""
    return json.dumps(make_bible(**kwargs).model_dump(mode="json", exclude={"is_fallback"}))
