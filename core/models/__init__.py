"""Data models for the movie pipeline"""

from .base import LenientModel
from .visual_bible import (
    MovieIdentity,
    ColorDefinition,
    ColorPalette,
    LightingRule,
    CameraStyle,
    CinematicReference,
    CharacterProfile,
    LocationProfile,
    ContinuityRules,
    SoundDesignGuide,
    VisualBible,
)
from .screenplay import (
    SceneStatus,
    SceneHeader,
    CharacterInScene,
    DialogueLine,
    SceneContinuity,
    TransitionSpec,
    Scene,
    Screenplay,
)
from .production import (
    ReferenceFramePolicy,
    LibraryMatch,
    ContinuityEntry,
    ContinuityChain,
    ProductionPlan,
)
from .generation import (
    ReferenceSource,
    ResolvedReference,
    GeneratedVideo,
    GeneratedAudio,
    TransitionPlan,
    AssemblyResult,
)

__all__ = [
    "LenientModel",
    # Visual Bible
    "MovieIdentity",
    "ColorDefinition",
    "ColorPalette",
    "LightingRule",
    "CameraStyle",
    "CinematicReference",
    "CharacterProfile",
    "LocationProfile",
    "ContinuityRules",
    "SoundDesignGuide",
    "VisualBible",
    # Screenplay
    "SceneStatus",
    "SceneHeader",
    "CharacterInScene",
    "DialogueLine",
    "SceneContinuity",
    "TransitionSpec",
    "Scene",
    "Screenplay",
    # Production plan
    "ReferenceFramePolicy",
    "LibraryMatch",
    "ContinuityEntry",
    "ContinuityChain",
    "ProductionPlan",
    # Generation artifacts
    "ReferenceSource",
    "ResolvedReference",
    "GeneratedVideo",
    "GeneratedAudio",
    "TransitionPlan",
    "AssemblyResult",
]
