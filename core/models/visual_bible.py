"""
Visual Bible - the immutable per-movie style and continuity contract.

Created once by the planner and read by every downstream stage. Every nested
field is optional so that a partially valid creative response still yields
a usable contract.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from .base import LenientModel


class MovieIdentity(LenientModel):
    title: str = "Untitled"
    logline: str = "A cinematic story"
    genre: str = "drama"
    tone: str = "neutral"
    era: str = "contemporary"
    visual_style: str = "cinematic"


class ColorDefinition(LenientModel):
    name: str = ""
    hex: str = ""
    usage: str = ""


class ColorPalette(LenientModel):
    primary: ColorDefinition = Field(default_factory=ColorDefinition)
    secondary: ColorDefinition = Field(default_factory=ColorDefinition)
    accent: ColorDefinition = Field(default_factory=ColorDefinition)
    shadows: ColorDefinition = Field(default_factory=ColorDefinition)
    highlights: ColorDefinition = Field(default_factory=ColorDefinition)

    def describe(self) -> str:
        """Short 'name (#hex)' list used in prompts"""
        parts = []
        for key in ("primary", "secondary", "accent"):
            color = getattr(self, key)
            if color.name or color.hex:
                parts.append(f"{color.name} ({color.hex})".strip())
        return ", ".join(parts)


class LightingRule(LenientModel):
    type: str = ""
    direction: str = ""
    intensity: str = ""
    shadows: str = ""
    color_temperature: str = ""


class CameraStyle(LenientModel):
    default_lens: str = ""
    aspect_ratio: str = ""
    movement_style: str = ""
    depth_of_field: str = ""
    typical_shots: List[str] = Field(default_factory=list)


class CinematicReference(LenientModel):
    movie: str = ""
    director: str = ""
    what_to_take: str = ""


class CharacterProfile(LenientModel):
    name: str
    role: str = ""
    age: Optional[Union[int, str]] = None
    gender: str = ""
    physical_appearance: Union[Dict[str, Any], str] = Field(default_factory=dict)
    wardrobe: Union[Dict[str, Any], str] = Field(default_factory=dict)
    voice_profile: Union[Dict[str, Any], str] = Field(default_factory=dict)
    mannerisms: List[str] = Field(default_factory=list)
    character_prompt: str = ""


class LocationProfile(LenientModel):
    name: str
    type: str = ""
    description: str = ""
    key_elements: List[str] = Field(default_factory=list)
    color_dominant: str = ""
    lighting_default: str = ""
    atmosphere: str = ""
    location_prompt: str = ""


class ContinuityRules(LenientModel):
    absolute_rules: List[str] = Field(default_factory=list)
    visual_consistency: List[str] = Field(default_factory=list)
    audio_consistency: List[str] = Field(default_factory=list)


class SoundDesignGuide(LenientModel):
    music_style: str = ""
    ambient_sounds: Dict[str, Any] = Field(default_factory=dict)
    emotional_cues: Dict[str, Any] = Field(default_factory=dict)


class VisualBible(LenientModel):
    """Style contract shared by all scenes of one movie"""

    movie_identity: MovieIdentity
    color_palette: ColorPalette = Field(default_factory=ColorPalette)
    lighting_rules: Dict[str, LightingRule] = Field(default_factory=dict)
    camera_style: CameraStyle = Field(default_factory=CameraStyle)
    cinematic_references: List[CinematicReference] = Field(default_factory=list)
    characters: List[CharacterProfile] = Field(default_factory=list)
    locations: List[LocationProfile] = Field(default_factory=list)
    continuity_rules: ContinuityRules = Field(default_factory=ContinuityRules)
    sound_design: SoundDesignGuide = Field(default_factory=SoundDesignGuide)
    forbidden_elements: List[str] = Field(default_factory=list)
    mandatory_elements: List[str] = Field(default_factory=list)

    # Set when the creative response could not be used
    is_fallback: bool = False

    def get_character(self, name: str) -> Optional[CharacterProfile]:
        """Case-insensitive character lookup"""
        wanted = name.strip().lower()
        for character in self.characters:
            if character.name.strip().lower() == wanted:
                return character
        return None

    def get_location(self, name: str) -> Optional[LocationProfile]:
        """Case-insensitive location lookup, falling back to substring match"""
        wanted = name.strip().lower()
        for location in self.locations:
            if location.name.strip().lower() == wanted:
                return location
        for location in self.locations:
            candidate = location.name.strip().lower()
            if candidate and (candidate in wanted or wanted in candidate):
                return location
        return None

    @classmethod
    def default(cls, title: str = "Untitled", genre: str = "drama", tone: str = "neutral") -> "VisualBible":
        """
        Conservative contract used when the creative response is unusable.

        Neutral palette, generic day/night lighting, no characters and no
        locations, so downstream stages can still proceed.
        """
        return cls(
            movie_identity=MovieIdentity(title=title, genre=genre, tone=tone),
            color_palette=ColorPalette(
                primary=ColorDefinition(name="Slate", hex="#2C3E50", usage="Main scenes"),
                secondary=ColorDefinition(name="Steel blue", hex="#3498DB", usage="Accent scenes"),
                accent=ColorDefinition(name="Signal red", hex="#E74C3C", usage="Highlights"),
                shadows=ColorDefinition(name="Near black", hex="#1A1A1A", usage="Dark areas"),
                highlights=ColorDefinition(name="Off white", hex="#ECF0F1", usage="Bright areas"),
            ),
            lighting_rules={
                "day_exterior": LightingRule(
                    type="natural daylight", direction="natural", intensity="bright",
                    shadows="soft", color_temperature="daylight 5600K"
                ),
                "night_exterior": LightingRule(
                    type="practical and moonlight", direction="artificial", intensity="low",
                    shadows="hard", color_temperature="warm 3200K"
                ),
            },
            camera_style=CameraStyle(
                default_lens="35mm",
                movement_style="smooth",
                typical_shots=["wide establishing shot", "medium shot for dialogue"],
            ),
            continuity_rules=ContinuityRules(
                absolute_rules=[
                    "Maintain consistent visual style",
                    "Preserve character appearances",
                ],
                visual_consistency=[
                    "Color grading must be consistent",
                    "Lighting should match time of day",
                ],
                audio_consistency=["Background sounds should match location"],
            ),
            sound_design=SoundDesignGuide(music_style="ambient"),
            is_fallback=True,
        )
