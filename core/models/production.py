"""
Production plan and continuity chain models.

The continuity chain is an arena of entries linked by index: each entry
knows its previous and next neighbour and, when it continues the previous
scene, the scene number it continues from. Filtering or reordering scenes
never makes "continues_from" ambiguous.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class ReferenceFramePolicy(str, Enum):
    """Planned source for a scene's reference frame"""
    PREVIOUS_SCENE = "previous_scene"
    LOCATION_LIBRARY = "location_library"
    GENERATE = "generate"


@dataclass
class LibraryMatch:
    """A planned location or character resolved against the shared library"""
    name: str
    kind: str  # "location" or "character"
    description: str = ""
    found_in_library: bool = False
    library_id: Optional[str] = None
    times_used: int = 0
    needs_generation: bool = True
    needs_web_search: bool = False
    has_lora: bool = False


@dataclass
class ContinuityEntry:
    """Continuity plan entry for one scene"""
    scene_number: int
    is_continuation: bool
    continues_from: Optional[int] = None  # scene number, not position
    location_id: Optional[str] = None
    needs_reference_frame: bool = True
    reference_frame_source: ReferenceFramePolicy = ReferenceFramePolicy.GENERATE
    previous: Optional[int] = None  # arena index
    next: Optional[int] = None  # arena index


@dataclass
class ContinuityChain:
    """Singly-linked continuity plan stored as an arena of entries"""
    entries: List[ContinuityEntry] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        scenes: Iterable[Tuple[int, bool, Optional[str]]],
        library_locations: Optional[Dict[str, str]] = None
    ) -> "ContinuityChain":
        """
        Build the chain from (scene_number, is_continuation, location) tuples.

        Scenes are linked in scene-number order. The first scene can never be
        a continuation. library_locations maps lowercase location names to
        library ids and decides between the library and generate policies.
        """
        library_locations = library_locations or {}
        ordered = sorted(scenes, key=lambda item: item[0])
        entries: List[ContinuityEntry] = []

        for index, (scene_number, is_continuation, location) in enumerate(ordered):
            continuation = bool(is_continuation) and index > 0
            location_id = library_locations.get((location or "").strip().lower())

            if continuation:
                policy = ReferenceFramePolicy.PREVIOUS_SCENE
            elif location_id:
                policy = ReferenceFramePolicy.LOCATION_LIBRARY
            else:
                policy = ReferenceFramePolicy.GENERATE

            entries.append(ContinuityEntry(
                scene_number=scene_number,
                is_continuation=continuation,
                continues_from=ordered[index - 1][0] if continuation else None,
                location_id=location_id,
                needs_reference_frame=True,
                reference_frame_source=policy,
                previous=index - 1 if index > 0 else None,
                next=index + 1 if index < len(ordered) - 1 else None,
            ))

        return cls(entries=entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def entry_for(self, scene_number: int) -> Optional[ContinuityEntry]:
        for entry in self.entries:
            if entry.scene_number == scene_number:
                return entry
        return None

    def predecessor(self, scene_number: int) -> Optional[ContinuityEntry]:
        """The entry this scene continues from, or None if it starts fresh"""
        entry = self.entry_for(scene_number)
        if entry is None or entry.continues_from is None:
            return None
        return self.entry_for(entry.continues_from)

    def successor(self, scene_number: int) -> Optional[ContinuityEntry]:
        entry = self.entry_for(scene_number)
        if entry is None or entry.next is None:
            return None
        return self.entries[entry.next]

    def to_list(self) -> List[Dict[str, Any]]:
        result = []
        for entry in self.entries:
            data = asdict(entry)
            data["reference_frame_source"] = entry.reference_frame_source.value
            result.append(data)
        return result


@dataclass
class ProductionPlan:
    """Resource requirements derived from the brief"""
    locations: List[LibraryMatch] = field(default_factory=list)
    characters: List[LibraryMatch] = field(default_factory=list)
    scene_outline: List[Dict[str, Any]] = field(default_factory=list)
    continuity: ContinuityChain = field(default_factory=ContinuityChain)

    @property
    def reused(self) -> List[LibraryMatch]:
        return [m for m in self.locations + self.characters if m.found_in_library]

    @property
    def to_generate(self) -> List[LibraryMatch]:
        return [m for m in self.locations + self.characters if m.needs_generation]

    def summary(self) -> Dict[str, Any]:
        return {
            "locations_total": len(self.locations),
            "locations_from_library": sum(1 for m in self.locations if m.found_in_library),
            "characters_total": len(self.characters),
            "characters_from_library": sum(1 for m in self.characters if m.found_in_library),
            "characters_with_lora": sum(1 for m in self.characters if m.has_lora),
            "scenes_planned": len(self.scene_outline),
            "continuations": sum(1 for e in self.continuity if e.is_continuation),
        }
