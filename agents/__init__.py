"""Pipeline agent implementations"""

# Agents are imported lazily to keep `import agents` cheap for the CLI:
# - PlannerAgent (agents/planner.py)
# - ScreenwriterAgent (agents/screenwriter.py)
# - ReferenceResolver (agents/reference_resolver.py)
# - SceneVideoGeneratorAgent (agents/scene_video_generator.py)
# - DialogueAudioGeneratorAgent (agents/dialogue_audio_generator.py)
# - AssemblerAgent (agents/assembler.py)

__all__ = [
    "StudioAgent",
    "PlannerAgent",
    "ScreenwriterAgent",
    "ReferenceResolver",
    "SceneVideoGeneratorAgent",
    "DialogueAudioGeneratorAgent",
    "AssemblerAgent",
    "AGENT_REGISTRY",
    "get_all_agents",
    "get_agent_schema",
]

_LAZY = {
    "StudioAgent": ".base",
    "PlannerAgent": ".planner",
    "ScreenwriterAgent": ".screenwriter",
    "ReferenceResolver": ".reference_resolver",
    "SceneVideoGeneratorAgent": ".scene_video_generator",
    "DialogueAudioGeneratorAgent": ".dialogue_audio_generator",
    "AssemblerAgent": ".assembler",
}


def __getattr__(name):
    """Lazy imports to avoid circular dependencies"""
    if name in _LAZY:
        from importlib import import_module
        return getattr(import_module(_LAZY[name], __name__), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


# Agent Registry for CLI introspection
AGENT_REGISTRY = {
    "planner": {
        "name": "planner",
        "class": "PlannerAgent",
        "module": "agents.planner",
        "status": "implemented",
        "description": "Creates the Visual Bible and the production plan",
        "inputs": {
            "title": "str - Movie title",
            "brief": "str - Movie brief",
            "genre": "str - Genre",
            "duration_minutes": "float - Target runtime",
        },
        "outputs": "VisualBible, ProductionPlan",
    },
    "screenwriter": {
        "name": "screenwriter",
        "class": "ScreenwriterAgent",
        "module": "agents.screenwriter",
        "status": "implemented",
        "description": "Writes the detailed screenplay and audits wardrobe continuity",
        "inputs": {
            "brief": "str - Movie brief",
            "target_duration_minutes": "float - Target runtime",
            "visual_bible": "VisualBible - Style contract",
        },
        "outputs": "Screenplay - Ordered, fully specified scenes",
    },
    "reference_resolver": {
        "name": "reference_resolver",
        "class": "ReferenceResolver",
        "module": "agents.reference_resolver",
        "status": "implemented",
        "description": "Chooses each scene's reference frame (previous frame, cache, or generated)",
        "inputs": {
            "scene": "Scene - Screenplay scene",
            "is_continuation": "bool - Continues the previous scene",
            "previous_end_frame": "str - End frame of the previous scene",
        },
        "outputs": "ResolvedReference - URL and source",
    },
    "scene_video_generator": {
        "name": "scene_video_generator",
        "class": "SceneVideoGeneratorAgent",
        "module": "agents.scene_video_generator",
        "status": "implemented",
        "description": "Generates one scene's clip image-to-video and extracts its end frame",
        "inputs": {
            "scene": "Scene - Screenplay scene",
            "is_continuation": "bool - Continues the previous scene",
            "previous_end_frame": "str - End frame of the previous scene",
        },
        "outputs": "GeneratedVideo - Clip, end frame and status",
    },
    "dialogue_audio_generator": {
        "name": "dialogue_audio_generator",
        "class": "DialogueAudioGeneratorAgent",
        "module": "agents.dialogue_audio_generator",
        "status": "implemented",
        "description": "Voices every dialogue line, optionally lip-synced",
        "inputs": {
            "screenplay": "Screenplay - Dialogue source",
            "visual_bible": "VisualBible - Character genders and voices",
        },
        "outputs": "List[GeneratedAudio] - One record per line",
    },
    "assembler": {
        "name": "assembler",
        "class": "AssemblerAgent",
        "module": "agents.assembler",
        "status": "implemented",
        "description": "Joins completed scenes with transitions, degrading to the first scene",
        "inputs": {
            "videos": "List[GeneratedVideo] - Scene clips",
            "audio_tracks": "List[GeneratedAudio] - Voiced lines",
            "screenplay": "Screenplay - Declared transitions",
        },
        "outputs": "AssemblyResult - Final movie URL and assembly status",
    },
}


def get_all_agents():
    """
    Get all agents with their metadata.

    Returns:
        list: List of all agent metadata dicts
    """
    return list(AGENT_REGISTRY.values())


def get_agent_schema(name: str):
    """Metadata for one agent, or None if not found"""
    return AGENT_REGISTRY.get(name)
