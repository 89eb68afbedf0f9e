"""Color themes for CLI output"""

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Theme:
    """Rich styles used by the CLI tables and panels"""

    header: str = "bold blue"
    panel_border: str = "blue"
    label: str = "cyan"
    dimmed: str = "dim"
    highlight: str = "bold yellow"

    # Outcomes
    success: str = "bold green"
    degraded: str = "yellow"
    error: str = "bold red"
    skipped: str = "dim yellow"

    # Where a scene's reference frame came from
    previous_frame: str = "magenta"
    library: str = "green"
    generated: str = "cyan"

    def for_source(self, source: Optional[str]) -> str:
        """Style for a reference source value ("previous_frame", "library", "generated")"""
        if source in ("previous_frame", "library", "generated"):
            return getattr(self, source)
        return self.dimmed

    def for_status(self, status: Optional[str]) -> str:
        """Style for a movie, scene or assembly status"""
        if status == "completed":
            return self.success
        if status in ("failed_real_assembly", "no_scenes"):
            return self.degraded
        if status == "skipped":
            return self.skipped
        return self.error


THEMES = {
    "default": Theme(),

    "noir": Theme(
        header="bold white",
        panel_border="dim white",
        label="bold white",
        highlight="bold red",
        previous_frame="white",
        library="bright_white",
        generated="dim white",
    ),

    "neon": Theme(
        header="bold magenta",
        panel_border="magenta",
        label="bright_cyan",
        highlight="bold bright_magenta",
        previous_frame="bright_magenta",
        library="bright_green",
        generated="bright_cyan",
    ),

    "mono": Theme(
        header="bold white",
        panel_border="white",
        label="bold white",
        dimmed="dim white",
        highlight="bold white",
        success="bold white",
        degraded="white",
        error="bold white",
        skipped="dim white",
        previous_frame="white",
        library="white",
        generated="white",
    ),
}

_current_theme: Theme = THEMES["default"]


def get_theme() -> Theme:
    return _current_theme


def set_theme(name: str) -> None:
    """Activate a preset by name"""
    global _current_theme
    if name not in THEMES:
        raise ValueError(f"Unknown theme: {name}. Available: {list(THEMES.keys())}")
    _current_theme = THEMES[name]


def list_themes() -> List[str]:
    return list(THEMES.keys())


def get_default_theme_name() -> str:
    """Theme from CONTINUITY_STUDIO_THEME, else 'default'"""
    return os.getenv("CONTINUITY_STUDIO_THEME", "default")
