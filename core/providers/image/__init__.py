"""Image generation providers"""

from .fal import FalImageProvider

__all__ = ["FalImageProvider"]
