"""Video generation providers"""

from .runway import RunwayProvider, canonicalize_base_url

__all__ = ["RunwayProvider", "canonicalize_base_url"]
