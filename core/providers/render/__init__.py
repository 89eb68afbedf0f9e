"""Render/assembly service clients"""

from .assembly_server import AssemblyServerProvider

__all__ = ["AssemblyServerProvider"]
