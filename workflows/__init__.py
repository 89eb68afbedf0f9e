"""
Workflows Package - Production orchestration workflows

Contains the orchestration workflow that drives the pipeline agents
through one movie.
"""

from .orchestrator import MovieOrchestrator, ProductionResult

__all__ = [
    "MovieOrchestrator",
    "ProductionResult",
]
