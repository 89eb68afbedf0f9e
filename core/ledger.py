"""
Movie ledger - the progress and metadata sink for pipeline runs.

A key-value record per movie: status, overall progress, per-step progress,
per-scene records and free-form metadata. Updates are last-writer-wins;
overall progress never moves backwards.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from core.json_store import JsonFileStore

logger = logging.getLogger(__name__)


class MovieState(str, Enum):
    """Pipeline state of one movie"""
    PLANNING = "planning"
    SCREENWRITING = "screenwriting"
    SCENE_GENERATION = "scene_generation"
    AUDIO_GENERATION = "audio_generation"
    ASSEMBLING = "assembling"
    DONE = "completed"
    FAILED = "failed"


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


# Share of overall progress owned by each step (sums to 100)
STEP_WEIGHTS = {
    "plan_production": 5,
    "create_visual_bible": 5,
    "generate_screenplay": 10,
    "generate_videos": 50,
    "generate_audio": 15,
    "assemble_movie": 12,
    "generate_cover": 3,
}


def compute_overall_progress(steps: Dict[str, Dict[str, Any]]) -> float:
    """Weighted sum of step progress; finished steps count in full"""
    total = 0.0
    for name, weight in STEP_WEIGHTS.items():
        step = steps.get(name) or {}
        status = step.get("status")
        if status in (StepStatus.COMPLETED.value, StepStatus.SKIPPED.value, StepStatus.FAILED.value):
            total += weight
        elif status == StepStatus.RUNNING.value:
            total += max(0.0, min(100.0, float(step.get("progress", 0)))) / 100 * weight
    return round(max(0.0, min(100.0, total)), 1)


class MovieLedger:
    """JSON-file backed movie ledger"""

    def __init__(self, path: str = "artifacts/ledger/movies.json"):
        self.store = JsonFileStore(path)

    def get(self, movie_id: str) -> Optional[Dict[str, Any]]:
        for record in self.store.load():
            if record.get("movie_id") == movie_id:
                return record
        return None

    def list_movies(self) -> List[Dict[str, Any]]:
        return self.store.load()

    @staticmethod
    def _find(records: List[Dict[str, Any]], movie_id: str) -> Dict[str, Any]:
        for record in records:
            if record.get("movie_id") == movie_id:
                return record
        raise KeyError(f"Unknown movie: {movie_id}")

    async def create(self, movie_id: str, **fields) -> Dict[str, Any]:
        now = datetime.utcnow().isoformat()
        record = {
            "movie_id": movie_id,
            "status": MovieState.PLANNING.value,
            "progress": 0.0,
            "steps": {},
            "scenes": {},
            "metadata": {},
            "created_at": now,
            "updated_at": now,
            **fields,
        }
        async with self.store.transaction() as records:
            records[:] = [r for r in records if r.get("movie_id") != movie_id]
            records.append(record)
        return record

    async def update(
        self,
        movie_id: str,
        status: Optional[MovieState] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **fields
    ) -> Dict[str, Any]:
        """Set status and/or merge metadata and top-level fields"""
        async with self.store.transaction() as records:
            record = self._find(records, movie_id)
            if status is not None:
                record["status"] = MovieState(status).value
            if metadata:
                record.setdefault("metadata", {}).update(metadata)
            record.update(fields)
            record["updated_at"] = datetime.utcnow().isoformat()
            return record

    async def update_step(
        self,
        movie_id: str,
        step: str,
        status: StepStatus,
        progress: float = 0.0,
        detail: str = ""
    ) -> float:
        """
        Record one step's progress and recompute overall progress.

        Returns the overall progress after the update.
        """
        logger.info(f"[{movie_id}] {step}: {StepStatus(status).value} ({progress:.0f}%) {detail}".rstrip())

        async with self.store.transaction() as records:
            record = self._find(records, movie_id)
            steps = record.setdefault("steps", {})
            steps[step] = {
                "status": StepStatus(status).value,
                "progress": max(0.0, min(100.0, progress)),
                "detail": detail,
                "updated_at": datetime.utcnow().isoformat(),
            }
            overall = max(float(record.get("progress", 0.0)), compute_overall_progress(steps))
            record["progress"] = overall
            record["updated_at"] = datetime.utcnow().isoformat()
            return overall

    async def update_scene(self, movie_id: str, scene_number: int, **fields) -> Dict[str, Any]:
        """Merge fields into the record of one scene"""
        async with self.store.transaction() as records:
            record = self._find(records, movie_id)
            scenes = record.setdefault("scenes", {})
            scene = scenes.setdefault(str(scene_number), {"scene_number": scene_number})
            scene.update(fields)
            scene["updated_at"] = datetime.utcnow().isoformat()
            record["updated_at"] = scene["updated_at"]
            return dict(scene)
