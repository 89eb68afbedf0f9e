"""
Shared character/location library reused across movies.

The planner resolves every candidate from a brief against this library:
exact name first, then substring match. Hits bump a usage counter.
"""

import uuid
from dataclasses import dataclass, asdict, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.json_store import JsonFileStore


@dataclass
class LibraryAsset:
    """A reusable character or location"""
    id: str
    kind: str  # "character" or "location"
    name: str
    description: str = ""
    image_url: Optional[str] = None
    has_lora: bool = False
    times_used: int = 0
    tags: List[str] = field(default_factory=list)
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryAsset":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class AssetLibrary:
    """JSON-file backed asset library"""

    def __init__(self, path: str = "artifacts/library/assets.json"):
        self.store = JsonFileStore(path)

    def list_assets(self, kind: Optional[str] = None) -> List[LibraryAsset]:
        assets = [LibraryAsset.from_dict(r) for r in self.store.load()]
        if kind:
            assets = [a for a in assets if a.kind == kind]
        return assets

    async def find(self, kind: str, name: str) -> Optional[LibraryAsset]:
        """Exact (case-insensitive) name match, else the most-used substring match"""
        wanted = name.strip().lower()
        if not wanted:
            return None

        assets = self.list_assets(kind)
        for asset in assets:
            if asset.name.strip().lower() == wanted:
                return asset

        partial = [
            a for a in assets
            if a.name.strip() and (wanted in a.name.lower() or a.name.lower() in wanted)
        ]
        if not partial:
            return None
        return max(partial, key=lambda a: a.times_used)

    async def record_use(self, asset_id: str) -> Optional[LibraryAsset]:
        async with self.store.transaction() as records:
            for record in records:
                if record.get("id") == asset_id:
                    record["times_used"] = int(record.get("times_used", 0)) + 1
                    return LibraryAsset.from_dict(record)
        return None

    async def add(self, kind: str, name: str, description: str = "", **extra) -> LibraryAsset:
        asset = LibraryAsset(
            id=str(uuid.uuid4()),
            kind=kind,
            name=name,
            description=description,
            created_at=datetime.utcnow().isoformat(),
            **extra
        )
        async with self.store.transaction() as records:
            records.append(asset.to_dict())
        return asset
