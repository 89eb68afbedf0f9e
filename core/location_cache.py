"""
Location image cache - reusable reference frames shared across movies.

Entries are keyed by (location slug, time of day, weather). Lookups that hit
increment the usage counter; misses are filled by an idempotent upsert on the
same key, so two movies populating the same key concurrently can at worst
duplicate a generation, never corrupt an entry.
"""

import re
import unicodedata
import uuid
from dataclasses import dataclass, asdict, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.json_store import JsonFileStore


def location_slug(name: str) -> str:
    """
    Stable cache slug for a location name.

    Accents are stripped, everything else non-alphanumeric becomes '-',
    and the result is capped at 100 characters.
    """
    normalized = unicodedata.normalize("NFD", name or "")
    ascii_only = "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_only.lower()).strip("-")
    return slug[:100]


@dataclass
class LocationImageEntry:
    """A cached reference image for one location look"""
    id: str
    location_name: str
    location_slug: str
    time_of_day: str
    weather: str
    image_url: str
    generation_prompt: str = ""
    width: int = 1280
    height: int = 768
    times_used: int = 1
    created_by_movie_id: Optional[str] = None
    created_at: str = ""
    last_used_at: str = ""

    @property
    def key(self):
        return (self.location_slug, self.time_of_day, self.weather)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocationImageEntry":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class LocationImageCache:
    """JSON-file backed location image cache"""

    def __init__(self, path: str = "artifacts/cache/location_images.json"):
        self.store = JsonFileStore(path)

    def list_entries(self) -> List[LocationImageEntry]:
        return [LocationImageEntry.from_dict(r) for r in self.store.load()]

    async def find_exact(self, slug: str, time_of_day: str, weather: str) -> Optional[LocationImageEntry]:
        """Entry for exactly (slug, time_of_day, weather), without touching usage"""
        for entry in self.list_entries():
            if entry.key == (slug, time_of_day, weather):
                return entry
        return None

    async def find_fuzzy(self, name: str, time_of_day: str) -> Optional[LocationImageEntry]:
        """
        Most-used entry whose name overlaps the requested name, same time of day.

        Weather is ignored: a rainy street is a better reference than none.
        """
        wanted = location_slug(name)
        if not wanted:
            return None

        candidates = [
            entry for entry in self.list_entries()
            if entry.time_of_day == time_of_day
            and (wanted in entry.location_slug or entry.location_slug in wanted)
            and entry.location_slug
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda e: e.times_used)

    async def record_hit(self, entry_id: str) -> Optional[LocationImageEntry]:
        """Increment the usage counter of an entry and return the updated entry"""
        async with self.store.transaction() as records:
            for record in records:
                if record.get("id") == entry_id:
                    record["times_used"] = int(record.get("times_used", 0)) + 1
                    record["last_used_at"] = datetime.utcnow().isoformat()
                    return LocationImageEntry.from_dict(record)
        return None

    async def upsert(
        self,
        location_name: str,
        time_of_day: str,
        weather: str,
        image_url: str,
        generation_prompt: str = "",
        movie_id: Optional[str] = None,
        width: int = 1280,
        height: int = 768
    ) -> LocationImageEntry:
        """
        Insert or update the entry for (slug, time_of_day, weather).

        Repeating the same upsert leaves exactly one entry for the key.
        """
        slug = location_slug(location_name)
        now = datetime.utcnow().isoformat()

        async with self.store.transaction() as records:
            for record in records:
                if (record.get("location_slug"), record.get("time_of_day"), record.get("weather")) == (slug, time_of_day, weather):
                    record.update({
                        "location_name": location_name,
                        "image_url": image_url,
                        "generation_prompt": generation_prompt,
                        "width": width,
                        "height": height,
                        "times_used": max(int(record.get("times_used", 0)), 1),
                        "last_used_at": now,
                    })
                    return LocationImageEntry.from_dict(record)

            entry = LocationImageEntry(
                id=str(uuid.uuid4()),
                location_name=location_name,
                location_slug=slug,
                time_of_day=time_of_day,
                weather=weather,
                image_url=image_url,
                generation_prompt=generation_prompt,
                width=width,
                height=height,
                times_used=1,
                created_by_movie_id=movie_id,
                created_at=now,
                last_used_at=now,
            )
            records.append(entry.to_dict())
            return entry
