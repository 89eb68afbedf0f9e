"""
Reference-image resolver - picks the starting frame of every scene.

Priority is strict: the previous scene's end frame when the scene is a
continuation, then the location image cache (exact key, then fuzzy name),
then a newly generated location still that is written back to the cache.
Every scene is generated image-to-video, so no frame means no scene.
"""

import json
import logging
import re
from typing import Optional

from core.errors import ProviderError, ResolutionError
from core.frames import is_usable_frame
from core.location_cache import LocationImageCache, location_slug
from core.models.generation import ReferenceSource, ResolvedReference
from core.models.screenplay import Scene
from core.models.visual_bible import VisualBible
from core.providers.base import ImageProvider

logger = logging.getLogger(__name__)

IMAGE_WIDTH = 1280
IMAGE_HEIGHT = 768

TIME_DESCRIPTIONS = {
    "day": "bright daylight, midday sun",
    "night": "nighttime, city lights, dark sky with stars",
    "sunset": "golden hour, orange and pink sky, warm light",
    "sunrise": "early morning, soft pink and blue sky, dawn light",
    "golden_hour": "golden hour lighting, warm tones, long shadows",
}

WEATHER_DESCRIPTIONS = {
    "clear": "clear sky",
    "cloudy": "overcast sky, soft diffused light",
    "rainy": "rainy weather, wet surfaces, reflections",
    "foggy": "foggy atmosphere, misty, atmospheric",
}


def extract_time_of_day(scene: Scene) -> str:
    """Normalise the scene header time to a cache time-of-day key"""
    time = f"{scene.header.time} {scene.header.time_specific}".lower()
    if "night" in time or "noche" in time:
        return "night"
    if "sunset" in time or "dusk" in time or "atardecer" in time:
        return "sunset"
    if "sunrise" in time or "dawn" in time or "amanecer" in time:
        return "sunrise"
    if "golden" in time or "dorada" in time:
        return "golden_hour"
    return "day"


_RAIN = re.compile(r"\b(rain(?!bow)\w*|lluvi\w*)")
_FOG = re.compile(r"\b(fog\w*|mist|mists|misty|niebla)\b")
_CLOUD = re.compile(r"\b(cloud\w*|overcast|nublad\w*)")


def detect_weather(scene: Scene) -> str:
    """Weather key from any whole word the scene mentions"""
    text = json.dumps(scene.model_dump(mode="json"), ensure_ascii=False).lower()
    if _RAIN.search(text):
        return "rainy"
    if _FOG.search(text):
        return "foggy"
    if _CLOUD.search(text):
        return "cloudy"
    return "clear"



def build_location_prompt(
    scene: Scene,
    location_name: str,
    time_of_day: str,
    weather: str,
    bible: Optional[VisualBible] = None
) -> str:
    """Establishing-shot prompt for an empty location (never people)"""
    parts = ["Cinematic establishing shot, professional photography, 4K quality"]

    if bible is not None and bible.movie_identity.visual_style:
        parts.append(bible.movie_identity.visual_style)

    parts.append(location_name)

    profile = bible.get_location(location_name) if bible is not None else None
    if profile is not None:
        detail = profile.location_prompt or profile.description
        if detail:
            parts.append(detail[:200])

    parts.append(TIME_DESCRIPTIONS.get(time_of_day, TIME_DESCRIPTIONS["day"]))
    parts.append(WEATHER_DESCRIPTIONS.get(weather, WEATHER_DESCRIPTIONS["clear"]))

    if scene.visual_direction.establishing_shot:
        parts.append(scene.visual_direction.establishing_shot[:200])

    parts.append("wide shot, empty scene without people, cinematic composition")
    parts.append("16:9 aspect ratio, film grain, movie still")
    parts.append("establishing shot for movie scene")
    parts.append("no people, no characters, no text, no watermark")
    return ", ".join(parts)


class ReferenceResolver:
    """Resolves one reference frame per scene"""

    def __init__(
        self,
        image_provider: ImageProvider,
        cache: Optional[LocationImageCache] = None,
        bible: Optional[VisualBible] = None
    ):
        self.image_provider = image_provider
        self.cache = cache or LocationImageCache()
        self.bible = bible

    async def resolve(
        self,
        scene: Scene,
        is_continuation: bool,
        previous_end_frame: Optional[str],
        movie_id: Optional[str] = None
    ) -> ResolvedReference:
        """
        Return a usable reference frame for the scene.

        Raises:
            ResolutionError: when no frame could be found or generated
        """
        if is_continuation and is_usable_frame(previous_end_frame):
            logger.info(f"Scene {scene.scene_number}: continuing from previous end frame")
            return ResolvedReference(url=previous_end_frame, source=ReferenceSource.PREVIOUS_FRAME)

        location_name = scene.location.strip() or "unknown location"
        slug = location_slug(location_name)
        time_of_day = extract_time_of_day(scene)
        weather = detect_weather(scene)
        logger.debug(f"Scene {scene.scene_number}: looking up '{location_name}' at {time_of_day}, {weather}")

        entry = await self.cache.find_exact(slug, time_of_day, weather)
        if entry is None:
            entry = await self.cache.find_fuzzy(location_name, time_of_day)

        if entry is not None and entry.image_url:
            await self.cache.record_hit(entry.id)
            logger.info(f"Scene {scene.scene_number}: reusing cached '{entry.location_name}' ({entry.time_of_day}, {entry.weather})")
            return ResolvedReference(
                url=entry.image_url,
                source=ReferenceSource.LIBRARY,
                cache_entry_id=entry.id,
                location_slug=entry.location_slug,
                time_of_day=entry.time_of_day,
                weather=entry.weather,
            )

        prompt = build_location_prompt(scene, location_name, time_of_day, weather, self.bible)
        try:
            result = await self.image_provider.generate_image(
                prompt, width=IMAGE_WIDTH, height=IMAGE_HEIGHT, count=1
            )
        except ProviderError as e:
            raise ResolutionError(
                f"Could not generate a reference frame for '{location_name}': {e}",
                scene_number=scene.scene_number
            ) from e

        url = result.image_url
        if not url:
            raise ResolutionError(
                f"Image service returned no URL for '{location_name}'",
                scene_number=scene.scene_number
            )

        cache_entry_id = None
        try:
            saved = await self.cache.upsert(
                location_name,
                time_of_day,
                weather,
                url,
                generation_prompt=prompt,
                movie_id=movie_id,
                width=IMAGE_WIDTH,
                height=IMAGE_HEIGHT,
            )
            cache_entry_id = saved.id
        except OSError as e:
            logger.warning(f"Scene {scene.scene_number}: could not save location image to cache: {e}")

        logger.info(f"Scene {scene.scene_number}: generated reference frame for '{location_name}'")
        return ResolvedReference(
            url=url,
            source=ReferenceSource.GENERATED,
            cache_entry_id=cache_entry_id,
            location_slug=slug,
            time_of_day=time_of_day,
            weather=weather,
        )
