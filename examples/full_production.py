"""
Full production example - brief to movie on mock providers

Set PROVIDER_MODE=live (and the API keys) to run against the real services.
"""
import asyncio
import os
from dotenv import load_dotenv
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_settings
from core.providers import create_providers
from workflows.orchestrator import MovieOrchestrator


async def main():
    load_dotenv()

    settings = get_settings()
    providers = create_providers(settings)

    brief = """
    A weary detective investigates a murder in a rain-soaked city.
    The trail runs from the crime scene on a downtown street to his
    cramped office and ends in the back room of a jazz club, where the
    singer who saw everything is waiting for him.
    """

    try:
        orchestrator = MovieOrchestrator(providers, settings=settings)
        result = await orchestrator.produce(
            title="Wet Streets",
            brief=brief,
            genre="noir",
            duration_minutes=1.0,
        )
    finally:
        await providers.close()

    print("\n" + "="*60)
    print("FINAL RESULTS")
    print("="*60)
    print(f"Movie: {result.movie_id}")
    print(f"Status: {result.status}")
    print(f"Assembly: {result.assembly_status}")
    print(f"Final video: {result.final_video_url}")

    print(f"\nScenes: {len(result.completed_scenes)}/{len(result.videos)} completed")
    for video in result.videos:
        status = "✅" if video.succeeded else "❌"
        source = video.reference_source.value if video.reference_source else "-"
        print(f"  {status} Scene {video.scene_number}: {source}")

    voiced = sum(1 for a in result.audio if not a.skipped)
    print(f"\nDialogue: {voiced}/{len(result.audio)} lines voiced")
    print("="*60)


if __name__ == "__main__":
    asyncio.run(main())
