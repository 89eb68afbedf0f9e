"""Abstract base classes for provider interfaces"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.errors import GenerationTimeoutError, ProviderError

logger = logging.getLogger(__name__)


class ProviderType(Enum):
    """Available video provider types"""
    MOCK = "mock"
    RUNWAY = "runway"


class JobStatus(str, Enum):
    """Normalised state of an asynchronous provider job"""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _mask_secret(value: Optional[str]) -> str:
    """Mask a secret value for safe display in logs/repr."""
    if value is None:
        return "None"
    if len(value) <= 8:
        return "'***'"
    return f"'{value[:4]}...{value[-4:]}'"


@dataclass
class ProviderConfig:
    """Configuration shared by all external services"""
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: int = 60  # seconds, per HTTP request
    poll_interval: float = 5.0  # seconds between status checks
    max_attempts: int = 120  # status checks before giving up
    extra_params: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        """Safe repr that masks API key to prevent accidental exposure in logs."""
        return (
            f"{type(self).__name__}(api_key={_mask_secret(self.api_key)}, "
            f"base_url={self.base_url!r}, timeout={self.timeout}, "
            f"poll_interval={self.poll_interval}, max_attempts={self.max_attempts})"
        )


@dataclass(repr=False)
class VideoProviderConfig(ProviderConfig):
    """Configuration for video provider"""
    provider_type: ProviderType = ProviderType.RUNWAY


@dataclass
class JobState:
    """One status check of an asynchronous job"""
    status: JobStatus
    output_url: Optional[str] = None
    error: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


async def read_json_object(response) -> Dict[str, Any]:
    """
    Decode a response body that must be a JSON object.

    Raises ValueError for malformed JSON and for any other JSON value
    (null, lists, strings), so callers map one exception to their own error.
    """
    try:
        data = await response.json()
    except ValueError as e:
        raise ValueError(f"malformed JSON body: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


async def poll_until_complete(
    check: Callable[[str], Awaitable[JobState]],
    task_id: str,
    poll_interval: float,
    max_attempts: int,
    provider: str
) -> JobState:
    """
    Poll a job until it reaches a terminal state.

    Makes at most max_attempts status checks, sleeping poll_interval between
    them.

    Returns:
        The succeeded JobState

    Raises:
        ProviderError: If the job failed
        GenerationTimeoutError: If the job is still pending after max_attempts checks
    """
    for attempt in range(1, max_attempts + 1):
        state = await check(task_id)

        if state.status == JobStatus.SUCCEEDED:
            logger.debug(f"{provider} task {task_id} succeeded after {attempt} checks")
            return state

        if state.status == JobStatus.FAILED:
            raise ProviderError(
                f"{provider} task {task_id} failed: {state.error or 'unknown error'}",
                provider=provider
            )

        if attempt < max_attempts:
            await asyncio.sleep(poll_interval)

    raise GenerationTimeoutError(
        f"{provider} task {task_id} did not finish after {max_attempts} checks "
        f"({max_attempts * poll_interval:.0f}s)",
        provider=provider,
        attempts=max_attempts
    )


@dataclass
class GenerationResult:
    """Result from video generation"""
    success: bool
    video_url: Optional[str] = None
    duration: Optional[float] = None
    cost: Optional[float] = None
    error_message: Optional[str] = None
    provider_metadata: Dict[str, Any] = field(default_factory=dict)


class VideoProvider(ABC):
    """
    Abstract base class for asynchronous image-to-video providers.

    Subclasses implement submit() and check_status(); generate_video() runs
    the shared submit-then-poll loop.
    """

    _is_stub = True

    def __init__(self, config: VideoProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier"""
        pass

    @abstractmethod
    async def submit(
        self,
        prompt: str,
        reference_image: Optional[str],
        duration: float,
        aspect_ratio: str = "16:9",
        **kwargs
    ) -> str:
        """
        Submit a generation job.

        Returns:
            Provider task id

        Raises:
            ProviderError: If the provider rejects the request
        """
        pass

    @abstractmethod
    async def check_status(self, task_id: str) -> JobState:
        """Check one job and map the provider status to a JobState"""
        pass

    @abstractmethod
    def estimate_cost(self, duration: float, **kwargs) -> float:
        """Estimated cost in USD for a clip of the given duration"""
        pass

    async def generate_video(
        self,
        prompt: str,
        reference_image: Optional[str],
        duration: float,
        aspect_ratio: str = "16:9",
        **kwargs
    ) -> GenerationResult:
        """
        Submit a job and wait for it to finish.

        Raises:
            ProviderError: On rejection, job failure, or a succeeded job with no output
            GenerationTimeoutError: If the attempt ceiling is reached
        """
        task_id = await self.submit(prompt, reference_image, duration, aspect_ratio, **kwargs)
        logger.info(f"{self.name} task {task_id} submitted")

        state = await poll_until_complete(
            self.check_status,
            task_id,
            poll_interval=self.config.poll_interval,
            max_attempts=self.config.max_attempts,
            provider=self.name
        )

        if not state.output_url:
            raise ProviderError(
                f"{self.name} task {task_id} succeeded without an output URL",
                provider=self.name
            )

        return GenerationResult(
            success=True,
            video_url=state.output_url,
            duration=duration,
            cost=self.estimate_cost(duration),
            provider_metadata={"task_id": task_id, "provider": self.name, **state.raw}
        )

    async def close(self):
        """Release network resources"""
        pass


@dataclass
class AudioGenerationResult:
    """Result from speech synthesis"""
    success: bool
    audio_data: Optional[bytes] = None  # Raw audio bytes
    audio_url: Optional[str] = None
    format: str = "mp3"
    content_type: str = "audio/mpeg"
    duration: Optional[float] = None
    error_message: Optional[str] = None
    provider_metadata: Dict[str, Any] = field(default_factory=dict)


class AudioProvider(ABC):
    """
    Abstract base class for voice synthesis providers.

    Implementations raise QuotaError when the account quota is exhausted so
    callers can skip the line instead of aborting.
    """

    _is_stub = True

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier"""
        pass

    @abstractmethod
    async def generate_speech(
        self,
        text: str,
        voice_id: str,
        stability: float = 0.5,
        similarity_boost: float = 0.75,
        style: float = 0.5,
        **kwargs
    ) -> AudioGenerationResult:
        """
        Synthesize speech.

        Raises:
            QuotaError: If the provider reports an exhausted quota
            ProviderError: On any other non-2xx response
        """
        pass


@dataclass
class ImageGenerationResult:
    """Result from image generation"""
    success: bool
    image_urls: List[str] = field(default_factory=list)
    width: int = 1280
    height: int = 768
    error_message: Optional[str] = None
    provider_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def image_url(self) -> Optional[str]:
        return self.image_urls[0] if self.image_urls else None


class ImageProvider(ABC):
    """Abstract base class for text-to-image providers"""

    _is_stub = True

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier"""
        pass

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        width: int = 1280,
        height: int = 768,
        count: int = 1,
        **kwargs
    ) -> ImageGenerationResult:
        """
        Generate images from a prompt.

        Raises:
            ProviderError: On a non-2xx response or an empty image list
        """
        pass


class LipSyncProvider(ABC):
    """Abstract base class for asynchronous lip-sync providers"""

    _is_stub = True

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def submit(self, video_url: str, audio_url: str, **kwargs) -> str:
        """Submit a lip-sync job and return its task id"""
        pass

    @abstractmethod
    async def check_status(self, task_id: str) -> JobState:
        pass

    async def sync(self, video_url: str, audio_url: str, **kwargs) -> str:
        """
        Composite audio onto video and wait for the result.

        Returns:
            URL of the lip-synced video
        """
        task_id = await self.submit(video_url, audio_url, **kwargs)
        state = await poll_until_complete(
            self.check_status,
            task_id,
            poll_interval=self.config.poll_interval,
            max_attempts=self.config.max_attempts,
            provider=self.name
        )
        if not state.output_url:
            raise ProviderError(f"{self.name} task {task_id} returned no output", provider=self.name)
        return state.output_url


@dataclass
class RenderResult:
    """Result from the render/assembly service"""
    success: bool
    video_url: Optional[str] = None
    duration_seconds: Optional[float] = None
    file_size_bytes: Optional[int] = None
    elapsed_seconds: Optional[float] = None
    error_message: Optional[str] = None


class RenderProvider(ABC):
    """Abstract base class for the external media assembly service"""

    _is_stub = True

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def health(self) -> bool:
        """True if the service is reachable"""
        pass

    @abstractmethod
    async def assemble(
        self,
        movie_id: str,
        scenes: List[Dict[str, Any]],
        transitions: Optional[List[Dict[str, Any]]] = None,
        audio: Optional[List[Dict[str, Any]]] = None,
        music_url: Optional[str] = None
    ) -> RenderResult:
        """
        Concatenate the ordered scenes into one movie.

        Raises:
            AssemblyError: On an error response, a timeout or an empty result
        """
        pass


@dataclass
class StorageProviderConfig:
    """Configuration for storage provider"""
    base_path: str = "./artifacts"
    public_base_url: Optional[str] = None
    bucket: Optional[str] = None
    extra_params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StorageResult:
    """Result from storage operation"""
    success: bool
    file_url: Optional[str] = None
    file_path: Optional[str] = None
    size_bytes: Optional[int] = None
    content_type: Optional[str] = None
    error_message: Optional[str] = None


class StorageProvider(ABC):
    """
    Abstract base class for the artifact store.

    The pipeline only needs put(bytes) -> public URL.
    """

    def __init__(self, config: StorageProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def put(self, data: bytes, remote_path: str, content_type: str) -> StorageResult:
        """Store bytes and return the public URL in the result"""
        pass

    @abstractmethod
    async def get_url(self, remote_path: str, **kwargs) -> str:
        """Public URL for a stored path"""
        pass
