"""
Generation run orchestration.

A run turns N source screenshots into N (or 2N with A/B testing) assets.
Jobs execute strictly one after another; results are buffered and committed
to the asset store in a single update only when every job succeeded.
"""

import asyncio
import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from config import Settings, get_settings
from schemas.asset import GeneratedAsset, new_asset_id, now_ms
from schemas.mockup import ContentFit, MockupSettings, Variant, coerce_enum
from services.asset_store import AssetStore
from services.errors import (
    MissingSourceError,
    RunCancelled,
    RunInProgressError,
)
from services.gemini import get_genai_client
from services.image_validation import SourceImage, encode_source, extension_for_image_mime_type
from services.mockup_generator import GeneratedImage, MockupImageGenerator
from services.reconciler import settings_for_replacement, settings_from_asset, variant_for_asset
from services.seo_metadata import MetadataOverrides, SeoMetadata, generate_seo_metadata
from services.storage import StorageBackend

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], Awaitable[None]]

DEFAULT_SEO_TAGLINE = "App Showcase"
VARIANT_B_TITLE_SUFFIX = "-Variant-B"
CONVERSION_SCORE_MIN = 80
CONVERSION_SCORE_MAX = 97


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationJob:
    index: int
    source: SourceImage
    variant: Variant


@dataclass
class RunStatus:
    state: RunState
    run_id: Optional[str] = None
    progress_label: str = ""
    completed_jobs: int = 0
    total_jobs: int = 0
    error: Optional[str] = None
    asset_ids: List[str] = field(default_factory=list)


def plan_jobs(sources: Sequence[SourceImage], settings: MockupSettings) -> List[GenerationJob]:
    """One job per source and variant, in source order."""
    variants = [Variant.A, Variant.B] if settings.enable_ab_testing else [Variant.A]
    return [
        GenerationJob(index=index, source=source, variant=variant)
        for index, source in enumerate(sources)
        for variant in variants
    ]


def progress_label(job: GenerationJob, total_sources: int, ab_testing: bool) -> str:
    subject = f"Variant {job.variant.value}" if ab_testing else "Mockup"
    return f"Generating {subject} for image {job.index + 1}/{total_sources}..."


def strategy_from_custom_prompt(custom_prompt: Optional[str]) -> Optional[str]:
    if custom_prompt is None:
        return None
    return custom_prompt.replace("Visual Strategy: ", "")


class GenerationOrchestrator:
    """Owns the run state machine and the asset-level workflows."""

    def __init__(
        self,
        store: AssetStore,
        storage: StorageBackend,
        *,
        client_factory: Callable[[], object] = get_genai_client,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self._storage = storage
        self._client_factory = client_factory
        self._settings = settings or get_settings()
        self._rng = rng or random.Random()

        self._state = RunState.IDLE
        self._run_id: Optional[str] = None
        self._progress = ""
        self._completed_jobs = 0
        self._total_jobs = 0
        self._error: Optional[str] = None
        self._asset_ids: List[str] = []
        self._cancel_event: Optional[asyncio.Event] = None
        self._claimed = False
        self._regenerating_ids: set[str] = set()

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == RunState.RUNNING

    def status(self) -> RunStatus:
        return RunStatus(
            state=self._state,
            run_id=self._run_id,
            progress_label=self._progress,
            completed_jobs=self._completed_jobs,
            total_jobs=self._total_jobs,
            error=self._error,
            asset_ids=list(self._asset_ids),
        )

    def begin_run(self, label: str = "Initializing...") -> str:
        """
        Claim the Running state synchronously.

        Routes call this before scheduling background work so a second
        request is refused immediately.
        """
        if self._state == RunState.RUNNING:
            raise RunInProgressError("A generation run is already in progress")
        self._run_id = uuid.uuid4().hex
        self._state = RunState.RUNNING
        self._progress = label
        self._completed_jobs = 0
        self._total_jobs = 0
        self._error = None
        self._asset_ids = []
        self._cancel_event = asyncio.Event()
        self._claimed = True
        return self._run_id

    def cancel(self) -> bool:
        """Request cancellation; observed between jobs and between retry attempts."""
        if self._state != RunState.RUNNING or self._cancel_event is None:
            return False
        self._cancel_event.set()
        logger.info("Cancellation requested for run %s", self._run_id)
        return True

    def _start(self, label: str, *, reuse_claim: bool = False) -> asyncio.Event:
        if reuse_claim and self._claimed and self._state == RunState.RUNNING:
            self._claimed = False
            self._progress = label
        else:
            self.begin_run(label)
            self._claimed = False
        return self._cancel_event  # type: ignore[return-value]

    def _fail(self, error: BaseException) -> None:
        self._state = RunState.FAILED
        self._error = str(error) or error.__class__.__name__
        self._progress = ""

    def _check_cancelled(self, cancel_event: asyncio.Event) -> None:
        if cancel_event.is_set():
            raise RunCancelled("Generation cancelled")

    async def _report(self, label: str, callback: Optional[ProgressCallback]) -> None:
        self._progress = label
        if callback is not None:
            await callback(label)

    def _conversion_score(self) -> int:
        return self._rng.randint(CONVERSION_SCORE_MIN, CONVERSION_SCORE_MAX)

    async def _store_image(self, asset_id: str, image: GeneratedImage) -> str:
        extension = extension_for_image_mime_type(image.mime_type) or ".png"
        return await self._storage.upload_bytes(
            image.data, f"generated/{asset_id}{extension}", image.mime_type
        )

    async def _discard_images(self, urls: Sequence[str]) -> None:
        """Delete images that will never be referenced by a committed asset."""
        for url in urls:
            try:
                await self._storage.delete_bytes(url)
            except (OSError, ValueError) as e:
                logger.warning("Could not delete orphaned image %s: %s", url, e)

    def _metadata_kwargs(self, cancel_event: Optional[asyncio.Event]) -> dict:
        return {
            "model": self._settings.GEMINI_TEXT_MODEL,
            "max_attempts": self._settings.RETRY_MAX_ATTEMPTS,
            "initial_delay_ms": self._settings.RETRY_INITIAL_DELAY_MS,
            "cancel_event": cancel_event,
        }

    def _assemble_asset(
        self,
        asset_id: str,
        url: str,
        image: GeneratedImage,
        job: GenerationJob,
        settings: MockupSettings,
        metadata: SeoMetadata,
    ) -> GeneratedAsset:
        seo_title = metadata.seo_title
        if job.variant == Variant.B:
            seo_title = f"{seo_title}{VARIANT_B_TITLE_SUFFIX}"

        return GeneratedAsset(
            id=asset_id,
            timestamp=now_ms(),
            url=url,
            image_mime_type=image.mime_type,
            original_base64=encode_source(job.source),
            original_mime_type=job.source.mime_type,
            device_type=settings.device_type,
            background_style=settings.background_style,
            lighting=settings.lighting,
            angle=settings.angle,
            color_mood=settings.color_mood,
            content_fit=settings.content_fit,
            description=settings.description,
            custom_prompt=settings.custom_prompt,
            custom_background_prompt=settings.custom_background_prompt,
            tagline=settings.marketing_tagline,
            strategy=strategy_from_custom_prompt(settings.custom_prompt),
            app_category=settings.detected_app_category or "General",
            target_audience=settings.detected_audience or "General",
            dominant_colors=list(settings.detected_colors),
            suggested_props=list(settings.suggested_props),
            prompt=f"{settings.device_type.value} | {settings.background_style.value}",
            seo_title=seo_title,
            seo_keywords=metadata.seo_keywords,
            social_caption=metadata.social_caption,
            alt_text=metadata.alt_text,
            conversion_score=self._conversion_score(),
            variant_label=f"Variant {job.variant.value}" if settings.enable_ab_testing else None,
            metadata_degraded=metadata.degraded,
        )

    async def run(
        self,
        sources: Sequence[SourceImage],
        settings: MockupSettings,
        *,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[GeneratedAsset]:
        """
        Execute a full run and commit its assets.

        On any failure the run is marked failed, nothing is committed and the
        error is re-raised to the caller.
        """
        cancel_event = self._start("Initializing...", reuse_claim=True)
        started = time.monotonic()
        written: List[str] = []
        try:
            if not sources:
                raise MissingSourceError("Please upload at least one screenshot.")
            client = self._client_factory()
            generator = MockupImageGenerator(client, self._settings)

            jobs = plan_jobs(sources, settings)
            self._total_jobs = len(jobs)
            overrides = MetadataOverrides(
                title=settings.target_seo_title, caption=settings.target_social_caption
            )
            tagline = settings.marketing_tagline or DEFAULT_SEO_TAGLINE

            buffer: List[GeneratedAsset] = []
            for job in jobs:
                self._check_cancelled(cancel_event)
                await self._report(
                    progress_label(job, len(sources), settings.enable_ab_testing),
                    progress_callback,
                )

                image = await generator.generate(
                    job.source.data,
                    job.source.mime_type,
                    settings,
                    job.variant,
                    cancel_event=cancel_event,
                )
                asset_id = new_asset_id()
                url = await self._store_image(asset_id, image)
                written.append(url)
                metadata = await generate_seo_metadata(
                    client,
                    settings,
                    tagline,
                    overrides,
                    **self._metadata_kwargs(cancel_event),
                )
                buffer.append(
                    self._assemble_asset(asset_id, url, image, job, settings, metadata)
                )
                self._completed_jobs += 1

            self._check_cancelled(cancel_event)
        except Exception as e:
            self._fail(e)
            logger.warning("Run %s failed after %d jobs: %s", self._run_id, self._completed_jobs, e)
            await self._discard_images(written)
            raise

        self._store.prepend_many(buffer)
        self._asset_ids = [asset.id for asset in buffer]
        self._state = RunState.COMPLETED
        self._progress = ""
        logger.info(
            "Run %s completed: %d assets in %.1fs",
            self._run_id,
            len(buffer),
            time.monotonic() - started,
        )
        return buffer

    async def replace_screen_content(
        self,
        asset_id: str,
        source: SourceImage,
        content_fit: Optional[ContentFit] = None,
    ) -> GeneratedAsset:
        """
        Regenerate an asset's image from a new screenshot.

        Metadata is kept; the image, timestamp, content fit and source payload
        are replaced. Shares the Running guard with full runs.
        """
        cancel_event = self._start("Replacing screen content...")
        self._total_jobs = 1
        url: Optional[str] = None
        try:
            asset = self._store.get(asset_id)
            fit = coerce_enum(
                ContentFit,
                content_fit,
                coerce_enum(ContentFit, asset.content_fit, ContentFit.COVER),
            )
            settings = settings_for_replacement(asset, fit)
            client = self._client_factory()
            image = await MockupImageGenerator(client, self._settings).generate(
                source.data,
                source.mime_type,
                settings,
                variant_for_asset(asset),
                cancel_event=cancel_event,
            )
            url = await self._store_image(new_asset_id(), image)
            updated = self._store.update(
                asset_id,
                url=url,
                image_mime_type=image.mime_type,
                timestamp=now_ms(),
                content_fit=fit,
                original_base64=encode_source(source),
                original_mime_type=source.mime_type,
            )
        except Exception as e:
            self._fail(e)
            logger.warning("Replacing content of asset %s failed: %s", asset_id, e)
            if url is not None:
                await self._discard_images([url])
            raise

        if asset.url != url:
            await self._discard_images([asset.url])
        self._completed_jobs = 1
        self._asset_ids = [updated.id]
        self._state = RunState.COMPLETED
        self._progress = ""
        return updated

    async def regenerate_metadata(self, asset_id: str) -> GeneratedAsset:
        """
        Regenerate SEO metadata for one asset without touching its image.

        A second request for the same asset while one is in flight is refused.
        """
        asset = self._store.get(asset_id)
        if asset_id in self._regenerating_ids:
            raise RunInProgressError(f"Metadata regeneration already running for {asset_id}")
        self._regenerating_ids.add(asset_id)
        try:
            settings = settings_from_asset(asset)
            client = self._client_factory()
            metadata = await generate_seo_metadata(
                client,
                settings,
                settings.marketing_tagline or DEFAULT_SEO_TAGLINE,
                None,
                **self._metadata_kwargs(None),
            )
            return self._store.update(
                asset_id,
                seo_title=metadata.seo_title,
                seo_keywords=metadata.seo_keywords,
                social_caption=metadata.social_caption,
                alt_text=metadata.alt_text,
                metadata_degraded=metadata.degraded,
            )
        except Exception:
            if self._store.find(asset_id) is not None:
                self._store.update(asset_id, metadata_degraded=True)
            raise
        finally:
            self._regenerating_ids.discard(asset_id)


_orchestrator: Optional[GenerationOrchestrator] = None


def get_orchestrator() -> GenerationOrchestrator:
    """Get the process-wide orchestrator bound to the shared store and storage."""
    global _orchestrator
    if _orchestrator is None:
        from services.asset_store import get_asset_store
        from services.storage import get_storage

        _orchestrator = GenerationOrchestrator(get_asset_store(), get_storage())
    return _orchestrator
