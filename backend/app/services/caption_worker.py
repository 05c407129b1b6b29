"""
Batch caption worker.

Drains up to `limit` captions in "processing" status through the vision
provider with a fixed-size pool of `concurrency` workers, then resolves
each caption to "completed" (AI text stored) or "rejected" (provider
error stored as rejection_reason).

Pool semantics:
- Jobs are dequeued in FIFO order from one shared queue
- Completion order is not guaranteed; results are keyed by caption_id
- A failing job never cancels or corrupts the others
- No overall timeout: every dequeued job runs to completion

Provider calls run concurrently; database writes happen afterwards, one
row per result, because a single AsyncSession must not be shared across
concurrent tasks.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai.base import CaptionRequest, VisionCaptionProvider
from app.models.base import utcnow
from app.models.caption import Caption, CaptionStatus
from app.models.media_asset import MediaAsset
from app.models.prompt_template import (
    PromptTemplate,
    DEFAULT_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
)
from app.utils.logging import (
    log_caption_job_completed,
    log_caption_job_failed,
    log_caption_batch_completed,
)
from app.utils.metrics import caption_jobs_total, caption_job_duration_seconds

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert image analyst. Describe the image in detail, focusing on the main "
    "subject, composition, colors, and any notable elements."
)
DEFAULT_USER_PROMPT = "Please describe this image in detail."

GENERIC_FAILURE_REASON = "Caption generation failed"
UNKNOWN_ERROR = "Unknown error"


@dataclass
class CaptionJob:
    caption_id: int
    image_url: str
    system_prompt: str
    user_prompt: str
    model: str
    max_tokens: int
    temperature: float  # already scaled to 0.0 - 1.0


@dataclass
class CaptionJobResult:
    caption_id: int
    success: bool
    caption: Optional[str] = None
    model: Optional[str] = None
    tokens_used: Optional[int] = None
    confidence: Optional[int] = None
    error: Optional[str] = None


@dataclass
class BatchResult:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": list(self.errors),
        }


async def run_caption_jobs(
    jobs: List[CaptionJob],
    provider: VisionCaptionProvider,
    concurrency: int = 3,
) -> List[CaptionJobResult]:
    """
    Run jobs through `concurrency` workers pulling from one FIFO queue.

    Returns one result per job, in completion order.
    """
    queue: asyncio.Queue = asyncio.Queue()
    for job in jobs:
        queue.put_nowait(job)

    results: List[CaptionJobResult] = []

    async def worker() -> None:
        while True:
            try:
                job = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            start_time = time.time()
            try:
                generated = await provider.generate_caption(CaptionRequest(
                    image_url=job.image_url,
                    system_prompt=job.system_prompt,
                    user_prompt=job.user_prompt,
                    model=job.model,
                    max_tokens=job.max_tokens,
                    temperature=job.temperature,
                ))
            except Exception as e:
                # Isolate the failure to this job; the pool keeps draining
                duration = time.time() - start_time
                caption_jobs_total.labels(outcome="failed").inc()
                caption_job_duration_seconds.labels(outcome="failed").observe(duration)
                log_caption_job_failed(logger, caption_id=job.caption_id, error=str(e), duration_ms=duration * 1000)
                results.append(CaptionJobResult(
                    caption_id=job.caption_id,
                    success=False,
                    error=str(e) or None,
                ))
            else:
                duration = time.time() - start_time
                caption_jobs_total.labels(outcome="succeeded").inc()
                caption_job_duration_seconds.labels(outcome="succeeded").observe(duration)
                log_caption_job_completed(
                    logger,
                    caption_id=job.caption_id,
                    duration_ms=duration * 1000,
                    model=generated.model
                )
                results.append(CaptionJobResult(
                    caption_id=job.caption_id,
                    success=True,
                    caption=generated.caption,
                    model=generated.model,
                    tokens_used=generated.tokens_used,
                    confidence=generated.confidence,
                ))
            finally:
                queue.task_done()

    workers = [asyncio.create_task(worker()) for _ in range(max(1, concurrency))]
    await asyncio.gather(*workers)

    return results


async def load_pending_jobs(db: AsyncSession, limit: int) -> List[CaptionJob]:
    """
    Select up to `limit` processing captions whose asset has a public URL,
    with their prompt template (or the built-in defaults).
    """
    result = await db.execute(
        select(
            Caption.id,
            MediaAsset.public_url,
            PromptTemplate.system_prompt,
            PromptTemplate.user_prompt_template,
            PromptTemplate.model,
            PromptTemplate.max_tokens,
            PromptTemplate.temperature,
        )
        .join(MediaAsset, Caption.media_asset_id == MediaAsset.id)
        .outerjoin(PromptTemplate, Caption.prompt_template_id == PromptTemplate.id)
        .where(
            Caption.status == CaptionStatus.PROCESSING,
            MediaAsset.public_url.isnot(None),
        )
        .order_by(Caption.id)
        .limit(limit)
    )

    jobs = []
    for caption_id, image_url, system_prompt, user_prompt, model, max_tokens, temperature in result.all():
        jobs.append(CaptionJob(
            caption_id=caption_id,
            image_url=image_url,
            system_prompt=system_prompt or DEFAULT_SYSTEM_PROMPT,
            user_prompt=user_prompt or DEFAULT_USER_PROMPT,
            model=model or DEFAULT_MODEL,
            max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
            temperature=(DEFAULT_TEMPERATURE if temperature is None else temperature) / 100,
        ))
    return jobs


async def apply_job_result(db: AsyncSession, result: CaptionJobResult) -> bool:
    """
    Write one outcome to its caption row.

    Returns True for a success. Machine failures reuse the "rejected"
    status; only rejection_reason tells them apart from a human reject.
    """
    now = utcnow()
    if result.success and result.caption:
        await db.execute(
            update(Caption)
            .where(Caption.id == result.caption_id)
            .values(
                ai_caption=result.caption,
                final_caption=result.caption,
                status=CaptionStatus.COMPLETED,
                model=result.model,
                confidence=result.confidence,
                tokens_used=result.tokens_used,
                generated_at=now,
                updated_at=now,
            )
        )
        await db.commit()
        return True

    await db.execute(
        update(Caption)
        .where(Caption.id == result.caption_id)
        .values(
            status=CaptionStatus.REJECTED,
            rejection_reason=result.error or GENERIC_FAILURE_REASON,
            updated_at=now,
        )
    )
    await db.commit()
    return False


async def process_pending_captions(
    db: AsyncSession,
    provider: VisionCaptionProvider,
    limit: int = 10,
    concurrency: int = 3,
) -> BatchResult:
    """
    Drain one batch of processing captions.

    Args:
        db: Database session (used only outside the concurrent section)
        provider: Vision caption provider
        limit: Maximum captions to load
        concurrency: Worker pool width

    Returns:
        BatchResult with counts and a {caption_id, error} entry per failure
    """
    start_time = time.time()
    jobs = await load_pending_jobs(db, limit)
    if not jobs:
        return BatchResult()

    results = await run_caption_jobs(jobs, provider, concurrency)

    batch = BatchResult(processed=len(results))
    for result in results:
        if await apply_job_result(db, result):
            batch.succeeded += 1
        else:
            batch.failed += 1
            batch.errors.append({
                "caption_id": result.caption_id,
                "error": result.error or UNKNOWN_ERROR,
            })

    log_caption_batch_completed(
        logger,
        processed=batch.processed,
        succeeded=batch.succeeded,
        failed=batch.failed,
        duration_ms=(time.time() - start_time) * 1000
    )
    return batch
