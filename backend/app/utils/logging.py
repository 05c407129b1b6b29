"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- caption_id
- dataset_id
- asset_id
- duration_ms

Usage:
    from app.utils.logging import configure_logging, log_caption_job_completed

    configure_logging('ct-api', 'INFO')
    log_caption_job_completed(logger, caption_id=12, model='gpt-4o', duration_ms=812.4)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (ct-api or ct-worker)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return

        cls._service_name = service_name

        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (container logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    caption_id: Optional[int] = None,
    dataset_id: Optional[int] = None,
    asset_id: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        caption_id: Optional caption ID
        dataset_id: Optional dataset ID
        asset_id: Optional media asset ID
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if caption_id is not None:
        extra["caption_id"] = caption_id
    if dataset_id is not None:
        extra["dataset_id"] = dataset_id
    if asset_id is not None:
        extra["asset_id"] = asset_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Upload session events

def log_upload_requested(
    logger: logging.Logger,
    asset_id: int,
    dataset_id: int,
    storage_key: str,
    **kwargs
):
    """Log that an upload slot (presigned PUT) was issued."""
    extra = _build_log_extra(
        event="upload_requested",
        asset_id=asset_id,
        dataset_id=dataset_id,
        storage_key=storage_key,
        **kwargs
    )
    logger.info(f"Upload requested: asset {asset_id} -> {storage_key}", extra=extra)


def log_upload_finalized(
    logger: logging.Logger,
    asset_id: int,
    status: str,
    **kwargs
):
    """Log that the client reported an upload as finished."""
    extra = _build_log_extra(
        event="upload_finalized",
        asset_id=asset_id,
        status=status,
        **kwargs
    )
    logger.info(f"Upload finalized: asset {asset_id} ({status})", extra=extra)


# Caption pipeline events

def log_captioning_triggered(
    logger: logging.Logger,
    dataset_id: int,
    queued: int,
    prompt_template_id: Optional[int] = None,
    **kwargs
):
    """Log caption rows queued for a dataset."""
    extra = _build_log_extra(
        event="captioning_triggered",
        dataset_id=dataset_id,
        queued=queued,
        **kwargs
    )
    if prompt_template_id is not None:
        extra["prompt_template_id"] = prompt_template_id

    logger.info(f"Captioning triggered for dataset {dataset_id}: {queued} queued", extra=extra)


def log_caption_job_completed(
    logger: logging.Logger,
    caption_id: int,
    duration_ms: float,
    model: Optional[str] = None,
    **kwargs
):
    """
    Log a caption job that produced a caption.

    Args:
        logger: Logger instance
        caption_id: Caption ID (required)
        duration_ms: Duration in milliseconds (required)
        model: Model reported by the provider
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="caption_job_completed",
        caption_id=caption_id,
        duration_ms=duration_ms,
        **kwargs
    )
    if model:
        extra["model"] = model

    logger.info(f"Caption job completed: {caption_id}", extra=extra)


def log_caption_job_failed(
    logger: logging.Logger,
    caption_id: int,
    error: str,
    duration_ms: Optional[float] = None,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log a caption job failure.

    Provider errors are expected business outcomes, so no stack trace
    unless asked for.
    """
    extra = _build_log_extra(
        event="caption_job_failed",
        caption_id=caption_id,
        duration_ms=duration_ms,
        error=str(error),
        **kwargs
    )

    message = f"Caption job failed: {caption_id} - {error}"

    if include_traceback:
        exc_info = sys.exc_info()
        if exc_info[0] is not None:
            logger.error(message, extra=extra, exc_info=exc_info)
            return
    logger.error(message, extra=extra)


def log_caption_batch_completed(
    logger: logging.Logger,
    processed: int,
    succeeded: int,
    failed: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """Log the aggregate outcome of one worker batch."""
    extra = _build_log_extra(
        event="caption_batch_completed",
        duration_ms=duration_ms,
        processed=processed,
        succeeded=succeeded,
        failed=failed,
        **kwargs
    )
    logger.info(
        f"Caption batch completed: {succeeded}/{processed} succeeded, {failed} failed",
        extra=extra
    )


# Provider event functions

def log_provider_request(
    logger: logging.Logger,
    provider: str,
    operation: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log AI provider request event.

    Args:
        logger: Logger instance
        provider: Provider name (required)
        operation: Operation name (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="provider_request",
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        **kwargs
    )

    logger.info(f"Provider request: {provider}.{operation}", extra=extra)


def log_provider_failure(
    logger: logging.Logger,
    provider: str,
    operation: str,
    error: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """Log AI provider failure event."""
    extra = _build_log_extra(
        event="provider_failure",
        duration_ms=duration_ms,
        provider=provider,
        operation=operation,
        error=str(error),
        **kwargs
    )

    logger.error(f"Provider failure: {provider}.{operation} - {error}", extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
