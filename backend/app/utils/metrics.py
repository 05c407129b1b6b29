"""
Prometheus metrics definitions for the API and the Celery worker.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Gauge, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Upload session metrics
uploads_requested_total = Counter(
    'uploads_requested_total',
    'Total presigned upload slots issued'
)

uploads_finalized_total = Counter(
    'uploads_finalized_total',
    'Total uploads finalized by clients',
    ['status']
)

storage_deletes_total = Counter(
    'storage_deletes_total',
    'Best-effort storage object deletions',
    ['outcome']
)

# Caption pipeline metrics
captions_queued_total = Counter(
    'captions_queued_total',
    'Caption rows put into processing (trigger or regenerate)',
    ['source']
)

caption_jobs_total = Counter(
    'caption_jobs_total',
    'Caption jobs finished by the batch worker',
    ['outcome']
)

caption_job_duration_seconds = Histogram(
    'caption_job_duration_seconds',
    'Caption job duration in seconds',
    ['outcome'],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0]
)

# AI provider metrics
ai_provider_requests_total = Counter(
    'ai_provider_requests_total',
    'Total AI provider requests',
    ['provider', 'operation']
)

ai_provider_failures_total = Counter(
    'ai_provider_failures_total',
    'Total AI provider failures',
    ['provider', 'operation']
)

ai_provider_latency_seconds = Histogram(
    'ai_provider_latency_seconds',
    'AI provider request latency in seconds',
    ['provider', 'operation'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)

ai_provider_tokens_total = Counter(
    'ai_provider_tokens_total',
    'Total AI provider tokens used',
    ['provider', 'operation']
)

# Outbound webhook
automation_events_total = Counter(
    'automation_events_total',
    'Outbound automation webhook deliveries',
    ['event_type', 'outcome']
)

# Celery worker metrics
worker_tasks_in_progress = Gauge(
    'worker_tasks_in_progress',
    'Celery tasks currently running',
    ['task_name']
)

worker_tasks_total = Counter(
    'worker_tasks_total',
    'Celery tasks finished',
    ['task_name', 'state']
)
