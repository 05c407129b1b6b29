"""
HTTP server exposing the Celery worker's Prometheus metrics.
"""
import logging

from prometheus_client import start_http_server

logger = logging.getLogger(__name__)

_started_port = None


def start_metrics_server(port: int = 9090) -> None:
    """
    Serve /metrics from a daemon thread, once per process.

    Raises:
        OSError: If the port cannot be bound
    """
    global _started_port
    if _started_port is not None:
        return
    start_http_server(port)
    _started_port = port
    logger.info(f"Metrics server started on port {port}")
