import logging
from typing import Optional

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

REQUESTS = Counter('storyboard_requests_total', 'HTTP requests handled', ['method', 'status'])
LATENCY = Histogram('storyboard_request_seconds', 'HTTP request latency', ['method'])


def init_metrics(port: Optional[int]) -> bool:
    """Start the Prometheus exporter if a port is configured."""
    if not port:
        return False
    try:
        start_http_server(port)
    except OSError as e:
        logger.warning({'msg': 'metrics_start_failed', 'port': port, 'error': str(e)})
        return False
    logger.info({'msg': 'metrics_started', 'port': port})
    return True
