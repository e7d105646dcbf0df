"""Prometheus exposition for stockfolio.

The menu is interactive and short-lived, so the HTTP endpoint is opt-in
(`metrics_port` setting). A port that cannot be bound only costs the metrics.
"""

import logging
from typing import Optional

from prometheus_client import start_http_server

logger = logging.getLogger(__name__)


def start_server_safe(port: Optional[int]) -> Optional[int]:
    """Start the metrics server on `port`; return the port or None if not started."""
    if port is None:
        return None
    try:
        start_http_server(port)
    except OSError as e:
        logger.warning(f"Failed to start Prometheus server on :{port}: {e}")
        return None
    logger.info(f"Prometheus metrics server started on :{port}")
    return port
