"""Status server exposing health, statistics and Prometheus metrics."""

from .server import ApiServer, ApiServerConfig

__all__ = ["ApiServer", "ApiServerConfig"]
