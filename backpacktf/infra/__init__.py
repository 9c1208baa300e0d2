"""Infrastructure utilities for logging and metrics."""

from .logging import configure_logging, preview
from .metrics import MetricsSink

__all__ = [
    "configure_logging",
    "preview",
    "MetricsSink",
]
