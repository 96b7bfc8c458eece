"""Order insights reporting package following Clean Architecture layering."""

from .core.service import ReportingService
from .core.container import DIContainer

__all__ = [
    "ReportingService",
    "DIContainer",
    "domain",
    "windowing",
    "aggregation",
    "cache",
    "stores",
    "core",
]
