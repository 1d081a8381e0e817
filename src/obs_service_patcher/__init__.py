"""Public package surface for ``obs_service_patcher``.

Exporting :func:`run_patch` and the result types here lets both
``import obs_service_patcher`` and ``python -m obs_service_patcher`` flows
drive the same composition root.
"""

from __future__ import annotations

from .application.patch import PatchEngine, PatchResult, PatchStatus, ensure_service
from .core import RunReport, RunStatus, run_patch
from .domain.document import ServiceDocument
from .domain.errors import DecodeError, EncodeError, FileIOError, NetworkError, PatcherError
from .domain.service import Recommended, Server, Service
from .observability import bind_trace_id, get_logger
from .settings import PatcherSettings, load_settings

__all__ = [
    "DecodeError",
    "EncodeError",
    "FileIOError",
    "NetworkError",
    "PatchEngine",
    "PatchResult",
    "PatchStatus",
    "PatcherError",
    "PatcherSettings",
    "Recommended",
    "RunReport",
    "RunStatus",
    "Server",
    "Service",
    "ServiceDocument",
    "bind_trace_id",
    "ensure_service",
    "get_logger",
    "load_settings",
    "run_patch",
]
