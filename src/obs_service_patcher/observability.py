"""Structured logging helpers shared by every patcher component.

Purpose
    Keep every emission of diagnostic data predictable and contextual without
    redirecting the process-wide logger. Components emit ``(kind, path,
    payload)`` events; the caller decides how (and whether) to render them.

Contents
    - ``TRACE_ID``: context variable storing the active run identifier.
    - ``get_logger``: returns the package logger (quiet by default).
    - ``bind_trace_id``: binds or clears the active run identifier.
    - ``log_debug`` / ``log_info`` / ``log_error``: emit structured entries via a
      single private emitter.
    - ``make_event``: convenience builder for structured event payloads.

Event Vocabulary
    ``kind`` names the stage that emitted the event:

    - ``locate``: ``installation_detected`` (debug) per rtmp-services directory.
    - ``fetch``: ``descriptor_downloaded``; ``download_failed`` and
      ``descriptor_invalid`` precede the fatal error raised to the caller.
    - ``refresh``: ``official_list_downloaded`` / ``official_list_failed``
      per installation when the upstream list is mirrored.
    - ``patch``: ``service_present``, ``service_appended`` (debug, carries the
      list ``position``), ``service_patched``, and ``patch_failed`` whose
      ``status`` is the :class:`~obs_service_patcher.application.patch.PatchStatus`
      value.
    - ``read`` / ``write``: ``services_file_read``, ``services_file_written``
      and their ``*_unreadable`` / ``*_unwritable`` failures from the store.
    - ``env``: ``env_variables_loaded`` with the matched setting keys.
    - ``run``: ``nothing_to_do`` when no installation was found.

    ``path`` is the ``services.json`` path for file events and the URL for
    fetch events. Every entry also carries the run's ``trace_id``.

System Integration
    Used by the locator, the patch engine, the fetchers and the composition
    root. The CLI attaches a handler only when ``--verbose`` is requested.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Final, Mapping

TRACE_ID: ContextVar[str | None] = ContextVar("obs_service_patcher_trace_id", default=None)
"""Identifier of the patch run currently in progress."""

_LOGGER: Final[logging.Logger] = logging.getLogger("obs_service_patcher")
_LOGGER.addHandler(logging.NullHandler())


def get_logger() -> logging.Logger:
    """Expose the package logger so applications may attach handlers.

    Why
        Leaves the library silent by default while giving the CLI (or a host
        application) full control over handler and formatter configuration.
    """

    return _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Bind or clear the active run identifier.

    Examples
    --------
    >>> bind_trace_id('run-1')
    >>> TRACE_ID.get()
    'run-1'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


def log_debug(message: str, **fields: Any) -> None:
    """Emit a structured debug log entry that includes the trace context."""

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Emit a structured info log entry that includes the trace context."""

    _emit(logging.INFO, message, fields)


def log_error(message: str, **fields: Any) -> None:
    """Emit a structured error log entry that includes the trace context."""

    _emit(logging.ERROR, message, fields)


def make_event(
    kind: str,
    path: str | None,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a structured logging payload for patch lifecycle events.

    Inputs
        kind: Short category of the event (``"locate"``, ``"patch"``, ...).
        path: Filesystem path or URL associated with the event, if any.
        payload: Optional mapping with extra diagnostic detail.
    Outputs
        dict[str, Any]: Data safe to unpack into :func:`log_*` helpers.

    Examples
    --------
    >>> make_event('patch', '/tmp/services.json', {'status': 'patched'})
    {'kind': 'patch', 'path': '/tmp/services.json', 'status': 'patched'}
    """

    event = _base_event(kind, path)
    return _merge_payload(event, payload)


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Send a log entry through the shared logger with contextual metadata."""

    _LOGGER.log(level, message, extra={"context": _with_trace(fields)})


def _with_trace(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Attach the current trace identifier to the provided structured fields."""

    context = {"trace_id": TRACE_ID.get()}
    context.update(fields)
    return context


def _base_event(kind: str, path: str | None) -> dict[str, Any]:
    return {"kind": kind, "path": path}


def _merge_payload(event: dict[str, Any], payload: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge optional diagnostic data into the event payload when provided."""

    if payload:
        event |= dict(payload)
    return event
