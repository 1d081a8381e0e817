"""Application-layer patch policy.

Purpose
-------
Ensure a ``services.json`` file contains a given service exactly once while
every other piece of the document is preserved. This module owns the presence
test and the append rule; byte I/O is delegated to a
:class:`obs_service_patcher.application.ports.DocumentStore`.

Contents
    - ``PatchStatus`` / ``PatchResult``: explicit per-file outcome values.
    - ``ensure_service``: pure presence-test-then-append over a document.
    - ``PatchEngine``: read → decode → test → append → write for one path.

System Role
-----------
Called once per discovered installation by :func:`obs_service_patcher.core.run_patch`.
Failures of one file are returned as results and never raised, so sibling
files are always attempted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..domain.document import ServiceDocument
from ..domain.errors import DecodeError, EncodeError, FileIOError
from ..domain.service import Service
from ..observability import log_debug, log_error, log_info, make_event
from .ports import DocumentStore


class PatchStatus(str, Enum):
    """Terminal state of one file's patch operation."""

    ALREADY_PRESENT = "already_present"
    PATCHED = "patched"
    READ_FAILED = "read_failed"
    DECODE_FAILED = "decode_failed"
    ENCODE_FAILED = "encode_failed"
    WRITE_FAILED = "write_failed"


_SUCCESS = frozenset({PatchStatus.ALREADY_PRESENT, PatchStatus.PATCHED})


@dataclass(frozen=True, slots=True)
class PatchResult:
    """Outcome of patching one file.

    ``error`` carries the failure reason for the ``*_FAILED`` states and is
    ``None`` otherwise.
    """

    path: Path
    status: PatchStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in _SUCCESS


def ensure_service(document: ServiceDocument, service: Service) -> bool:
    """Append *service* to *document* unless an entry with the same name exists.

    Returns ``True`` when the document was mutated.

    Examples
    --------
    >>> doc = ServiceDocument.from_bytes(b'{"format_version": 1, "services": []}')
    >>> glimesh = Service.from_mapping({"name": "Glimesh", "servers": []})
    >>> ensure_service(doc, glimesh), ensure_service(doc, glimesh)
    (True, False)
    >>> doc.service_names()
    ['Glimesh']
    """

    if document.contains(service.name):
        return False
    document.append(service)
    return True


class PatchEngine:
    """Run the read-modify-write cycle for individual ``services.json`` files."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def patch(self, path: Path, service: Service) -> PatchResult:
        """Ensure *path* contains *service* exactly once.

        Why
        ----
        Each file is independent: a locked-down install directory or a
        corrupt document must not stop the remaining installations from
        being patched.

        What
        ----
        Reads the file, decodes it into a :class:`ServiceDocument`, runs
        :func:`ensure_service` and writes the re-encoded document only when it
        changed. Every failure is mapped onto a :class:`PatchStatus`.

        Side Effects
        ------------
        Replaces the file at *path* when the service was appended; emits
        ``service_patched`` / ``service_present`` / ``patch_failed`` events.
        """

        target = str(path)
        try:
            payload = self._store.read_bytes(path)
        except FileIOError as exc:
            return _failed(path, PatchStatus.READ_FAILED, exc)

        try:
            document = ServiceDocument.from_bytes(payload, source=target)
        except DecodeError as exc:
            return _failed(path, PatchStatus.DECODE_FAILED, exc)

        if not ensure_service(document, service):
            log_info("service_present", **make_event("patch", target, {"service": service.name}))
            return PatchResult(path, PatchStatus.ALREADY_PRESENT)

        log_debug("service_appended", **make_event("patch", target, {"position": len(document.services) - 1}))
        try:
            payload = document.to_bytes()
        except EncodeError as exc:
            return _failed(path, PatchStatus.ENCODE_FAILED, exc)
        try:
            self._store.replace_bytes(path, payload)
        except FileIOError as exc:
            return _failed(path, PatchStatus.WRITE_FAILED, exc)

        log_info("service_patched", **make_event("patch", target, {"service": service.name}))
        return PatchResult(path, PatchStatus.PATCHED)


def _failed(path: Path, status: PatchStatus, exc: Exception) -> PatchResult:
    log_error("patch_failed", **make_event("patch", str(path), {"status": status.value, "error": str(exc)}))
    return PatchResult(path, status, str(exc))
