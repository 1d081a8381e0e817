"""Byte-level file access for ``services.json`` documents.

Purpose
-------
Implement the :class:`obs_service_patcher.application.ports.DocumentStore`
protocol. Reads are scoped and translate ``OSError`` into
:class:`FileIOError`; writes go to a sibling temporary file that replaces the
target with :func:`os.replace`, so an interrupted run never leaves a truncated
document behind.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from ..domain.errors import FileIOError
from ..observability import log_debug, log_error


class AtomicFileStore:
    """Read whole files and replace them atomically."""

    def read_bytes(self, path: Path) -> bytes:
        """Return the contents of *path*.

        Raises
        ------
        FileIOError
            When the file is missing, unreadable or is a directory.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> target = Path(tmp.name) / "services.json"
        >>> _ = target.write_bytes(b"{}")
        >>> AtomicFileStore().read_bytes(target)
        b'{}'
        >>> tmp.cleanup()
        """

        try:
            with open(path, "rb") as handle:
                payload = handle.read()
        except OSError as exc:
            log_error("services_file_unreadable", kind="read", path=str(path), error=str(exc))
            raise FileIOError(f"Cannot read {path}: {exc}") from exc
        log_debug("services_file_read", kind="read", path=str(path), size=len(payload))
        return payload

    def replace_bytes(self, path: Path, payload: bytes) -> None:
        """Replace the contents of *path* with *payload*.

        The temporary file lives in the same directory (``os.replace`` cannot
        cross filesystems) and inherits the permission bits of the original.
        """

        directory = path.parent
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
        except OSError as exc:
            log_error("services_file_unwritable", kind="write", path=str(path), error=str(exc))
            raise FileIOError(f"Cannot write {path}: {exc}") from exc
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            if path.exists():
                shutil.copymode(path, tmp_path)
            os.replace(tmp_path, path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            log_error("services_file_unwritable", kind="write", path=str(path), error=str(exc))
            raise FileIOError(f"Cannot write {path}: {exc}") from exc
        log_debug("services_file_written", kind="write", path=str(path), size=len(payload))
