"""Domain-level exception hierarchy.

Purpose
-------
Expose the error taxonomy shared by adapters, the patch engine, the
composition root and the CLI. The hierarchy lives in the domain layer so outer
layers may depend on it without the reverse.

Contents
--------
* :class:`PatcherError` – umbrella base class for all patcher failures.
* :class:`NetworkError` – the remote source could not be reached or answered
  with a non-200 status.
* :class:`DecodeError` – JSON (remote or local) could not be decoded into the
  structures the patcher consumes.
* :class:`FileIOError` – a file could not be opened, read or written.
* :class:`EncodeError` – a patched document could not be re-encoded.

System Role
-----------
Remote failures (:class:`NetworkError`, :class:`DecodeError` raised by the
fetcher) abort the whole run. Per-file failures are caught by the patch engine
and turned into result values so sibling files still get patched. Finding no
installation at all is not an error and has no exception type.
"""

from __future__ import annotations


class PatcherError(Exception):
    """Base type for all exceptions emitted by ``obs_service_patcher``.

    Callers that do not need fine-grained handling catch this single type.
    """


class NetworkError(PatcherError):
    """Raised when a remote document cannot be retrieved.

    Typical Sources
    ---------------
    Transport errors (DNS, TLS, timeouts) and non-200 HTTP status codes.
    """


class DecodeError(PatcherError):
    """Raised when an input artifact cannot be decoded into structured data.

    Why
    ----
    Distinguish malformed content from I/O failures so the per-file summary
    can tell the user which of the two happened.
    """


class FileIOError(PatcherError):
    """Raised when a file cannot be opened, read or written.

    On protected installation directories this is almost always a privilege
    problem, which is why the CLI suggests re-running elevated.
    """


class EncodeError(PatcherError):
    """Raised when a decoded document cannot be written back as UTF-8 JSON.

    JSON text may escape lone surrogates (``"\\ud800"``) that decode fine but
    have no UTF-8 encoding.
    """
