"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts adapters must satisfy so the composition root
and the patch engine can orchestrate behaviour without depending on concrete
implementations.

Contents
--------
* :class:`InstallationLocator` – discovers ``services.json`` files on disk.
* :class:`DescriptorSource` – produces the service record to inject.
* :class:`DocumentStore` – reads and replaces file contents.

System Role
-----------
Tests swap adapters for in-memory fakes through these protocols; the contract
tests in ``tests/adapters`` keep the default adapters honest.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..adapters.path_locators.default import Installation
    from ..domain.service import Service


@runtime_checkable
class InstallationLocator(Protocol):
    """Discover patch targets for the current platform.

    Why
    ----
    Keep filesystem conventions out of the composition root.
    """

    def locate(self) -> Sequence["Installation"]:
        """Return installations whose ``services.json`` exists, in probe order."""


@runtime_checkable
class DescriptorSource(Protocol):
    """Produce the one validated :class:`Service` that gets injected."""

    def fetch(self) -> "Service":
        """Return the descriptor or raise ``NetworkError`` / ``DecodeError``."""


@runtime_checkable
class DocumentStore(Protocol):
    """Read and replace whole files.

    Why
    ----
    Isolate byte-level I/O (and its failure modes) from the patch algorithm.
    """

    def read_bytes(self, path: Path) -> bytes:
        """Return the file contents or raise ``FileIOError``."""

    def replace_bytes(self, path: Path, payload: bytes) -> None:
        """Replace the file contents or raise ``FileIOError``."""
