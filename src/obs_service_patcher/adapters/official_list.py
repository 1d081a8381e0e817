"""Refresh of the upstream RTMP service list next to each installation.

Purpose
-------
OBS ships a ``package.json`` beside ``services.json`` that names the URL the
official service list is published under. The refresher reads that manifest,
downloads ``<url>/services.json`` and stores it as ``services2.json`` in the
same directory, which is where OBS looks for updated lists.

Contents
--------
* :class:`PackageManifest` – the fields of ``package.json`` that are consumed.
* :class:`RefreshStatus` / :class:`RefreshResult` – per-directory outcomes.
* :class:`OfficialListRefresher` – runs the refresh for many installations.

System Role
-----------
Optional step of :func:`obs_service_patcher.core.run_patch` (``--refresh-official``).
Failures are local to one directory, exactly like patch failures.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final, Sequence

import httpx

from ..application.ports import DocumentStore
from ..domain.document import ServiceDocument
from ..domain.errors import DecodeError, FileIOError, NetworkError
from ..observability import log_error, log_info, make_event
from .descriptor.http import DEFAULT_TIMEOUT_SECONDS, build_client, get_bytes
from .path_locators.default import Installation

MANIFEST_FILENAME: Final[str] = "package.json"
REFRESHED_FILENAME: Final[str] = "services2.json"


@dataclass(frozen=True, slots=True)
class PackageManifest:
    """Consumed subset of the rtmp-services ``package.json``.

    Examples
    --------
    >>> PackageManifest.from_bytes(b'{"url": "https://obsproject.com/update", "version": 3}').services_url
    'https://obsproject.com/update/services.json'
    """

    url: str
    version: int | None = None

    @classmethod
    def from_bytes(cls, payload: bytes, *, source: str | None = None) -> "PackageManifest":
        origin = source or "<memory>"
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodeError(f"Invalid JSON in {origin}: {exc}") from exc
        if not isinstance(data, Mapping):
            raise DecodeError(f"Manifest {origin} is not a JSON object")
        url = data.get("url")
        if not isinstance(url, str) or not url:
            raise DecodeError(f"Manifest {origin} has no 'url'")
        version = data.get("version")
        return cls(url=url, version=version if isinstance(version, int) else None)

    @property
    def services_url(self) -> str:
        return f"{self.url.rstrip('/')}/services.json"


class RefreshStatus(str, Enum):
    DOWNLOADED = "downloaded"
    MANIFEST_FAILED = "manifest_failed"
    DOWNLOAD_FAILED = "download_failed"
    WRITE_FAILED = "write_failed"


@dataclass(frozen=True, slots=True)
class RefreshResult:
    """Outcome of refreshing one installation directory."""

    directory: Path
    status: RefreshStatus
    source_url: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is RefreshStatus.DOWNLOADED

    @property
    def target(self) -> Path:
        return self.directory / REFRESHED_FILENAME


class OfficialListRefresher:
    """Download the upstream service list for every installation."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._store = store
        self.timeout = timeout
        self._transport = transport

    def refresh_all(self, installations: Sequence[Installation]) -> list[RefreshResult]:
        """Refresh each installation in order; one failure never stops the rest."""

        if not installations:
            return []
        with build_client(timeout=self.timeout, transport=self._transport) as client:
            return [self._refresh(client, install.directory) for install in installations]

    def _refresh(self, client: httpx.Client, directory: Path) -> RefreshResult:
        manifest_path = directory / MANIFEST_FILENAME
        try:
            manifest = PackageManifest.from_bytes(self._store.read_bytes(manifest_path), source=str(manifest_path))
        except (FileIOError, DecodeError) as exc:
            return _failed(directory, RefreshStatus.MANIFEST_FAILED, None, exc)

        url = manifest.services_url
        try:
            payload = get_bytes(client, url)
            ServiceDocument.from_bytes(payload, source=url)
        except (NetworkError, DecodeError) as exc:
            return _failed(directory, RefreshStatus.DOWNLOAD_FAILED, url, exc)

        try:
            self._store.replace_bytes(directory / REFRESHED_FILENAME, payload)
        except FileIOError as exc:
            return _failed(directory, RefreshStatus.WRITE_FAILED, url, exc)

        log_info("official_list_downloaded", **make_event("refresh", str(directory / REFRESHED_FILENAME), {"url": url}))
        return RefreshResult(directory, RefreshStatus.DOWNLOADED, source_url=url)


def _failed(directory: Path, status: RefreshStatus, url: str | None, exc: Exception) -> RefreshResult:
    log_error("official_list_failed", **make_event("refresh", str(directory), {"status": status.value, "error": str(exc)}))
    return RefreshResult(directory, status, source_url=url, error=str(exc))
