"""Composition root for ``obs_service_patcher``.

Purpose
-------
Provide the single entry point that orchestrates installation discovery,
descriptor retrieval, the optional official list refresh and the per-file
patch loop, returning one aggregated :class:`RunReport`.

Contents
--------
* :class:`RunStatus` – overall outcome of a run.
* :class:`RunReport` – installations, refresh and patch results, status.
* :func:`run_patch` – high-level API used by the CLI.

System Role
-----------
Connects adapters (locator, fetcher, file store, refresher) with the patch
engine while emitting structured observability signals. Remote failures
propagate as :class:`NetworkError` / :class:`DecodeError`; per-file failures
are carried inside the report.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum

from .adapters.descriptor.http import HTTPDescriptorFetcher
from .adapters.file_store import AtomicFileStore
from .adapters.official_list import OfficialListRefresher, RefreshResult
from .adapters.path_locators.default import DefaultPathLocator, Installation
from .application.patch import PatchEngine, PatchResult
from .application.ports import DescriptorSource, DocumentStore, InstallationLocator
from .domain.errors import DecodeError, FileIOError, NetworkError, PatcherError
from .domain.service import Service
from .observability import bind_trace_id, log_info, make_event
from .settings import PatcherSettings


class RunStatus(str, Enum):
    """Overall outcome of :func:`run_patch`."""

    NOTHING_TO_DO = "nothing_to_do"
    OK = "ok"
    PARTIAL_FAILURE = "partial_failure"


@dataclass(frozen=True, slots=True)
class RunReport:
    """Everything a caller needs to render the run summary."""

    installations: tuple[Installation, ...]
    service: Service | None = None
    results: tuple[PatchResult, ...] = ()
    refreshes: tuple[RefreshResult, ...] = ()

    @property
    def status(self) -> RunStatus:
        if not self.installations:
            return RunStatus.NOTHING_TO_DO
        if all(result.ok for result in self.results) and all(item.ok for item in self.refreshes):
            return RunStatus.OK
        return RunStatus.PARTIAL_FAILURE

    @property
    def failures(self) -> tuple[PatchResult, ...]:
        return tuple(result for result in self.results if not result.ok)


def run_patch(
    settings: PatcherSettings | None = None,
    *,
    locator: InstallationLocator | None = None,
    source: DescriptorSource | None = None,
    store: DocumentStore | None = None,
    refresher: OfficialListRefresher | None = None,
    refresh_official: bool = False,
    platform: str | None = None,
) -> RunReport:
    """Patch every discovered ``services.json`` with the remote descriptor.

    Why
    ----
    The CLI (and tests) need one call that performs the complete flow and
    returns explicit result values instead of exiting on the first failure.

    What
    ----
    1. Locate installations; return a ``NOTHING_TO_DO`` report when none exist
       (the network is never touched in that case).
    2. Fetch the descriptor. Failures propagate and no file is modified.
    3. Optionally refresh the official service lists.
    4. Patch each installation sequentially, collecting :class:`PatchResult`.

    Parameters
    ----------
    settings:
        Runtime settings; defaults to :class:`PatcherSettings`.
    locator / source / store / refresher:
        Adapter overrides. Defaults are built from *settings*.
    refresh_official:
        Download ``services2.json`` next to each installation first.
    platform:
        ``sys.platform`` override for the default locator.

    Raises
    ------
    NetworkError, DecodeError
        When the descriptor cannot be retrieved or validated.
    """

    settings = settings or PatcherSettings()
    bind_trace_id(uuid.uuid4().hex)
    locator = locator or DefaultPathLocator(platform=platform, extra_dirs=settings.extra_dirs)
    store = store or AtomicFileStore()

    installations = tuple(locator.locate())
    if not installations:
        log_info("nothing_to_do", **make_event("run", None, {"installations": 0}))
        return RunReport(installations=())

    source = source or HTTPDescriptorFetcher(settings.descriptor_url, timeout=settings.timeout)
    service = source.fetch()

    refreshes: tuple[RefreshResult, ...] = ()
    if refresh_official:
        refresher = refresher or OfficialListRefresher(store, timeout=settings.timeout)
        refreshes = tuple(refresher.refresh_all(installations))

    engine = PatchEngine(store)
    results = tuple(engine.patch(install.services_file, service) for install in installations)
    report = RunReport(installations=installations, service=service, results=results, refreshes=refreshes)
    log_info(
        "run_complete",
        **make_event(
            "run",
            None,
            {"status": report.status.value, "installations": len(installations), "failed": len(report.failures)},
        ),
    )
    return report


__all__ = [
    "DecodeError",
    "FileIOError",
    "NetworkError",
    "PatcherError",
    "RunReport",
    "RunStatus",
    "run_patch",
]
