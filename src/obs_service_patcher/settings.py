"""Runtime settings resolved from the environment.

Purpose
    Collect the few knobs the patcher exposes (descriptor URL, HTTP timeout,
    extra install directories) in one immutable value so the CLI and the
    composition root agree on defaults.

Contents
    - ``ENV_PREFIX``: ``OBS_SERVICE_PATCHER``.
    - ``PatcherSettings``: frozen settings value.
    - ``load_settings``: builds settings from an environment mapping.

System Integration
    The CLI calls :func:`load_settings` and then applies command-line options
    on top with :meth:`PatcherSettings.with_overrides`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Final, Mapping

from .adapters.descriptor.http import DEFAULT_DESCRIPTOR_URL, DEFAULT_TIMEOUT_SECONDS
from .adapters.env.default import DefaultEnvLoader, default_env_prefix

SLUG: Final[str] = "obs-service-patcher"
ENV_PREFIX: Final[str] = default_env_prefix(SLUG)


@dataclass(frozen=True, slots=True)
class PatcherSettings:
    """Immutable runtime configuration.

    Examples
    --------
    >>> settings = PatcherSettings()
    >>> settings.timeout
    10.0
    >>> settings.with_overrides(timeout=2.5).timeout
    2.5
    """

    descriptor_url: str = DEFAULT_DESCRIPTOR_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    extra_dirs: tuple[Path, ...] = ()

    def __post_init__(self) -> None:
        if not self.descriptor_url:
            raise ValueError("descriptor_url must not be empty")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    def with_overrides(self, **overrides: Any) -> "PatcherSettings":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if "extra_dirs" in changes:
            changes["extra_dirs"] = tuple(Path(entry) for entry in changes["extra_dirs"])
        return replace(self, **changes)


def load_settings(environ: Mapping[str, str] | None = None) -> PatcherSettings:
    """Build :class:`PatcherSettings` from ``OBS_SERVICE_PATCHER_*`` variables.

    Recognised variables: ``_DESCRIPTOR_URL``, ``_TIMEOUT`` and
    ``_EXTRA_DIRS`` (``os.pathsep`` separated). Unknown variables are ignored.

    Examples
    --------
    >>> load_settings({'OBS_SERVICE_PATCHER_TIMEOUT': '3'}).timeout
    3.0
    """

    values = DefaultEnvLoader(environ=environ).load(ENV_PREFIX)
    settings = PatcherSettings()
    url = values.get("descriptor_url")
    timeout = values.get("timeout")
    extra = values.get("extra_dirs")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float))):
        raise ValueError(f"{ENV_PREFIX}_TIMEOUT must be a number, got {timeout!r}")
    return settings.with_overrides(
        descriptor_url=str(url) if url is not None else None,
        timeout=float(timeout) if timeout is not None else None,
        extra_dirs=_split_dirs(str(extra)) if extra is not None else None,
    )


def _split_dirs(raw: str) -> tuple[Path, ...]:
    return tuple(Path(entry) for entry in raw.split(os.pathsep) if entry.strip())
