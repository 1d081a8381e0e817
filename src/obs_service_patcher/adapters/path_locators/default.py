"""Filesystem discovery of OBS-style ``services.json`` files.

Purpose
-------
Implement the :class:`obs_service_patcher.application.ports.InstallationLocator`
protocol. The adapter is the only component that knows where streaming
applications keep their RTMP service lists on each operating system.

Contents
--------
* :class:`InstallTarget` – one row of the declarative probe table.
* :data:`INSTALL_TARGETS` – known application variants in probe order.
* :class:`Installation` – a detected ``services.json`` file.
* :class:`DefaultPathLocator` – resolves the table for one platform.

System Role
-----------
Feeds the ordered path list into :func:`obs_service_patcher.core.run_patch`.
Adding an application variant is a new table row, not a new code branch.
Environment overrides keep the probing deterministic in tests.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Iterable, Mapping, Sequence

from ...observability import log_debug, make_event

SERVICES_FILENAME: Final[str] = "services.json"

#: Root kinds understood by :class:`DefaultPathLocator`.
ROOT_USER_CONFIG: Final[str] = "user-config"
ROOT_ENV: Final[str] = "env"
ROOT_APPLICATIONS: Final[str] = "applications"

APPLICATIONS_ROOT_ENV: Final[str] = "OBS_SERVICE_PATCHER_APPLICATIONS_ROOT"

_ELECTRON_RTMP_SERVICES: Final[tuple[str, ...]] = (
    "app.asar.unpacked",
    "node_modules",
    "obs-studio-node",
    "data",
    "obs-plugins",
    "rtmp-services",
)


@dataclass(frozen=True, slots=True)
class InstallTarget:
    """Where one application variant keeps its ``services.json``.

    Attributes
    ----------
    label:
        Human readable name shown in the run summary.
    platforms:
        Platform families (``"linux"``, ``"macos"``, ``"windows"``) the row
        applies to.
    root:
        One of :data:`ROOT_USER_CONFIG`, :data:`ROOT_ENV` or
        :data:`ROOT_APPLICATIONS`.
    parts:
        Path segments appended to the resolved root; the result is the
        directory that should hold ``services.json``.
    env_var:
        Environment variable naming the root when ``root`` is
        :data:`ROOT_ENV`. Rows whose variable is unset are skipped.
    """

    label: str
    platforms: tuple[str, ...]
    root: str
    parts: tuple[str, ...]
    env_var: str | None = None


INSTALL_TARGETS: Final[tuple[InstallTarget, ...]] = (
    InstallTarget(
        label="OBS Studio",
        platforms=("linux", "macos", "windows"),
        root=ROOT_USER_CONFIG,
        parts=("obs-studio", "plugin_config", "rtmp-services"),
    ),
    InstallTarget(
        label="Streamlabs OBS",
        platforms=("linux", "macos", "windows"),
        root=ROOT_USER_CONFIG,
        parts=("slobs-client", "plugin_config", "rtmp-services"),
    ),
    InstallTarget(
        label="SLOBS Electron 32-bit",
        platforms=("windows",),
        root=ROOT_ENV,
        env_var="programfiles(x86)",
        parts=("Streamlabs OBS", "resources", *_ELECTRON_RTMP_SERVICES),
    ),
    InstallTarget(
        label="SLOBS Electron 64-bit",
        platforms=("windows",),
        root=ROOT_ENV,
        env_var="programfiles",
        parts=("Streamlabs OBS", "resources", *_ELECTRON_RTMP_SERVICES),
    ),
    InstallTarget(
        label="SLOBS Electron",
        platforms=("macos",),
        root=ROOT_APPLICATIONS,
        parts=("Streamlabs OBS.app", "Contents", "Resources", *_ELECTRON_RTMP_SERVICES),
    ),
)


@dataclass(frozen=True, slots=True)
class Installation:
    """A detected application install whose ``services.json`` exists."""

    label: str
    directory: Path

    @property
    def services_file(self) -> Path:
        return self.directory / SERVICES_FILENAME


def platform_family(platform: str) -> str:
    """Map a ``sys.platform`` style identifier onto a table family.

    Unknown POSIX flavours fall back to ``"linux"`` (XDG conventions).

    Examples
    --------
    >>> [platform_family(p) for p in ("linux", "darwin", "win32", "freebsd13")]
    ['linux', 'macos', 'windows', 'linux']
    """

    if platform == "darwin":
        return "macos"
    if platform.startswith("win"):
        return "windows"
    return "linux"


class DefaultPathLocator:
    """Resolve :data:`INSTALL_TARGETS` into existing ``services.json`` files."""

    def __init__(
        self,
        *,
        env: Mapping[str, str] | None = None,
        platform: str | None = None,
        targets: Sequence[InstallTarget] = INSTALL_TARGETS,
        extra_dirs: Sequence[Path] = (),
    ) -> None:
        """Store the context required to resolve install locations.

        Parameters
        ----------
        env:
            Optional environment mapping layered over ``os.environ`` (useful
            for deterministic tests).
        platform:
            Platform identifier (``sys.platform`` clone). Defaults to the
            current interpreter platform.
        targets:
            Probe table; defaults to :data:`INSTALL_TARGETS`.
        extra_dirs:
            Additional ``rtmp-services`` directories probed after the table.
        """

        self.env = {**os.environ, **(env or {})}
        self.platform = platform or sys.platform
        self.targets = tuple(targets)
        self.extra_dirs = tuple(Path(entry) for entry in extra_dirs)

    @property
    def family(self) -> str:
        return platform_family(self.platform)

    def locate(self) -> list[Installation]:
        """Return installations whose ``services.json`` exists, in probe order.

        An empty list is a normal outcome and means nothing needs patching.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> rtmp = Path(tmp.name) / "obs-studio" / "plugin_config" / "rtmp-services"
        >>> rtmp.mkdir(parents=True)
        >>> _ = (rtmp / "services.json").write_text("{}", encoding="utf-8")
        >>> locator = DefaultPathLocator(env={"XDG_CONFIG_HOME": tmp.name}, platform="linux")
        >>> [install.label for install in locator.locate()]
        ['OBS Studio']
        >>> tmp.cleanup()
        """

        found: list[Installation] = []
        seen: set[Path] = set()
        for label, directory in self.candidates():
            services_file = directory / SERVICES_FILENAME
            if not services_file.is_file():
                continue
            key = _normalise(services_file)
            if key in seen:
                continue
            seen.add(key)
            log_debug("installation_detected", **make_event("locate", str(services_file), {"label": label}))
            found.append(Installation(label=label, directory=directory))
        return found

    def candidates(self) -> Iterable[tuple[str, Path]]:
        """Yield ``(label, directory)`` pairs for this platform regardless of existence."""

        for target in self.targets:
            if self.family not in target.platforms:
                continue
            root = self._resolve_root(target)
            if root is None:
                continue
            yield target.label, root.joinpath(*target.parts)
        for directory in self.extra_dirs:
            yield "Custom", directory

    def user_config_dir(self) -> Path | None:
        """Return the per-user configuration root for the platform.

        Mirrors the usual conventions: ``%APPDATA%`` on Windows,
        ``~/Library/Application Support`` on macOS and ``$XDG_CONFIG_HOME``
        (or ``~/.config``) elsewhere.
        """

        family = self.family
        if family == "windows":
            appdata = self._getenv("APPDATA")
            return Path(appdata) if appdata else None
        if family == "macos":
            return self._home() / "Library" / "Application Support"
        xdg = self._getenv("XDG_CONFIG_HOME")
        if xdg and os.path.isabs(xdg):
            return Path(xdg)
        return self._home() / ".config"

    def _resolve_root(self, target: InstallTarget) -> Path | None:
        if target.root == ROOT_USER_CONFIG:
            return self.user_config_dir()
        if target.root == ROOT_ENV:
            value = self._getenv(target.env_var) if target.env_var else None
            return Path(value) if value else None
        if target.root == ROOT_APPLICATIONS:
            return Path(self.env.get(APPLICATIONS_ROOT_ENV, "/Applications"))
        raise ValueError(f"Unsupported install root kind: {target.root}")

    def _getenv(self, name: str) -> str | None:
        """Look up *name*, case-insensitively on Windows like the OS does."""

        value = self.env.get(name)
        if value or self.family != "windows":
            return value or None
        lowered = name.lower()
        for key, candidate in self.env.items():
            if key.lower() == lowered and candidate:
                return candidate
        return None

    def _home(self) -> Path:
        home = self.env.get("HOME")
        return Path(home) if home else Path.home()


def _normalise(path: Path) -> Path:
    try:
        return path.resolve()
    except OSError:
        return path
