"""Shared test fixtures: an on-disk installation sandbox and canned documents.

``create_install_sandbox`` points every root the locator consults
(XDG/AppData/Program Files/Applications/HOME) into ``tmp_path`` so tests can
create OBS installs without touching the real machine.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from obs_service_patcher.adapters.path_locators.default import (
    APPLICATIONS_ROOT_ENV,
    SERVICES_FILENAME,
    DefaultPathLocator,
)
from obs_service_patcher.domain.service import Service

TWITCH_DOCUMENT: dict[str, Any] = {
    "format_version": 1,
    "services": [{"name": "Twitch", "servers": [{"name": "US East", "url": "rtmp://a"}]}],
}

GLIMESH_DESCRIPTOR: dict[str, Any] = {
    "name": "Glimesh",
    "servers": [{"name": "Primary", "url": "rtmp://glimesh"}],
}


def glimesh() -> Service:
    return Service.from_mapping(GLIMESH_DESCRIPTOR)


def encode(document: Mapping[str, Any]) -> bytes:
    return json.dumps(document, indent=4).encode("utf-8")


@dataclass
class StaticSource:
    """Descriptor source returning a fixed service and counting calls."""

    service: Service = field(default_factory=glimesh)
    calls: int = 0

    def fetch(self) -> Service:
        self.calls += 1
        return self.service


@dataclass
class InstallSandbox:
    """Temporary filesystem layout mirroring one platform's install roots."""

    root: Path
    platform: str
    env: dict[str, str]

    def locator(self, **kwargs: Any) -> DefaultPathLocator:
        return DefaultPathLocator(env=self.env, platform=self.platform, **kwargs)

    def directory(self, label: str) -> Path:
        """Return the rtmp-services directory the locator expects for *label*."""

        for candidate_label, directory in self.locator().candidates():
            if candidate_label == label:
                return directory
        raise KeyError(f"{label} is not probed on {self.platform}")

    def install(self, label: str, document: Mapping[str, Any] | bytes = TWITCH_DOCUMENT) -> Path:
        """Create ``services.json`` for *label* and return its path."""

        directory = self.directory(label)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / SERVICES_FILENAME
        payload = document if isinstance(document, bytes) else encode(document)
        target.write_bytes(payload)
        return target

    def apply_env(self, monkeypatch) -> None:
        for key, value in self.env.items():
            monkeypatch.setenv(key, value)


def create_install_sandbox(tmp_path: Path, *, platform: str = "linux") -> InstallSandbox:
    """Build an :class:`InstallSandbox` rooted at *tmp_path*."""

    root = tmp_path / "sandbox"
    env = {
        "HOME": str(root / "home"),
        "XDG_CONFIG_HOME": str(root / "xdg"),
        "APPDATA": str(root / "AppData" / "Roaming"),
        "programfiles": str(root / "Program Files"),
        "programfiles(x86)": str(root / "Program Files (x86)"),
        APPLICATIONS_ROOT_ENV: str(root / "Applications"),
    }
    return InstallSandbox(root=root, platform=platform, env=env)
