"""Domain value objects describing one streaming service profile.

Purpose
-------
Model the ``Service`` record that is injected into ``services.json`` files. The
record keeps the raw decoded mapping next to the typed view so fields the
model does not name are written back exactly as they were received.

Contents
--------
* :class:`Server` – one ``{name, url}`` ingest endpoint.
* :class:`Recommended` – read-only view over the encoder settings bag.
* :class:`Service` – validated service record built via :meth:`Service.from_mapping`.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from .errors import DecodeError


@dataclass(frozen=True, slots=True)
class Server:
    """Ingest endpoint advertised by a service."""

    name: str
    url: str


@dataclass(frozen=True, slots=True)
class Recommended:
    """Encoder settings a service recommends.

    Every attribute is optional. ``None`` means the key was absent from the
    source document; nothing here is ever defaulted or written back, the raw
    mapping on :class:`Service` is the only thing that gets encoded.
    """

    keyint: int | None = None
    profile: str | None = None
    output: str | None = None
    max_video_bitrate: int | None = None
    max_audio_bitrate: int | None = None
    bframes: int | None = None
    x264opts: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Recommended":
        """Build the view from a decoded ``recommended`` object.

        Examples
        --------
        >>> Recommended.from_mapping({"keyint": 2, "max video bitrate": 6000})
        Recommended(keyint=2, profile=None, output=None, max_video_bitrate=6000, max_audio_bitrate=None, bframes=None, x264opts=None)
        """

        return cls(
            keyint=data.get("keyint"),
            profile=data.get("profile"),
            output=data.get("output"),
            max_video_bitrate=data.get("max video bitrate"),
            max_audio_bitrate=data.get("max audio bitrate"),
            bframes=data.get("bframes"),
            x264opts=data.get("x264opts"),
        )


@dataclass(frozen=True, slots=True)
class Service:
    """One named streaming-destination profile.

    Why
    ----
    The patcher only consumes ``name`` (for the presence test) and checks that
    ``servers`` is well formed, but the record it writes must be the complete
    document it received. ``_raw`` holds that document.

    Examples
    --------
    >>> service = Service.from_mapping({
    ...     "name": "Glimesh",
    ...     "servers": [{"name": "Primary", "url": "rtmp://glimesh"}],
    ...     "supported video codecs": ["h264"],
    ... })
    >>> service.name, service.servers[0].url
    ('Glimesh', 'rtmp://glimesh')
    >>> service.to_mapping()["supported video codecs"]
    ['h264']
    """

    name: str
    servers: tuple[Server, ...]
    recommended: Recommended | None = None
    _raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_mapping(cls, data: object) -> "Service":
        """Validate *data* and return the matching :class:`Service`.

        Raises
        ------
        DecodeError
            When ``name`` is missing or empty, when ``servers`` is not a list
            of ``{name, url}`` string pairs, or when ``recommended`` is present
            but not an object.
        """

        if not isinstance(data, Mapping):
            raise DecodeError("Service descriptor must be a JSON object")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise DecodeError("Service descriptor is missing a non-empty 'name'")
        servers = _parse_servers(data.get("servers"), service=name)
        recommended_raw = data.get("recommended")
        recommended: Recommended | None = None
        if recommended_raw is not None:
            if not isinstance(recommended_raw, Mapping):
                raise DecodeError(f"Service {name!r} has a 'recommended' value that is not an object")
            recommended = Recommended.from_mapping(recommended_raw)
        return cls(name=name, servers=servers, recommended=recommended, _raw=deepcopy(dict(data)))

    def to_mapping(self) -> dict[str, Any]:
        """Return a fresh copy of the record as it should be stored on disk."""

        return deepcopy(dict(self._raw))


def _parse_servers(value: object, *, service: str) -> tuple[Server, ...]:
    if not isinstance(value, list):
        raise DecodeError(f"Service {service!r} must list its 'servers'")
    servers: list[Server] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, Mapping):
            raise DecodeError(f"Service {service!r} server #{index} is not an object")
        server_name = entry.get("name")
        url = entry.get("url")
        if not isinstance(server_name, str) or not isinstance(url, str):
            raise DecodeError(f"Service {service!r} server #{index} needs string 'name' and 'url'")
        servers.append(Server(name=server_name, url=url))
    return tuple(servers)
