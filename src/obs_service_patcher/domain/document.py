"""In-memory representation of one ``services.json`` file.

Purpose
-------
Wrap the generic decoded JSON tree so the patcher can query and extend the
``services`` list while every other byte of structure (unknown root keys,
unknown per-service keys, key order) survives the round trip untouched.

Contents
--------
* :data:`SERVICES_KEY` / :data:`FORMAT_VERSION_KEY` – key names used by OBS.
* :class:`ServiceDocument` – decode, query, append and encode operations.

Numbers are decoded as Python ``int``/``float``; a finite float is written
back as the shortest literal for the same double, so only its spelling may
change.

System Role
-----------
Built fresh from file bytes by :class:`obs_service_patcher.application.patch.PatchEngine`
for every file, mutated at most once and discarded after the write.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any, Final

from .errors import DecodeError, EncodeError
from .service import Service

SERVICES_KEY: Final[str] = "services"
FORMAT_VERSION_KEY: Final[str] = "format_version"
_INDENT: Final[int] = 4


class ServiceDocument:
    """Decoded ``services.json`` contents backed by the original ordered tree.

    Examples
    --------
    >>> doc = ServiceDocument.from_bytes(b'{"format_version": 1, "services": [{"name": "Twitch"}]}')
    >>> doc.format_version, doc.service_names()
    (1, ['Twitch'])
    >>> doc.contains("twitch")
    False
    """

    __slots__ = ("_tree",)

    def __init__(self, tree: dict[str, Any]) -> None:
        if not isinstance(tree, dict):
            raise DecodeError("Services document root must be a JSON object")
        services = tree.get(SERVICES_KEY)
        if services is not None and not isinstance(services, list):
            raise DecodeError(f"Services document '{SERVICES_KEY}' must be a list")
        self._tree = tree

    @classmethod
    def from_bytes(cls, payload: bytes, *, source: str | None = None) -> "ServiceDocument":
        """Decode *payload* into a document, raising :class:`DecodeError` on malformed JSON.

        ``NaN``/``Infinity`` and numbers outside the double range are
        rejected because they cannot be written back as JSON.
        """

        origin = source or "<memory>"
        try:
            tree = json.loads(payload, parse_float=_finite_float, parse_constant=_reject_constant)
        except ValueError as exc:
            raise DecodeError(f"Invalid JSON in {origin}: {exc}") from exc
        try:
            return cls(tree)
        except DecodeError as exc:
            raise DecodeError(f"{exc} ({origin})") from exc

    @property
    def format_version(self) -> Any:
        """Return ``format_version`` exactly as stored (never interpreted)."""

        return self._tree.get(FORMAT_VERSION_KEY)

    @property
    def services(self) -> list[Any]:
        """Return the live services list (an empty list when the key is absent or null)."""

        return self._tree.get(SERVICES_KEY) or []

    def service_names(self) -> list[str]:
        return [entry["name"] for entry in self.services if isinstance(entry, Mapping) and "name" in entry]

    def contains(self, name: str) -> bool:
        """Return ``True`` when an entry's ``name`` equals *name* exactly."""

        return any(isinstance(entry, Mapping) and entry.get("name") == name for entry in self.services)

    def append(self, service: Service) -> None:
        """Append *service* as the last entry, creating the list when missing or null."""

        services = self._tree.get(SERVICES_KEY)
        if services is None:
            self._tree[SERVICES_KEY] = services = []
        services.append(service.to_mapping())

    def to_bytes(self) -> bytes:
        """Encode the document with 4-space indentation and a trailing newline.

        Non-ASCII characters and ``<``/``>``/``&`` are written literally so
        untouched entries keep their original spelling. Raises
        :class:`EncodeError` when the tree holds text that has no UTF-8 form
        (lone surrogates) or a non-finite number.
        """

        try:
            text = json.dumps(self._tree, indent=_INDENT, ensure_ascii=False, allow_nan=False)
            return (text + "\n").encode("utf-8")
        except ValueError as exc:
            raise EncodeError(f"Services document cannot be encoded as UTF-8 JSON: {exc}") from exc


def _finite_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError(f"number {literal} is out of range")
    return value


def _reject_constant(literal: str) -> Any:
    raise ValueError(f"{literal} is not valid JSON")
