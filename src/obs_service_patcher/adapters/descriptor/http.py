"""HTTP retrieval of the authoritative service descriptor.

Purpose
-------
Implement the :class:`obs_service_patcher.application.ports.DescriptorSource`
protocol on top of ``httpx``. The fetcher downloads one JSON object and turns
it into a validated :class:`obs_service_patcher.domain.service.Service`.

Contents
--------
* :data:`DEFAULT_DESCRIPTOR_URL` – the published Glimesh descriptor.
* :func:`build_client` – shared ``httpx.Client`` factory (timeouts, headers).
* :func:`get_bytes` – GET helper mapping transport errors and bad statuses
  onto :class:`NetworkError`.
* :class:`HTTPDescriptorFetcher` – the descriptor source.

System Role
-----------
Called once, before any file is touched. Any failure here is fatal to the run.
"""

from __future__ import annotations

import json
from typing import Final

import httpx

from ...domain.errors import DecodeError, NetworkError
from ...domain.service import Service
from ...observability import log_error, log_info, make_event

DEFAULT_DESCRIPTOR_URL: Final[str] = (
    "https://glimesh-static-assets.nyc3.digitaloceanspaces.com/obs-glimesh-service.json"
)
DEFAULT_TIMEOUT_SECONDS: Final[float] = 10.0
USER_AGENT: Final[str] = "obs-service-patcher"


def build_client(
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create an ``httpx.Client`` with the patcher's defaults.

    ``transport`` exists so tests can plug in ``httpx.MockTransport``.
    """

    return httpx.Client(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        transport=transport,
    )


def get_bytes(client: httpx.Client, url: str) -> bytes:
    """Return the body of ``GET url``.

    Raises
    ------
    NetworkError
        On transport failures and on any status other than ``200``.
    """

    try:
        response = client.get(url)
    except httpx.HTTPError as exc:
        log_error("download_failed", **make_event("fetch", url, {"error": str(exc)}))
        raise NetworkError(f"Could not reach {url}: {exc}") from exc
    if response.status_code != httpx.codes.OK:
        log_error("download_failed", **make_event("fetch", url, {"status": response.status_code}))
        raise NetworkError(f"Got HTTP {response.status_code} from {url}")
    return response.content


class HTTPDescriptorFetcher:
    """Download and validate the service descriptor."""

    def __init__(
        self,
        url: str = DEFAULT_DESCRIPTOR_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def fetch(self) -> Service:
        """Return the descriptor published at :attr:`url`.

        Raises
        ------
        NetworkError
            When the endpoint cannot be reached or answers with a non-200
            status.
        DecodeError
            When the body is not JSON or does not describe a valid service.
        """

        with build_client(timeout=self.timeout, transport=self._transport) as client:
            payload = get_bytes(client, self.url)
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            log_error("descriptor_invalid", **make_event("fetch", self.url, {"error": str(exc)}))
            raise DecodeError(f"Invalid JSON from {self.url}: {exc}") from exc
        try:
            service = Service.from_mapping(data)
        except DecodeError as exc:
            log_error("descriptor_invalid", **make_event("fetch", self.url, {"error": str(exc)}))
            raise
        log_info("descriptor_downloaded", **make_event("fetch", self.url, {"service": service.name}))
        return service
