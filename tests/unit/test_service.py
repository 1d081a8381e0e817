"""Service record validation and raw-mapping preservation."""

from __future__ import annotations

import pytest

from obs_service_patcher.domain.errors import DecodeError
from obs_service_patcher.domain.service import Recommended, Server, Service


def test_from_mapping_parses_servers_and_recommended() -> None:
    service = Service.from_mapping(
        {
            "name": "Glimesh",
            "servers": [{"name": "Primary", "url": "rtmp://glimesh"}],
            "recommended": {"keyint": 2, "output": "ftl_output", "max video bitrate": 6000},
        }
    )
    assert service.servers == (Server("Primary", "rtmp://glimesh"),)
    assert service.recommended == Recommended(keyint=2, output="ftl_output", max_video_bitrate=6000)


def test_absent_recommended_fields_stay_absent() -> None:
    raw = {"name": "Glimesh", "servers": [], "recommended": {"keyint": 2}}
    assert Service.from_mapping(raw).to_mapping() == raw


def test_unknown_fields_survive_to_mapping() -> None:
    raw = {
        "name": "Glimesh",
        "common": True,
        "servers": [{"name": "Primary", "url": "rtmp://glimesh", "region": "us"}],
        "supported resolutions": ["1920x1080"],
    }
    mapping = Service.from_mapping(raw).to_mapping()
    assert mapping == raw
    assert list(mapping) == list(raw)


def test_to_mapping_returns_independent_copies() -> None:
    service = Service.from_mapping({"name": "Glimesh", "servers": [{"name": "a", "url": "b"}]})
    first = service.to_mapping()
    first["servers"].append({"name": "c", "url": "d"})
    assert len(service.to_mapping()["servers"]) == 1


def test_source_mapping_is_not_shared() -> None:
    raw = {"name": "Glimesh", "servers": []}
    service = Service.from_mapping(raw)
    raw["name"] = "Changed"
    assert service.to_mapping()["name"] == "Glimesh"


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"servers": []},
        {"name": "", "servers": []},
        {"name": 5, "servers": []},
        {"name": "Glimesh"},
        {"name": "Glimesh", "servers": {"name": "a"}},
        {"name": "Glimesh", "servers": ["rtmp://a"]},
        {"name": "Glimesh", "servers": [{"name": "a"}]},
        {"name": "Glimesh", "servers": [], "recommended": "fast"},
    ],
)
def test_from_mapping_rejects_invalid_records(payload) -> None:
    with pytest.raises(DecodeError):
        Service.from_mapping(payload)
